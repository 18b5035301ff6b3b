"""Configuration loading from environment variables and files."""

import json
import logging
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from politefetch.ports.request import DEFAULT_USER_AGENT
from politefetch.ports.settings import MIN_PARALLEL, RunConfig

__all__ = ["Settings", "load_settings"]

load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Runtime configuration for the command line fetcher.

    Attributes:
        parallel: Maximum transfers in flight (at least 2).
        delay_sec: Seconds between requests to the same host.
        method: Default HTTP method.
        retry_head_as_get: Retry a HEAD answered with 405 as a GET.
        verify_tls: Verify server certificates.
        user_agent: User-Agent header sent with every request.
        requests_file_path: Path to JSON file with the requests to fetch.
        requests: URL strings or descriptor objects (loaded from file).
    """

    parallel: int = Field(default=10, ge=MIN_PARALLEL, description="Maximum transfers in flight.")
    delay_sec: int = Field(default=5, ge=0, description="Seconds between requests to one host.")
    method: str = Field(default="GET", description="Default HTTP method.")
    retry_head_as_get: bool = Field(default=True, description="Retry HEAD 405 as GET.")
    verify_tls: bool = Field(default=False, description="Verify server certificates.")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent header.")
    requests_file_path: str = Field(..., description="Path to JSON file with requests.")
    requests: list[str | dict[str, Any]] = Field(
        default_factory=list,
        description="Requests to fetch (populated from file).",
    )

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Normalize the method to upper case.

        Raises:
            ValueError: If the method is blank or contains whitespace.
        """
        method = v.strip().upper()
        if not method or any(ch.isspace() for ch in method):
            raise ValueError(f"Invalid HTTP method: {v!r}")
        return method

    def load_requests(self) -> None:
        """Load and validate requests from JSON file.

        Raises:
            ValueError: If file not found, invalid JSON, wrong format, or empty.
        """
        try:
            with open(self.requests_file_path) as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ValueError(f"Requests file not found: {self.requests_file_path}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"Requests file contains invalid JSON: {self.requests_file_path}") from e

        if not isinstance(data, list):
            raise ValueError("Requests file must be a JSON array")
        if not data:
            raise ValueError("Requests file is empty")
        if not all(isinstance(x, (str, dict)) for x in data):
            raise ValueError("Each request must be a URL string or a JSON object")

        self.requests = data
        logger.debug(f"Loaded {len(data)} requests from {self.requests_file_path}")

    def to_run_config(self) -> RunConfig:
        """Build the scheduler's run configuration from these settings."""
        return RunConfig(
            parallel=self.parallel,
            delay_sec=self.delay_sec,
            retry_head_as_get=self.retry_head_as_get,
            method=self.method,
        ).with_options({"verify_tls": self.verify_tls, "user_agent": self.user_agent})


def load_settings() -> Settings:
    """Load and validate settings from environment and files.

    Required environment variables:
    - REQUESTS_FILE_PATH: JSON array of URLs or request objects.

    Optional:
    - FETCH_PARALLEL, FETCH_DELAY, FETCH_METHOD, FETCH_RETRY,
      FETCH_VERIFY_TLS, FETCH_USER_AGENT.

    Returns:
        Validated Settings object with requests loaded.

    Raises:
        RuntimeError: If required env vars missing.
        ValueError: If configuration is invalid.
    """
    try:
        requests_path = os.environ["REQUESTS_FILE_PATH"]
    except KeyError as e:
        raise RuntimeError(f"Missing required environment variable: {e.args[0]}") from e

    env_fields = {
        "parallel": "FETCH_PARALLEL",
        "delay_sec": "FETCH_DELAY",
        "method": "FETCH_METHOD",
        "retry_head_as_get": "FETCH_RETRY",
        "verify_tls": "FETCH_VERIFY_TLS",
        "user_agent": "FETCH_USER_AGENT",
    }
    overrides = {name: os.environ[var] for name, var in env_fields.items() if var in os.environ}

    settings = Settings(requests_file_path=requests_path, **overrides)
    settings.load_requests()

    logger.info(
        f"Fetcher configured: parallel={settings.parallel}, "
        f"delay={settings.delay_sec}s, "
        f"method={settings.method}, "
        f"retry={settings.retry_head_as_get}, "
        f"requests={len(settings.requests)}"
    )

    return settings
