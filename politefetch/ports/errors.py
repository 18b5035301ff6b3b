"""Error types surfaced by the scheduler."""

__all__ = ["ConfigurationError", "ProtocolViolation"]


class ConfigurationError(ValueError):
    """Invalid run configuration or request descriptor.

    Always raised before any network activity begins.
    """


class ProtocolViolation(RuntimeError):
    """Multiplexer and dispatch loop disagree about in-flight transfers."""
