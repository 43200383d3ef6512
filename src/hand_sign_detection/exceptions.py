"""
Exception types raised by the hand sign detection system.
"""


class SignDetectionError(Exception):
    """Base class for all hand sign detection errors."""


class MalformedFrameError(SignDetectionError, ValueError):
    """Raised by strict ingestion helpers when a hand does not carry 21 landmarks."""


class NoTemplatesError(SignDetectionError, RuntimeError):
    """Raised when a session requires gesture templates but none are available."""

    def __init__(self, message: str = "no templates available"):
        super().__init__(message)


class ConfigError(SignDetectionError, ValueError):
    """Raised when a detection configuration violates its invariants."""
