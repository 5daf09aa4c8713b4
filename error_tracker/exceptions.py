"""Exception hierarchy for the error tracker SDK."""


class ErrorTrackerError(Exception):
    """Base class for every error raised by the SDK."""


class ConfigurationError(ErrorTrackerError, ValueError):
    """
    Raised when the option set is invalid.

    This is the only error the SDK lets escape into host code; it is raised
    synchronously while a client is being constructed.
    """
