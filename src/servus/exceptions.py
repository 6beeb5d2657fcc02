"""Custom exceptions for discovery backends."""


class ServusError(Exception):
    """Base exception for service directory errors."""
    pass


class BackendError(ServusError):
    """Exception raised when a discovery backend cannot operate."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class TransportUnavailableError(BackendError):
    """Exception raised when the network transport cannot be started."""
    pass
