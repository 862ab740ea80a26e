"""Custom exceptions for the application."""


class AppError(Exception):
    """Base class for errors raised while handling a request."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        """Initialize the exception.

        Args:
            message: The error message.
            status_code: The HTTP status code to return.
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LifecycleError(Exception):
    """Base class for failures that end the server process."""


class BindError(LifecycleError):
    """Raised when the listener cannot be bound (port in use, bad port, no permission)."""

    def __init__(self, host: str, port: str, cause: Exception) -> None:
        """Initialize the exception.

        Args:
            host: The address the server tried to bind.
            port: The configured port, as given.
            cause: The underlying error.
        """
        super().__init__(f"cannot listen on {host}:{port}: {cause}")
        self.host = host
        self.port = port
        self.cause = cause


class ShutdownTimeoutError(LifecycleError):
    """Raised when in-flight requests outlive the shutdown deadline."""

    def __init__(self, timeout: float, outstanding: int) -> None:
        """Initialize the exception.

        Args:
            timeout: The deadline that elapsed, in seconds.
            outstanding: Requests still running when it elapsed.
        """
        super().__init__(
            f"context deadline exceeded: {outstanding} request(s) still running after {timeout:g}s"
        )
        self.timeout = timeout
        self.outstanding = outstanding
