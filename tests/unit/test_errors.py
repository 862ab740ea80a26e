"""Unit tests for the exception hierarchy."""

import errno

from auth_service.errors import (
    AppError,
    BindError,
    LifecycleError,
    ShutdownTimeoutError,
)


def test_app_error_defaults_to_500() -> None:
    error = AppError("boom")
    assert error.status_code == 500
    assert error.message == "boom"


def test_app_error_keeps_custom_status() -> None:
    error = AppError("bad input", status_code=400)
    assert error.status_code == 400
    assert str(error) == "bad input"


def test_bind_error_keeps_cause() -> None:
    cause = OSError(errno.EADDRINUSE, "Address already in use")
    error = BindError("0.0.0.0", "8001", cause)

    assert isinstance(error, LifecycleError)
    assert error.cause is cause
    assert "0.0.0.0:8001" in str(error)
    assert "Address already in use" in str(error)


def test_shutdown_timeout_error_reports_deadline_exceeded() -> None:
    error = ShutdownTimeoutError(5.0, 2)

    assert isinstance(error, LifecycleError)
    assert error.outstanding == 2
    assert error.timeout == 5.0
    assert "deadline exceeded" in str(error)
    assert "2 request(s)" in str(error)
