"""Extensions module wiring the request-processing chain into Flask."""

import logging
import time

from flask import Flask, Response, g, jsonify, request
from werkzeug.exceptions import HTTPException

from .errors import AppError

access_logger = logging.getLogger("auth_service.access")
recovery_logger = logging.getLogger("auth_service.recovery")


class AccessLog:
    """Write one structured line per request: method, path, status and latency.

    Hooks into ``before_request``/``after_request`` so responses produced by the
    error handlers are logged too.
    """

    def init_app(self, app: Flask) -> None:
        """Register the request hooks on the application.

        Args:
            app: The Flask application instance.
        """
        app.before_request(self._start_timer)
        app.after_request(self._log_response)

    @staticmethod
    def _start_timer() -> None:
        g.request_started = time.perf_counter()

    @staticmethod
    def _log_response(response: Response) -> Response:
        started = g.get("request_started")
        latency_ms = (time.perf_counter() - started) * 1000 if started is not None else 0.0
        access_logger.info(
            f"{request.method} {request.path} {response.status_code} {latency_ms:.3f}ms",
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "latency_ms": round(latency_ms, 3),
                "client": request.remote_addr,
            },
        )
        return response


class Recovery:
    """Per-request fault boundary.

    Any exception escaping a view is logged with its traceback and answered with
    a JSON 500. Deliberate HTTP errors keep their status and ``AppError`` maps to
    its own status code. Nothing propagates past the request.
    """

    def init_app(self, app: Flask) -> None:
        """Register the error handlers on the application.

        Args:
            app: The Flask application instance.
        """
        app.register_error_handler(AppError, self._handle_app_error)
        app.register_error_handler(Exception, self._handle_exception)

    @staticmethod
    def _error_response(message: str, status_code: int) -> tuple[Response, int]:
        return jsonify({"error": message, "status": status_code}), status_code

    def _handle_app_error(self, error: AppError) -> tuple[Response, int]:
        if error.status_code >= 500:
            recovery_logger.error(f"{request.method} {request.path} failed: {error.message}", exc_info=error)
        else:
            recovery_logger.warning(f"{request.method} {request.path} rejected: {error.message}")
        return self._error_response(error.message, error.status_code)

    def _handle_exception(self, error: Exception) -> HTTPException | tuple[Response, int]:
        if isinstance(error, HTTPException):
            return error
        recovery_logger.error(
            f"Recovered from unhandled error in {request.method} {request.path}: {error!r}",
            exc_info=error,
        )
        return self._error_response("Internal Server Error", 500)


access_log = AccessLog()
recovery = Recovery()
