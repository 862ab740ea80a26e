# File: auth_service/routes.py
"""Routes module handling all web endpoints."""

from datetime import datetime, timezone

from flask import Blueprint, Response, jsonify

from .constants import SERVICE_NAME, SERVICE_VERSION

# Create the Blueprints
main_bp = Blueprint("main", __name__)
api_v1_bp = Blueprint("api_v1", __name__, url_prefix="/api/v1")


def utc_timestamp() -> str:
    """Return the current time as an RFC 3339 UTC timestamp with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


@main_bp.route("/health")
def health() -> Response:
    """Perform a health check.

    Returns:
        Response: A JSON response identifying the service and the current UTC time.
    """
    return jsonify(
        {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "time": utc_timestamp(),
        }
    )


@api_v1_bp.route("/")
def index() -> Response:
    """Placeholder root of the v1 API."""
    return jsonify({"message": "Auth Service API v1", "status": "running"})
