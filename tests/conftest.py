# File: tests/conftest.py
"""Global pytest fixtures and configuration for the test suite.

This module defines the 'World' in which tests run: the explicit server
configuration, the Flask application built from it, and a test client.
"""

from __future__ import annotations

from collections.abc import Generator

import pytest
from flask import Flask
from flask.testing import FlaskClient

from auth_service import create_app
from auth_service.config import ServerConfig


@pytest.fixture
def config() -> ServerConfig:
    """Test configuration.

    Port 0 lets the OS pick a free port for live-server tests, and a short
    drain deadline keeps timeout scenarios fast.
    """
    return ServerConfig(port="0", mode="debug", host="127.0.0.1", shutdown_timeout=2.0)


@pytest.fixture
def app(config: ServerConfig) -> Generator[Flask]:
    """Create the 'World' for the tests: A Flask application instance."""
    app = create_app(config)
    app.config["TESTING"] = True
    yield app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """The observer within the world: A test client to make requests."""
    return app.test_client()
