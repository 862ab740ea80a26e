# File: auth_service/app.py
"""Entry point for the application."""

import sys

from . import create_app
from .config import resolve_config
from .server import LifecycleManager


def main() -> None:
    """Resolve the configuration, serve until SIGINT/SIGTERM, and exit with the lifecycle result."""
    config = resolve_config()
    app = create_app(config)
    manager = LifecycleManager(app, config)
    sys.exit(manager.run())


if __name__ == "__main__":  # pragma: no cover
    main()
