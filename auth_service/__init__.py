"""Main application package for the Auth Service."""

from flask import Flask

from .config import ServerConfig, resolve_config
from .extensions import access_log, recovery
from .routes import api_v1_bp, main_bp


def create_app(config: ServerConfig | None = None) -> Flask:
    """Create and configure a Flask application instance.

    Args:
        config: Explicit server configuration. Resolved from the environment when omitted.

    Returns:
        Flask: The application with the access log and recovery chain installed.
    """
    if config is None:
        config = resolve_config()

    app = Flask(__name__)
    app.config.from_mapping(
        SERVER_CONFIG=config,
    )

    # Log verbosity is the only thing the mode changes. Module loggers
    # (auth_service.*) propagate into app.logger, which owns the handler.
    app.logger.setLevel(config.log_level)
    config.validate(app.logger)

    # Request chain: access log and recovery run ahead of every route.
    access_log.init_app(app)
    recovery.init_app(app)

    # Register Blueprints
    app.register_blueprint(main_bp)
    app.register_blueprint(api_v1_bp)

    return app
