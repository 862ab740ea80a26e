# auth_service/constants.py
"""Application constants and configuration defaults."""

from typing import Final

# --- Service Identity ---
SERVICE_NAME: Final[str] = "auth-service"
SERVICE_VERSION: Final[str] = "1.0.0"

# --- Environment ---
PORT_ENV: Final[str] = "PORT"
MODE_ENV: Final[str] = "GIN_MODE"
DEFAULT_PORT: Final[str] = "8001"
DEFAULT_MODE: Final[str] = "debug"

# Listen on every interface, the equivalent of ":<port>".
DEFAULT_HOST: Final[str] = "0.0.0.0"

# --- Modes ---
# Mode only drives log verbosity. Anything else is accepted and logged at INFO.
MODE_DEBUG: Final[str] = "debug"
MODE_RELEASE: Final[str] = "release"
MODE_TEST: Final[str] = "test"
MODE_LOG_LEVELS: Final[dict[str, str]] = {
    MODE_DEBUG: "DEBUG",
    MODE_RELEASE: "INFO",
    MODE_TEST: "WARNING",
}

# --- Connection Timeouts (Seconds) ---
READ_TIMEOUT_SECONDS: Final[float] = 15.0
WRITE_TIMEOUT_SECONDS: Final[float] = 15.0
IDLE_TIMEOUT_SECONDS: Final[float] = 60.0

# Hard upper bound for draining in-flight requests on shutdown.
SHUTDOWN_TIMEOUT_SECONDS: Final[float] = 5.0

# --- Process Exit Codes ---
EXIT_OK: Final[int] = 0
EXIT_FAILURE: Final[int] = 1
