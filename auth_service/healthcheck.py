# File: auth_service/healthcheck.py
"""Container health probe.

Requests ``/health`` on the loopback address and exits 0 on HTTP 200, 1 otherwise.
The port is resolved exactly as the server resolves it.
"""

import sys
import urllib.request

from .config import resolve_config


def health_check(timeout: float = 3) -> None:
    """Probe the local Auth Service and exit with the result.

    Args:
        timeout: The maximum time in seconds to wait for a response.

    Returns:
        None: This function exits the process directly.
    """
    # The server listens on every interface, so the loopback address always reaches it.
    port = resolve_config().port
    url = f"http://127.0.0.1:{port}/health"

    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            if response.status == 200:
                sys.exit(0)
            print(f"Health check failed with status: {response.status}", file=sys.stderr)
            sys.exit(1)
    except Exception as e:
        # stderr ends up in the container's health log
        print(f"Health check failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    health_check(timeout=3)
