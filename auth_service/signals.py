"""Shutdown signal: a one-shot cancellation token fed by SIGINT/SIGTERM."""

import logging
import signal
import threading
from collections.abc import Iterable
from types import FrameType
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class ShutdownSignal:
    """One-shot notification shared by the serving path and the shutdown path.

    The token is created once at startup and passed by reference. It is raised
    either by an OS signal (after ``install()``) or programmatically with
    ``trigger()``. Only the first trigger counts.

    After the first OS signal the previous handlers are restored, so a second
    Ctrl-C falls through to the default behaviour and kills the process.
    """

    def __init__(self, signals: Iterable[signal.Signals] = DEFAULT_SIGNALS) -> None:
        """Initialize the token.

        Args:
            signals: The OS signals that raise it once installed.
        """
        self.signals = tuple(signals)
        self.reason: str | None = None
        self._event = threading.Event()
        self._lock = threading.RLock()
        self._previous_handlers: dict[signal.Signals, Any] = {}

    def install(self) -> None:
        """Register the signal handlers, remembering the ones they replace.

        Raises:
            ValueError: If called outside the main thread.
        """
        for sig in self.signals:
            self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)

    def restore(self) -> None:
        """Put back the handlers that were active before ``install()``."""
        while self._previous_handlers:
            sig, handler = self._previous_handlers.popitem()
            signal.signal(sig, handler)

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        sig_name = signal.Signals(signum).name
        self.restore()
        if self.trigger(sig_name):
            logger.info(f"Received {sig_name}, initiating graceful shutdown")

    def trigger(self, reason: str = "manual") -> bool:
        """Raise the signal.

        Args:
            reason: Why shutdown was requested (signal name, ``serve-error``, ...).

        Returns:
            bool: True for the first trigger, False if it was already raised.
        """
        with self._lock:
            if self._event.is_set():
                return False
            self.reason = reason
            self._event.set()
            return True

    def is_set(self) -> bool:
        """Return True once the signal has been raised."""
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the signal is raised.

        Args:
            timeout: Optional bound in seconds. ``None`` waits indefinitely.

        Returns:
            bool: True if the signal was raised, False on timeout.
        """
        return self._event.wait(timeout)
