# File: tests/lifecycle/conftest.py
"""Fixtures for tests that run the server on real sockets."""

from __future__ import annotations

import contextlib
import socket
import threading
import time
from collections.abc import Callable, Generator

import pytest
from flask import Flask, request

from auth_service.config import ServerConfig
from auth_service.errors import ShutdownTimeoutError
from auth_service.server import LifecycleManager, ServerState
from auth_service.signals import ShutdownSignal


class SlowGate:
    """Coordinates slow requests with the test thread.

    Every request to ``/slow`` records its arrival, then either sleeps for
    ``?seconds=`` or, with ``?hold=1``, blocks until the gate is released.
    """

    def __init__(self) -> None:
        self.release = threading.Event()
        self._cond = threading.Condition()
        self._entered = 0

    def enter(self) -> None:
        with self._cond:
            self._entered += 1
            self._cond.notify_all()

    def wait_entered(self, count: int, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._entered >= count, timeout=timeout)


@pytest.fixture
def slow_gate() -> Generator[SlowGate]:
    gate = SlowGate()
    yield gate
    # Let abandoned handler threads finish.
    gate.release.set()


@pytest.fixture
def live_app(app: Flask, slow_gate: SlowGate) -> Flask:
    """The application plus test-only routes for slow and faulty handlers."""

    def slow() -> dict[str, str | float]:
        slow_gate.enter()
        if request.args.get("hold"):
            slow_gate.release.wait(timeout=30)
        else:
            time.sleep(float(request.args.get("seconds", "0.5")))
        return {"status": "done", "slept": float(request.args.get("seconds", "0"))}

    def boom() -> str:
        raise RuntimeError("handler blew up")

    live_app = app
    live_app.add_url_rule("/slow", "slow", slow)
    live_app.add_url_rule("/boom", "boom", boom)
    return live_app


@pytest.fixture
def make_manager(live_app: Flask) -> Generator[Callable[..., LifecycleManager]]:
    """Build managers for the live app and make sure none is left serving."""
    managers: list[LifecycleManager] = []

    def factory(config: ServerConfig, shutdown_signal: ShutdownSignal | None = None) -> LifecycleManager:
        manager = LifecycleManager(live_app, config, shutdown_signal)
        managers.append(manager)
        return manager

    yield factory

    for manager in managers:
        if manager.state is ServerState.SERVING and manager.handle is not None:
            with contextlib.suppress(ShutdownTimeoutError):
                manager.shutdown(manager.handle, timeout=0.5)


@pytest.fixture
def occupied_port() -> Generator[int]:
    """A port held by another listening socket for the duration of the test."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def free_port() -> int:
    """A port that is free right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
