"""
Pytest configuration and shared fixtures for meshinit tests.

The sidecar is faked with httpx.MockTransport; workloads are real child
processes running the current interpreter.
"""

import logging
import sys
import time

import httpx
import pytest

from meshinit import logs

READINESS_PATH = "/healthz/ready"
SHUTDOWN_PATH = "/quitquitquit"


class FakeSidecar:
    """
    Scripted sidecar status server.

    ``readiness`` lists what successive probes get: an int status code or an
    exception class to raise. Once exhausted, the last entry repeats.
    """

    def __init__(self, readiness=(200,), shutdown=200):
        self.readiness = list(readiness)
        self.shutdown = shutdown
        self.requests: list[httpx.Request] = []
        self.probe_times: list[float] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path == READINESS_PATH:
            self.probe_times.append(time.monotonic())
            index = min(len(self.probe_times), len(self.readiness)) - 1
            return self._respond(self.readiness[index], request)

        if request.url.path == SHUTDOWN_PATH:
            return self._respond(self.shutdown, request)

        return httpx.Response(404)

    def _respond(self, action, request):
        if isinstance(action, type) and issubclass(action, Exception):
            raise action("scripted failure", request=request)
        return httpx.Response(action, text="not ready" if action >= 300 else "ok")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def probes(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == READINESS_PATH]

    @property
    def shutdowns(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == SHUTDOWN_PATH]


def python_command(code: str) -> tuple[str, tuple[str, ...]]:
    """Command and args running ``code`` in a fresh interpreter."""
    return sys.executable, ("-c", code)


@pytest.fixture
def fake_sidecar():
    return FakeSidecar()


@pytest.fixture
def clean_logging(monkeypatch):
    """Let init_observability run again and restore root logging afterwards."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    monkeypatch.setattr(logs, "_initialized", False)

    yield

    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def no_sidecar_env(monkeypatch):
    """Keep deployment environment variables from leaking into CLI tests."""
    for name in (
        "WITH_SIDECAR",
        "SIDECAR_ENDPOINT",
        "TERMINATE_SIDECAR",
        "WITH_ISTIO",
        "PILOT_AGENT_ENDPOINT",
        "KILL_ISTIO",
        "READINESS_RETRY_INTERVAL",
        "READINESS_TIMEOUT",
        "ENABLE_PROCESS_SUBREAPER",
        "FORWARD_SIGNALS",
        "LOG_FILE",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
