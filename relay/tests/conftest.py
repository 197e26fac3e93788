"""Shared pytest configuration for relay tests."""

from __future__ import annotations

import asyncio
import json
import os
import socket
import sys
from pathlib import Path
from typing import Any, Callable

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

# Add project root to sys.path so `from relay.xxx import ...` works.
_PROJECT_ROOT = str(Path(__file__).resolve().parent.parent.parent)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)


class FakeProducer:
    """Websocket endpoint standing in for the desktop app."""

    def __init__(self) -> None:
        self.sockets: list[web.WebSocketResponse] = []
        self.connections = 0
        app = web.Application()
        app.router.add_get("/", self._handle)
        self.server = TestServer(app)

    @property
    def url(self) -> str:
        return str(self.server.make_url("/"))

    async def _handle(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.sockets.append(ws)
        self.connections += 1
        async for _msg in ws:
            pass
        return ws

    async def send(self, payload: dict[str, Any] | str) -> None:
        text = payload if isinstance(payload, str) else json.dumps(payload)
        for ws in list(self.sockets):
            if not ws.closed:
                await ws.send_str(text)

    async def drop(self) -> None:
        """Close every open connection from the producer side."""
        sockets, self.sockets = self.sockets, []
        for ws in sockets:
            await ws.close()


@pytest_asyncio.fixture
async def producer() -> FakeProducer:
    fake = FakeProducer()
    await fake.server.start_server()
    yield fake
    await fake.server.close()


async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError(f"Condition not met within {timeout}s")
        await asyncio.sleep(0.01)


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or fail the test."""
    return _wait_until


class Recorder:
    """Relay subscriber that collects every broadcast state."""

    def __init__(self) -> None:
        self.states: list = []

    async def __call__(self, state) -> None:
        self.states.append(state)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Private os.environ and an empty config dir. Returns the config dir."""
    monkeypatch.setattr(os, "environ", dict(os.environ))
    monkeypatch.setattr("shared.env.CONFIG_DIR", tmp_path)
    return tmp_path


@pytest.fixture
def free_port() -> int:
    """A local TCP port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
