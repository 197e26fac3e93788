"""Shared pytest configuration for enforcer tests."""

from __future__ import annotations

import asyncio
import os
import socket
import sys
from pathlib import Path
from typing import Callable

import pytest

# Add project root to sys.path so `from enforcer.xxx import ...` works.
_PROJECT_ROOT = str(Path(__file__).resolve().parent.parent.parent)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from enforcer.document import Document  # noqa: E402


@pytest.fixture()
def document() -> Document:
    """Fresh page with html/head/body and nothing else."""
    return Document()


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
