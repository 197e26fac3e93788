"""Shared pytest configuration for viewer tests."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# Add project root to sys.path so `from viewer.xxx import ...` works.
_PROJECT_ROOT = str(Path(__file__).resolve().parent.parent.parent)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)


@pytest.fixture
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Private os.environ and an empty config dir. Returns the config dir."""
    monkeypatch.setattr(os, "environ", dict(os.environ))
    monkeypatch.delenv("RELAY_URL", raising=False)
    monkeypatch.setattr("shared.env.CONFIG_DIR", tmp_path)
    return tmp_path
