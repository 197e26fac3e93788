"""Tests for env file loading.

Run: python -m pytest shared/tests/test_env.py -v
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from shared.env import load_env


@pytest.fixture
def environ(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    env = {k: v for k, v in os.environ.items() if k not in ("RELAY_URL", "LOG_LEVEL")}
    monkeypatch.setattr(os, "environ", env)
    return env


def test_missing_files_are_fine(environ, tmp_path: Path) -> None:
    load_env("relay", config_dir=tmp_path)
    assert "RELAY_URL" not in environ


def test_component_file_overrides_shared(environ, tmp_path: Path) -> None:
    (tmp_path / "shared.env").write_text("RELAY_URL=http://a\nLOG_LEVEL=DEBUG\n")
    (tmp_path / "viewer.env").write_text("RELAY_URL=http://b\n")

    load_env("viewer", config_dir=tmp_path)

    assert environ["RELAY_URL"] == "http://b"
    assert environ["LOG_LEVEL"] == "DEBUG"


def test_shared_file_does_not_override_process_env(environ, tmp_path: Path) -> None:
    environ["LOG_LEVEL"] = "ERROR"
    (tmp_path / "shared.env").write_text("LOG_LEVEL=DEBUG\n")

    load_env("relay", config_dir=tmp_path)

    assert environ["LOG_LEVEL"] == "ERROR"


def test_other_component_file_is_ignored(environ, tmp_path: Path) -> None:
    (tmp_path / "enforcer.env").write_text("RELAY_URL=http://enforcer-only\n")

    load_env("viewer", config_dir=tmp_path)

    assert "RELAY_URL" not in environ


def test_default_config_dir_is_read_at_call_time(environ, tmp_path, monkeypatch) -> None:
    monkeypatch.setattr("shared.env.CONFIG_DIR", tmp_path)
    (tmp_path / "shared.env").write_text("LOG_LEVEL=WARNING\n")

    load_env("relay")

    assert environ["LOG_LEVEL"] == "WARNING"
