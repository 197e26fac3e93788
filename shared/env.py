"""
Environment file loading shared by every component's Config.load().

Loads ~/.prodblock/shared.env first (values common to all components),
then ~/.prodblock/<component>.env (component-specific overrides).
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

CONFIG_DIR = Path.home() / ".prodblock"


def load_env(component: str, config_dir: Path | None = None) -> None:
    """Load shared.env, then <component>.env on top of it, if present."""
    base = config_dir or CONFIG_DIR
    shared_env = base / "shared.env"
    component_env = base / f"{component}.env"
    if shared_env.exists():
        load_dotenv(shared_env)
    if component_env.exists():
        load_dotenv(component_env, override=True)
