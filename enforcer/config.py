"""
Enforcer configuration.

Frozen dataclass loaded from environment variables.
Loads ~/.prodblock/shared.env first, then ~/.prodblock/enforcer.env.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from shared.env import load_env


@dataclass(frozen=True)
class Config:
    """Immutable enforcer configuration."""

    # Relay consumer server
    relay_url: str
    query_retry_seconds: float

    # Logging
    log_level: str

    @classmethod
    def load(cls) -> Config:
        """Load configuration from environment variables.

        Raises ValueError if a value is present but unusable.
        """
        load_env("enforcer")

        relay_url = os.environ.get("RELAY_URL", "http://127.0.0.1:8767").strip()
        if not relay_url.startswith(("http://", "https://")):
            raise ValueError(f"RELAY_URL must be an http(s) URL, got {relay_url!r}")

        retry = float(os.environ.get("QUERY_RETRY_SECONDS", "1.0"))
        if retry <= 0:
            raise ValueError("QUERY_RETRY_SECONDS must be positive")

        return cls(
            relay_url=relay_url.rstrip("/"),
            query_retry_seconds=retry,
            log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper(),
        )
