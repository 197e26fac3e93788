"""
Relay configuration.

Frozen dataclass loaded from environment variables.
Loads ~/.prodblock/shared.env first, then ~/.prodblock/relay.env
(component-specific overrides). Every field has a default; the relay
runs out of the box against a producer on the local machine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from shared.env import load_env

_DEFAULT_PRODUCER_URL = "ws://127.0.0.1:8766"


@dataclass(frozen=True)
class Config:
    """Immutable relay configuration."""

    # Producer (desktop app) connection
    producer_url: str
    reconnect_delay_seconds: float

    # Consumer server
    consumer_host: str
    consumer_port: int

    # Logging
    log_level: str

    @classmethod
    def load(cls) -> Config:
        """Load configuration from environment variables.

        Raises ValueError if a value is present but unusable.
        """
        load_env("relay")

        producer_url = os.environ.get("PRODUCER_URL", _DEFAULT_PRODUCER_URL).strip()
        if not producer_url.startswith(("ws://", "wss://")):
            raise ValueError(
                f"PRODUCER_URL must be a ws:// or wss:// URL, got {producer_url!r}"
            )

        reconnect_delay = float(os.environ.get("RECONNECT_DELAY_SECONDS", "2.0"))
        if reconnect_delay <= 0:
            raise ValueError("RECONNECT_DELAY_SECONDS must be positive")

        consumer_port = int(os.environ.get("CONSUMER_PORT", "8767"))
        if not 0 < consumer_port < 65536:
            raise ValueError(f"CONSUMER_PORT out of range: {consumer_port}")

        return cls(
            producer_url=producer_url,
            reconnect_delay_seconds=reconnect_delay,
            consumer_host=os.environ.get("CONSUMER_HOST", "127.0.0.1").strip(),
            consumer_port=consumer_port,
            log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper(),
        )
