#!/usr/bin/env python3
"""
Read-only lock status viewer.

Asks the relay once for the current state and prints it as a single line.
No retries, no watchers: if the relay does not answer, says so.

Usage:
    prodblock-status
    prodblock-status --relay-url http://127.0.0.1:8767
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os

import httpx

from shared.env import load_env
from shared.lock_state import LockState

log = logging.getLogger(__name__)

NOT_CONNECTED = "Not connected"


def describe(state: LockState | None) -> str:
    """One-line human summary of a lock state (None means no answer)."""
    if state is None:
        return NOT_CONNECTED
    if not state.lock_active:
        return "Not in focus mode"
    count = len(state.allowed_domains)
    if count == 0:
        return "Focus active (all sites blocked)"
    return f"Focus active ({count} sites allowed)"


async def fetch_state(relay_url: str, timeout: float = 2.0) -> LockState | None:
    """GET /state once. Any failure yields None."""
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.get(f"{relay_url.rstrip('/')}/state")
        resp.raise_for_status()
        return LockState.from_wire(resp.json())
    except (httpx.HTTPError, ValueError) as exc:
        log.debug("Status query failed: %s", exc)
        return None


def main() -> None:
    load_env("viewer")
    parser = argparse.ArgumentParser(description="Show the current focus lock status.")
    parser.add_argument(
        "--relay-url",
        default=os.environ.get("RELAY_URL", "http://127.0.0.1:8767").strip(),
        help="Relay consumer server base URL",
    )
    parser.add_argument("--verbose", action="store_true", help="Log query failures")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    state = asyncio.run(fetch_state(args.relay_url))
    print(describe(state))


if __name__ == "__main__":
    main()
