"""Client side of the relay channel, used by each enforcer.

Queries go over plain HTTP (GET /state) so a failure is a clean, immediate
error the enforcer can retry. Pushes arrive over the websocket at GET /ws.
The relay lives on the same machine; no auth.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import AsyncIterator, Callable

import aiohttp
import httpx

from shared.lock_state import LockState, state_from_message

log = logging.getLogger(__name__)


class RelayUnavailable(Exception):
    """The relay could not answer: not running yet, channel dropped, or bad reply."""


class RelayClient:
    """Query and push-subscription client for the relay consumer server."""

    def __init__(self, base_url: str = "http://127.0.0.1:8767") -> None:
        self._base_url = base_url.rstrip("/")
        self._http: httpx.AsyncClient | None = None
        self._session: aiohttp.ClientSession | None = None

    async def start(self) -> None:
        """Create the persistent HTTP and websocket sessions."""
        self._http = httpx.AsyncClient(timeout=5.0)
        self._session = aiohttp.ClientSession()

    async def close(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None
        if self._session:
            await self._session.close()
            self._session = None

    def _ensure_started(self) -> tuple[httpx.AsyncClient, aiohttp.ClientSession]:
        """Return the active sessions or raise if not started."""
        if self._http is None or self._session is None:
            raise RuntimeError(
                "RelayClient not started. Call await client.start() first."
            )
        return self._http, self._session

    async def get_state(self) -> LockState:
        """GET /state. Raises RelayUnavailable on any failure."""
        http, _ = self._ensure_started()
        try:
            resp = await http.get(f"{self._base_url}/state")
        except httpx.HTTPError as exc:
            raise RelayUnavailable(f"State query failed: {exc}") from exc
        if resp.status_code != 200:
            raise RelayUnavailable(f"State query returned HTTP {resp.status_code}")
        try:
            return LockState.from_wire(resp.json())
        except ValueError as exc:
            raise RelayUnavailable(f"Malformed state from relay: {exc}") from exc

    async def stream_states(
        self, on_open: Callable[[], None] | None = None,
    ) -> AsyncIterator[LockState]:
        """Yield every state the relay pushes, for as long as the socket lives.

        on_open runs once the socket is up, before the first push is read.
        Always ends by raising RelayUnavailable, whether the socket failed
        to open, errored, or was closed by the relay.
        """
        _, session = self._ensure_started()
        try:
            async with session.ws_connect(f"{self._base_url}/ws") as ws:
                if on_open is not None:
                    on_open()
                async for msg in ws:
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        try:
                            state = state_from_message(json.loads(msg.data))
                        except ValueError as exc:
                            log.debug("Ignored relay frame: %s", exc)
                            continue
                        yield state
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        raise RelayUnavailable(f"Push channel error: {ws.exception()}")
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            raise RelayUnavailable(f"Push channel failed: {exc}") from exc
        raise RelayUnavailable("Push channel closed by relay")
