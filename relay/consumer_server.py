"""Local server through which enforcers reach the relay.

Endpoints:
  GET /ws      websocket; pushes a STATE message on every broadcast and
               answers GET_STATE messages with the current state
  GET /state   query: current cached LockState in wire form
  GET /health  liveness, producer connection state, consumer count
"""

from __future__ import annotations

import json
import logging

from aiohttp import WSCloseCode, WSMsgType, web

from relay.relay import Relay
from shared.lock_state import GET_STATE, LockState, state_message

log = logging.getLogger(__name__)


class ConsumerServer:
    """aiohttp server exposing a Relay's state to enforcers and viewers."""

    def __init__(self, relay: Relay, host: str = "127.0.0.1", port: int = 8767) -> None:
        self._relay = relay
        self._host = host
        self._port = port
        self._runner: web.AppRunner | None = None
        self._sockets: set[web.WebSocketResponse] = set()

    def make_app(self) -> web.Application:
        """Build the application with all routes registered."""
        app = web.Application()
        app.router.add_get("/ws", self._handle_ws)
        app.router.add_get("/state", self._handle_state)
        app.router.add_get("/health", self._handle_health)
        app.on_shutdown.append(self._close_sockets)
        return app

    async def start(self) -> None:
        """Start the HTTP server."""
        self._runner = web.AppRunner(self.make_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        log.info("Consumer server listening on %s:%d", self._host, self._port)

    async def stop(self) -> None:
        """Stop the HTTP server and release resources."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    # -- Handlers ----------------------------------------------------------------

    async def _handle_ws(self, request: web.Request) -> web.WebSocketResponse:
        """GET /ws

        Each open socket is one consumer for as long as it stays open.
        """
        ws = web.WebSocketResponse(heartbeat=30.0)
        await ws.prepare(request)

        async def push(state: LockState) -> None:
            await ws.send_json(state_message(state))

        self._sockets.add(ws)
        unsubscribe = self._relay.subscribe(push)
        log.info("Consumer attached (%d active)", self._relay.subscriber_count)
        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await self._handle_consumer_message(ws, msg.data)
                elif msg.type == WSMsgType.ERROR:
                    log.debug("Consumer socket error: %s", ws.exception())
        finally:
            unsubscribe()
            self._sockets.discard(ws)
            log.info("Consumer detached (%d active)", self._relay.subscriber_count)
        return ws

    async def _close_sockets(self, app: web.Application) -> None:
        for ws in list(self._sockets):
            await ws.close(code=WSCloseCode.GOING_AWAY, message=b"Relay shutting down")

    async def _handle_consumer_message(self, ws: web.WebSocketResponse, data: str) -> None:
        try:
            message = json.loads(data)
        except ValueError:
            log.debug("Ignored non-JSON consumer frame")
            return
        if isinstance(message, dict) and message.get("type") == GET_STATE:
            await ws.send_json(state_message(self._relay.get_state()))

    async def _handle_state(self, request: web.Request) -> web.Response:
        """GET /state"""
        return web.json_response(self._relay.get_state().to_wire())

    async def _handle_health(self, request: web.Request) -> web.Response:
        """GET /health"""
        return web.json_response({
            "ok": True,
            "connection": self._relay.connection_state.value,
            "consumers": self._relay.subscriber_count,
        })
