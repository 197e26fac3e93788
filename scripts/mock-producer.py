#!/usr/bin/env python3
"""
Stand-in for the desktop app's extension socket, for local testing.

Serves ws://127.0.0.1:8766 (the relay's default PRODUCER_URL). While the
lock runs, every connected client gets the full lock state once a second;
when it ends, each client gets {"lockActive": false} and the server exits.

Usage:
    mock-producer.py --minutes 5 example.com docs.python.org
    mock-producer.py --minutes 1            # full focus: nothing allowed
    mock-producer.py --garbage              # also send one malformed frame
"""

import argparse
import asyncio
import json
import logging
import time

from aiohttp import web

log = logging.getLogger("mock-producer")


def build_app(domains: list[str], ends_at: float, garbage: bool) -> web.Application:
    async def handle_ws(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        log.info("Relay connected from %s", request.remote)
        if garbage:
            await ws.send_str("{not json")
        try:
            while time.monotonic() < ends_at and not ws.closed:
                await ws.send_str(json.dumps({"lockActive": True, "allowedDomains": domains}))
                await asyncio.sleep(1.0)
            if not ws.closed:
                await ws.send_str(json.dumps({"lockActive": False}))
        except ConnectionResetError:
            log.info("Relay went away")
        await ws.close()
        return ws

    app = web.Application()
    app.router.add_get("/", handle_ws)
    return app


async def run(args: argparse.Namespace) -> None:
    ends_at = time.monotonic() + args.minutes * 60
    app = build_app(args.domains, ends_at, args.garbage)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, args.host, args.port)
    await site.start()
    log.info(
        "Lock active for %.1f min on ws://%s:%d (allowed: %s)",
        args.minutes, args.host, args.port, ", ".join(args.domains) or "nothing",
    )
    try:
        await asyncio.sleep(max(0.0, ends_at - time.monotonic()) + 1.5)
    finally:
        await runner.cleanup()
    log.info("Lock ended")


def main() -> None:
    parser = argparse.ArgumentParser(description="Mock Prodblock producer socket.")
    parser.add_argument("domains", nargs="*", help="Allowed domains (none = full focus)")
    parser.add_argument("--minutes", type=float, default=5.0, help="Lock duration")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8766)
    parser.add_argument("--garbage", action="store_true", help="Send one malformed frame per client")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
