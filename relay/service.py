"""Prodblock relay: main entry point.

Installs the process-wide Relay, connects it to the producer, starts the
consumer server, and runs until SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import logging
import signal

from relay import relay as relay_module
from relay.config import Config
from relay.consumer_server import ConsumerServer

log = logging.getLogger(__name__)


async def run(config: Config) -> None:
    """Start the relay and consumer server, run until a shutdown signal."""
    relay = relay_module.install(config)
    await relay.start()

    server = ConsumerServer(relay, host=config.consumer_host, port=config.consumer_port)
    await server.start()

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _signal_handler() -> None:
        log.info("Shutdown signal received")
        shutdown.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    log.info(
        "Relay running (producer=%s, consumers on %s:%d)",
        config.producer_url, config.consumer_host, config.consumer_port,
    )

    await shutdown.wait()
    log.info("Shutting down...")

    await server.stop()
    await relay.stop()
    relay_module.uninstall()
    log.info("Shutdown complete")


def main() -> None:
    """Load config, configure logging, run the relay."""
    config = Config.load()

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
