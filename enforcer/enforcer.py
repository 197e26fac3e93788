"""Per-context enforcement of the relay's lock state.

One Enforcer per browsing context. It starts in UNKNOWN, asks the relay for
the current state, and keeps asking on a fixed delay until some answer
arrives (a query reply or a push). From then on it moves only between
UNBLOCKED and BLOCKED, one transition per received state.

While BLOCKED, the overlay watcher repairs the overlay whenever page script
removes it. The watcher is installed on the first block and left running.
"""

from __future__ import annotations

import asyncio
import enum
import logging

from enforcer.config import Config
from enforcer.document import Document
from enforcer.domains import should_block
from enforcer.overlay import create_overlay, remove_overlay
from enforcer.relay_client import RelayClient, RelayUnavailable
from enforcer.watcher import OverlayWatcher
from shared.lock_state import LockState

log = logging.getLogger(__name__)


class Phase(str, enum.Enum):
    UNKNOWN = "unknown"
    UNBLOCKED = "unblocked"
    BLOCKED = "blocked"


class Enforcer:
    """Converges one document to the overlay state the relay's LockState implies."""

    def __init__(
        self,
        document: Document,
        hostname: str,
        relay: RelayClient,
        retry_delay: float = 1.0,
        close_relay_on_stop: bool = False,
    ) -> None:
        self._document = document
        self._hostname = hostname
        self._relay = relay
        self._retry_delay = retry_delay
        self._close_relay_on_stop = close_relay_on_stop
        self._phase = Phase.UNKNOWN
        self._blocked = False
        self._watcher = OverlayWatcher(document, lambda: self._blocked)
        self._query_task: asyncio.Task | None = None
        self._listen_task: asyncio.Task | None = None
        self._retry_handle: asyncio.TimerHandle | None = None
        self._awaiting_answer = False
        self._generation = 0

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def watcher(self) -> OverlayWatcher:
        return self._watcher

    @property
    def retry_pending(self) -> bool:
        return self._retry_handle is not None

    # -- State application -------------------------------------------------------

    def handle_state(self, state: LockState) -> None:
        """Apply a pushed or queried state to this context."""
        self._cancel_retry()
        self._awaiting_answer = False
        self._generation += 1
        if should_block(state, self._hostname):
            self._blocked = True
            self._phase = Phase.BLOCKED
            create_overlay(self._document)
            self._watcher.install()
        else:
            self._blocked = False
            self._phase = Phase.UNBLOCKED
            remove_overlay(self._document)
        log.debug("%s -> %s", self._hostname or "<no host>", self._phase.value)

    # -- Lifecycle ---------------------------------------------------------------

    async def start(self) -> None:
        """Issue the startup query and open the push channel."""
        self.request_state()
        self._listen_task = asyncio.create_task(
            self._listen_loop(), name="enforcer_listen",
        )

    async def stop(self) -> None:
        """Stop querying and listening. The overlay and watcher stay as they are."""
        self._cancel_retry()
        for task in (self._query_task, self._listen_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._query_task = None
        self._listen_task = None
        if self._close_relay_on_stop:
            await self._relay.close()

    # -- Query with retry --------------------------------------------------------

    def request_state(self) -> None:
        """Query the relay unless a query is already in flight."""
        self._awaiting_answer = True
        if self._query_task is not None and not self._query_task.done():
            return
        self._cancel_retry()
        self._query_task = asyncio.create_task(self._query(), name="enforcer_query")

    async def _query(self) -> None:
        # Any state applied while the reply is in transit is newer than it.
        generation = self._generation
        try:
            state = await self._relay.get_state()
        except RelayUnavailable as exc:
            if self._awaiting_answer:
                log.debug("State query failed, retrying in %.1fs: %s", self._retry_delay, exc)
                self._schedule_retry()
            return
        if self._generation != generation:
            log.debug("Dropped query reply overtaken by a push")
            return
        self.handle_state(state)

    def _schedule_retry(self) -> None:
        self._cancel_retry()
        loop = asyncio.get_running_loop()
        self._retry_handle = loop.call_later(self._retry_delay, self._retry_due)

    def _retry_due(self) -> None:
        self._retry_handle = None
        self.request_state()

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    # -- Push channel ------------------------------------------------------------

    async def _listen_loop(self) -> None:
        """Apply pushes; reopen the channel after the retry delay whenever it drops.

        Each (re)open is followed by a fresh query, since pushes sent while
        the channel was down are not replayed.
        """
        while True:
            try:
                async for state in self._relay.stream_states(on_open=self.request_state):
                    self.handle_state(state)
            except RelayUnavailable as exc:
                log.debug("Push channel down: %s", exc)
            except Exception:
                log.exception("Unexpected error on push channel")
            await asyncio.sleep(self._retry_delay)


async def attach(
    document: Document, hostname: str, config: Config | None = None,
) -> Enforcer:
    """Build a relay client from config and start an Enforcer for one context."""
    config = config or Config.load()
    relay = RelayClient(config.relay_url)
    await relay.start()
    enforcer = Enforcer(
        document,
        hostname,
        relay,
        retry_delay=config.query_retry_seconds,
        close_relay_on_stop=True,
    )
    await enforcer.start()
    return enforcer
