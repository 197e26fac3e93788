"""Process-wide relay between the producer (desktop app) and every enforcer.

One Relay per browser instance. It holds at most one websocket to the
producer, caches the latest LockState, and fans each new state out to all
subscribed consumers. Losing the producer fails open: the cache is reset
to SAFE_DEFAULT and broadcast before a reconnect is scheduled.

Connection lifecycle:
    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED -> ...

Every ended attempt (refused, errored, closed by the producer) goes through
on_disconnect(), the only place the fail-open reset happens. Reconnects use
a fixed delay and never give up.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Awaitable, Callable

import aiohttp

from relay.config import Config
from shared.lock_state import SAFE_DEFAULT, LockState, LockStateError, parse_lock_state

log = logging.getLogger(__name__)

# Async callable invoked with every broadcast state.
Subscriber = Callable[[LockState], Awaitable[None]]


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Relay:
    """Owns the producer connection and the single cached LockState."""

    def __init__(self, producer_url: str, reconnect_delay: float = 2.0) -> None:
        self._producer_url = producer_url
        self._reconnect_delay = reconnect_delay
        self._session: aiohttp.ClientSession | None = None
        self._connection = ConnectionState.DISCONNECTED
        self._task: asyncio.Task | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._state: LockState = SAFE_DEFAULT
        self._subscribers: list[Subscriber] = []
        self._stopped = False

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # -- Lifecycle ---------------------------------------------------------------

    async def start(self) -> None:
        """Create the HTTP session and open the first producer connection."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._stopped = False
        self.connect()

    async def stop(self) -> None:
        """Drop the producer connection for good and release the session."""
        self._stopped = True
        self._cancel_reconnect()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._session:
            await self._session.close()
            self._session = None
        self._connection = ConnectionState.DISCONNECTED

    def _ensure_started(self) -> aiohttp.ClientSession:
        """Return the active session or raise if not started."""
        if self._session is None:
            raise RuntimeError("Relay not started. Call await relay.start() first.")
        return self._session

    # -- Consumer-facing API -----------------------------------------------------

    def get_state(self) -> LockState:
        """Latest known state, or SAFE_DEFAULT if nothing has arrived."""
        return self._state

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a consumer. Returns a function that unregisters it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            try:
                self._subscribers.remove(subscriber)
            except ValueError:
                pass

        return unsubscribe

    async def broadcast(self, state: LockState) -> None:
        """Send state to every subscriber. One failed delivery never stops the rest."""
        subscribers = list(self._subscribers)
        if not subscribers:
            return
        await asyncio.gather(*(self._deliver(s, state) for s in subscribers))

    async def _deliver(self, subscriber: Subscriber, state: LockState) -> None:
        try:
            await subscriber(state)
        except Exception as exc:
            log.debug("Dropped state delivery to %r: %s", subscriber, exc)

    # -- Connection state machine ------------------------------------------------

    def connect(self) -> None:
        """Start a connection attempt unless one is in flight or established."""
        if self._stopped or self._connection is not ConnectionState.DISCONNECTED:
            return
        session = self._ensure_started()
        self._cancel_reconnect()
        self._connection = ConnectionState.CONNECTING
        log.debug("Connecting to producer at %s", self._producer_url)
        self._task = asyncio.create_task(
            self._run_connection(session), name="producer_connection",
        )

    async def _run_connection(self, session: aiohttp.ClientSession) -> None:
        """One connection attempt, from open to close. Never raises."""
        try:
            async with session.ws_connect(self._producer_url) as ws:
                self._connection = ConnectionState.CONNECTED
                log.info("Connected to producer at %s", self._producer_url)
                async for msg in ws:
                    if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                        await self.on_message(msg.data)
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        log.warning("Producer connection error: %s", ws.exception())
                        break
        except asyncio.CancelledError:
            self._connection = ConnectionState.DISCONNECTED
            raise
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            log.warning("Producer connection to %s failed: %s", self._producer_url, exc)
        except Exception:
            log.exception("Unexpected error on producer connection")
        await self.on_disconnect()

    async def on_message(self, raw: str | bytes) -> None:
        """Replace the cached state with a producer payload and broadcast it."""
        try:
            state = parse_lock_state(raw)
        except LockStateError as exc:
            log.warning("Discarded malformed producer message: %s", exc)
            return
        self._state = state
        log.debug(
            "Lock state: active=%s, %d allowed domain(s)",
            state.lock_active, len(state.allowed_domains),
        )
        await self.broadcast(state)

    async def on_disconnect(self) -> None:
        """Fail open: reset to SAFE_DEFAULT, broadcast, then schedule a reconnect."""
        if self._connection is ConnectionState.CONNECTED:
            log.info("Disconnected from producer, will retry")
        self._connection = ConnectionState.DISCONNECTED
        self._state = SAFE_DEFAULT
        await self.broadcast(SAFE_DEFAULT)
        self.schedule_reconnect()

    def schedule_reconnect(self) -> None:
        """Arm the reconnect timer unless one is already pending."""
        if self._stopped or self._reconnect_handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self._reconnect_delay, self._reconnect_due)
        log.debug("Reconnect scheduled in %.1fs", self._reconnect_delay)

    def _reconnect_due(self) -> None:
        self._reconnect_handle = None
        self.connect()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------

_installed: Relay | None = None


def install(config: Config) -> Relay:
    """Create the process-wide Relay on first call; later calls return it."""
    global _installed
    if _installed is None:
        _installed = Relay(
            config.producer_url, reconnect_delay=config.reconnect_delay_seconds,
        )
    return _installed


def installed() -> Relay:
    """Return the process-wide Relay or raise if install() has not run."""
    if _installed is None:
        raise RuntimeError("Relay not installed. Call install(config) first.")
    return _installed


def uninstall() -> None:
    global _installed
    _installed = None
