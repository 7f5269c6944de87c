"""
Reconnecting client channel for a game session.

One channel owns one WebSocket at a time. It reconnects with exponential
backoff after a drop, keeps a bounded history of inbound envelopes and
reports a permanent loss exactly once through its notifier.

States:
- idle: never connected, or deliberately disconnected
- connecting: a transport is being opened
- open: the transport is live
- backoff: waiting for the reconnect timer
- failed: reconnect attempts exhausted
"""

import json
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, List, Optional
from urllib.parse import urlsplit

from statemachine import State, StateMachine

from keeper.realtime.transport import OPEN, LoopScheduler, WebSocketsTransport, epoch_millis

logger = logging.getLogger(__name__)

CONNECTION_LOST_TITLE = "Connection lost"
CONNECTION_LOST_DESCRIPTION = "Unable to reconnect to the server"


@dataclass
class WebSocketMessage:
    type: str
    data: Any = None
    timestamp: int = 0

    def to_dict(self):
        return {"type": self.type, "data": self.data, "timestamp": self.timestamp}


@dataclass
class ChannelOptions:
    max_attempts: int = 5
    base_delay: float = 1.0
    max_delay: float = 10.0
    history_size: int = 100


class ChannelStateMachine(StateMachine):
    idle = State(initial=True)
    connecting = State()
    open = State()
    backoff = State()
    failed = State()

    start = (
        idle.to(connecting)
        | backoff.to(connecting)
        | failed.to(connecting)
        | open.to(connecting)
        | connecting.to.itself()
    )
    opened = connecting.to(open)
    lost = connecting.to(backoff) | open.to(backoff)
    give_up = connecting.to(failed) | open.to(failed)
    stop = connecting.to(idle) | open.to(idle) | backoff.to(idle) | failed.to(idle)

    def on_enter_state(self, event, state):
        logger.debug(f"Channel state → {state.id} (event: {event})")


def resolve_endpoint(url: str, page_url: Optional[str] = None) -> str:
    """
    Absolute ws:// and wss:// URLs pass through. A path is joined onto the
    page host, upgrading to wss:// when the page itself is served over https.
    """
    if url.startswith(("ws://", "wss://")):
        return url

    page = urlsplit(page_url or "http://localhost")
    scheme = "wss" if page.scheme == "https" else "ws"
    path = url if url.startswith("/") else f"/{url}"
    return f"{scheme}://{page.netloc}{path}"


def log_notifier(title, description):
    logger.warning(f"{title}: {description}")


class RealtimeChannel:
    """
    Best-effort duplex channel: no delivery guarantee, no replay of events
    missed while disconnected.

    transport_factory(url, on_open=, on_message=, on_close=) must return an
    object exposing ready_state, send(text) and close().
    scheduler.call_later(seconds, callback) must return a handle with cancel().
    """

    def __init__(
        self,
        url: str,
        page_url: Optional[str] = None,
        transport_factory: Optional[Callable] = None,
        scheduler=None,
        clock: Callable[[], int] = epoch_millis,
        notifier: Callable[[str, str], None] = log_notifier,
        options: Optional[ChannelOptions] = None,
    ):
        self.url = resolve_endpoint(url, page_url)
        self.options = options or ChannelOptions()
        self.machine = ChannelStateMachine()
        self.attempts = 0
        self.last_message: Optional[WebSocketMessage] = None
        self.history = deque(maxlen=self.options.history_size)

        self._transport_factory = transport_factory or WebSocketsTransport
        self._scheduler = scheduler or LoopScheduler()
        self._clock = clock
        self._notifier = notifier
        self._transport = None
        self._timer = None
        self._generation = 0
        self._notified = False
        self._subscribers: List[Callable[[WebSocketMessage], None]] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        return self.machine.current_state.id

    @property
    def is_connected(self) -> bool:
        return self.state == "open"

    def backoff_delay(self, attempt: int) -> float:
        return min(self.options.base_delay * (2 ** attempt), self.options.max_delay)

    def subscribe(self, callback):
        """Registers a listener for inbound messages; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def connect(self):
        """Opens the channel unless it is already connecting or open."""
        if self.state in ("connecting", "open"):
            return
        self._cancel_timer()
        self.machine.start()
        self._open_transport()

    def reconnect(self):
        """Drops the current transport (if any) and opens a fresh one."""
        self._cancel_timer()
        self._drop_transport()
        self.machine.start()
        self._open_transport()

    def send(self, message_type: str, data: Any = None) -> bool:
        if self.state != "open" or self._transport is None:
            return False
        if self._transport.ready_state != OPEN:
            return False
        return bool(self._transport.send(json.dumps({"type": message_type, "data": data})))

    def disconnect(self):
        self._cancel_timer()
        self._drop_transport()
        if self.state != "idle":
            self.machine.stop()

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def _open_transport(self):
        self._generation += 1
        generation = self._generation

        def guarded(handler):
            def callback(*args):
                if generation == self._generation:
                    handler(*args)
            return callback

        try:
            self._transport = self._transport_factory(
                self.url,
                on_open=guarded(self._handle_open),
                on_message=guarded(self._handle_message),
                on_close=guarded(self._handle_close),
            )
        except (OSError, ValueError, RuntimeError) as e:
            logger.error(f"Failed to create WebSocket connection: {e}")
            self._handle_close()

    def _handle_open(self):
        self.machine.opened()
        self.attempts = 0
        self._notified = False
        logger.info(f"WebSocket connected to {self.url}")

    def _handle_message(self, raw):
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to parse WebSocket message: {e}")
            return
        if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
            logger.error(f"Dropping WebSocket message without a type: {raw!r}")
            return

        message = WebSocketMessage(
            type=payload["type"],
            data=payload.get("data"),
            timestamp=self._clock(),
        )
        self.last_message = message
        self.history.append(message)

        for subscriber in list(self._subscribers):
            try:
                subscriber(message)
            except Exception:
                logger.exception(f"Subscriber failed on '{message.type}' message")

    def _handle_close(self):
        self._transport = None
        if self.state not in ("connecting", "open"):
            return

        if self.attempts < self.options.max_attempts:
            delay = self.backoff_delay(self.attempts)
            try:
                timer = self._scheduler.call_later(delay, self._retry)
            except RuntimeError as e:
                # No event loop to wait on: nothing will ever retry
                logger.error(f"Cannot schedule WebSocket reconnect: {e}")
            else:
                self.machine.lost()
                self._timer = timer
                logger.info(f"WebSocket closed, retrying in {delay:.1f}s (attempt {self.attempts + 1})")
                return

        self.machine.give_up()
        logger.warning(f"WebSocket gave up after {self.attempts} reconnect attempt(s)")
        if not self._notified:
            self._notified = True
            self._notifier(CONNECTION_LOST_TITLE, CONNECTION_LOST_DESCRIPTION)

    def _retry(self):
        self._timer = None
        if self.state != "backoff":
            return
        self.attempts += 1
        self.machine.start()
        self._open_transport()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _drop_transport(self):
        # Bumping the generation silences callbacks from the old transport
        self._generation += 1
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()
