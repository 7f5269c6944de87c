"""
Tests for the reconnecting realtime channel, driven by an in-memory
transport and a manual scheduler so every reconnect step is deterministic.
"""

import json

import pytest
from statemachine.exceptions import TransitionNotAllowed

from keeper.realtime.channel import (
    ChannelOptions,
    ChannelStateMachine,
    RealtimeChannel,
    resolve_endpoint,
)
from keeper.realtime.transport import CLOSED, CONNECTING, OPEN


class FakeTransport:
    def __init__(self, url, on_open, on_message, on_close):
        self.url = url
        self.ready_state = CONNECTING
        self.on_open = on_open
        self.on_message = on_message
        self.on_close = on_close
        self.sent = []
        self.closed = False

    # Server-side events
    def accept(self):
        self.ready_state = OPEN
        self.on_open()

    def deliver(self, raw):
        self.on_message(raw)

    def drop(self):
        self.ready_state = CLOSED
        self.on_close()

    # Client API
    def send(self, text):
        self.sent.append(text)
        return True

    def close(self):
        self.closed = True
        self.ready_state = CLOSED
        self.on_close()


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def fire_next(self):
        handle = self.pending[0]
        self.handles.remove(handle)
        handle.callback()
        return handle


@pytest.fixture
def transports():
    return []


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def notifications():
    return []


@pytest.fixture
def channel(transports, scheduler, notifications):
    def factory(url, **callbacks):
        transport = FakeTransport(url, **callbacks)
        transports.append(transport)
        return transport

    return RealtimeChannel(
        "/game-ws",
        page_url="https://table.example:8443/sessions/abc",
        transport_factory=factory,
        scheduler=scheduler,
        clock=lambda: 1234,
        notifier=lambda title, description: notifications.append((title, description)),
    )


def open_channel(channel, transports):
    channel.connect()
    transports[-1].accept()
    return transports[-1]


# ============================================================================
# Endpoint resolution
# ============================================================================

def test_resolve_endpoint_secure_page():
    assert resolve_endpoint("/game-ws", "https://table.example") == "wss://table.example/game-ws"


def test_resolve_endpoint_plain_page():
    assert resolve_endpoint("/game-ws", "http://localhost:5000/x") == "ws://localhost:5000/game-ws"
    assert resolve_endpoint("game-ws", "http://localhost:5000") == "ws://localhost:5000/game-ws"


def test_resolve_endpoint_absolute_passthrough():
    assert resolve_endpoint("wss://other.example/ws") == "wss://other.example/ws"
    assert resolve_endpoint("ws://10.0.0.2:8000/game-ws", "https://x") == "ws://10.0.0.2:8000/game-ws"


def test_channel_uses_resolved_url(channel, transports):
    channel.connect()
    assert transports[0].url == "wss://table.example:8443/game-ws"


# ============================================================================
# Connection lifecycle
# ============================================================================

def test_initial_state_is_idle(channel):
    assert channel.state == "idle"
    assert not channel.is_connected


def test_connect_then_open(channel, transports):
    channel.connect()
    assert channel.state == "connecting"
    transports[0].accept()
    assert channel.state == "open"
    assert channel.is_connected
    assert channel.attempts == 0


def test_connect_is_noop_while_connecting(channel, transports):
    channel.connect()
    channel.connect()
    assert len(transports) == 1


def test_backoff_delays_double_and_cap(channel):
    assert [channel.backoff_delay(n) for n in range(6)] == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]


def test_drop_schedules_reconnect(channel, transports, scheduler):
    open_channel(channel, transports).drop()

    assert channel.state == "backoff"
    assert not channel.is_connected
    assert [h.delay for h in scheduler.pending] == [1.0]

    scheduler.fire_next()
    assert channel.attempts == 1
    assert channel.state == "connecting"
    assert len(transports) == 2


def test_successful_reopen_resets_attempts(channel, transports, scheduler):
    open_channel(channel, transports).drop()
    scheduler.fire_next()
    transports[-1].drop()
    scheduler.fire_next()
    assert channel.attempts == 2

    transports[-1].accept()
    assert channel.attempts == 0
    transports[-1].drop()
    assert scheduler.pending[0].delay == 1.0


def test_notifies_once_after_attempts_exhausted(channel, transports, scheduler, notifications):
    open_channel(channel, transports).drop()

    for attempt in range(5):
        assert scheduler.pending[0].delay == min(2 ** attempt, 10)
        scheduler.fire_next()
        transports[-1].drop()

    assert channel.state == "failed"
    assert channel.attempts == 5
    assert notifications == [("Connection lost", "Unable to reconnect to the server")]
    assert scheduler.pending == []

    # A further failed (manual) attempt stays quiet
    channel.reconnect()
    transports[-1].drop()
    assert channel.state == "failed"
    assert len(notifications) == 1


def test_notification_rearms_after_recovery(channel, transports, scheduler, notifications):
    options = ChannelOptions(max_attempts=1)
    channel.options = options

    open_channel(channel, transports).drop()
    scheduler.fire_next()
    transports[-1].drop()
    assert len(notifications) == 1

    channel.reconnect()
    transports[-1].accept()
    transports[-1].drop()
    scheduler.fire_next()
    transports[-1].drop()
    assert len(notifications) == 2


def test_transport_factory_failure_counts_as_close(scheduler, notifications):
    def broken_factory(url, **callbacks):
        raise OSError("network unreachable")

    channel = RealtimeChannel(
        "ws://localhost:1/game-ws",
        transport_factory=broken_factory,
        scheduler=scheduler,
        notifier=lambda *args: notifications.append(args),
    )
    channel.connect()
    assert channel.state == "backoff"
    assert scheduler.pending[0].delay == 1.0


def test_connect_without_event_loop_fails_quietly(notifications):
    """Real transport and scheduler, but no running loop to drive them."""
    channel = RealtimeChannel(
        "ws://127.0.0.1:9/game-ws",
        notifier=lambda title, description: notifications.append((title, description)),
    )
    channel.connect()

    assert channel.state == "failed"
    assert not channel.is_connected
    assert notifications == [("Connection lost", "Unable to reconnect to the server")]
    assert channel.send("ping") is False

    channel.disconnect()
    assert channel.state == "idle"


# ============================================================================
# Inbound messages
# ============================================================================

def test_inbound_message_is_timestamped(channel, transports):
    received = []
    channel.subscribe(received.append)
    transport = open_channel(channel, transports)

    transport.deliver(json.dumps({"type": "narration", "data": {"text": "The door creaks."}}))

    assert channel.last_message.type == "narration"
    assert channel.last_message.data == {"text": "The door creaks."}
    assert channel.last_message.timestamp == 1234
    assert received == [channel.last_message]


def test_history_keeps_last_hundred(channel, transports):
    transport = open_channel(channel, transports)
    for i in range(150):
        transport.deliver(json.dumps({"type": "tick", "data": i}))

    assert len(channel.history) == 100
    assert [m.data for m in channel.history] == list(range(50, 150))
    assert channel.last_message.data == 149


@pytest.mark.parametrize("raw", ["not json", "[1, 2, 3]", '{"data": 1}', '"hello"'])
def test_malformed_frames_are_dropped(channel, transports, raw):
    transport = open_channel(channel, transports)
    transport.deliver(raw)

    assert channel.last_message is None
    assert len(channel.history) == 0
    assert channel.state == "open"


def test_failing_subscriber_does_not_break_channel(channel, transports):
    def explode(message):
        raise RuntimeError("listener bug")

    channel.subscribe(explode)
    transport = open_channel(channel, transports)
    transport.deliver(json.dumps({"type": "ping"}))

    assert len(channel.history) == 1
    assert channel.state == "open"


def test_unsubscribe(channel, transports):
    received = []
    unsubscribe = channel.subscribe(received.append)
    transport = open_channel(channel, transports)
    unsubscribe()
    transport.deliver(json.dumps({"type": "ping"}))
    assert received == []


# ============================================================================
# Sending
# ============================================================================

def test_send_before_open_returns_false(channel, transports):
    assert channel.send("player_roll", {"result": 42}) is False
    channel.connect()
    assert channel.send("player_roll", {"result": 42}) is False
    assert transports[0].sent == []


def test_send_when_open(channel, transports):
    transport = open_channel(channel, transports)
    assert channel.send("narration", {"text": "Hello"}) is True
    assert json.loads(transport.sent[0]) == {"type": "narration", "data": {"text": "Hello"}}


def test_send_after_drop_is_not_queued(channel, transports):
    transport = open_channel(channel, transports)
    transport.drop()
    assert channel.send("narration", "lost") is False
    assert transport.sent == []


# ============================================================================
# Disconnect
# ============================================================================

def test_disconnect_closes_and_stays_idle(channel, transports, scheduler):
    transport = open_channel(channel, transports)
    channel.disconnect()

    assert transport.closed
    assert channel.state == "idle"
    # The close callback from the old transport must not trigger a reconnect
    assert scheduler.pending == []


def test_disconnect_cancels_pending_reconnect(channel, transports, scheduler):
    open_channel(channel, transports).drop()
    handle = scheduler.pending[0]

    channel.disconnect()
    assert handle.cancelled
    assert channel.state == "idle"


def test_disconnect_is_idempotent(channel, transports):
    channel.disconnect()
    open_channel(channel, transports)
    channel.disconnect()
    channel.disconnect()
    assert channel.state == "idle"


def test_stale_transport_events_are_ignored(channel, transports):
    first = open_channel(channel, transports)
    channel.reconnect()
    second = transports[-1]

    first.deliver(json.dumps({"type": "ghost"}))
    assert channel.last_message is None
    second.accept()
    assert channel.state == "open"


# ============================================================================
# State machine
# ============================================================================

def test_state_machine_rejects_invalid_transition():
    machine = ChannelStateMachine()
    with pytest.raises(TransitionNotAllowed):
        machine.opened()
