"""
Transport and timer seams for the realtime channel.

The channel never touches the network or the clock directly: it asks a
transport factory for a connection and a scheduler for timers, so the
reconnect logic runs the same against a real socket or a test double.
"""

import asyncio
import logging
import time

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

logger = logging.getLogger(__name__)

# Mirrors the browser WebSocket readyState values
CONNECTING = 0
OPEN = 1
CLOSING = 2
CLOSED = 3


def epoch_millis():
    return int(time.time() * 1000)


class LoopScheduler:
    """Timers on an asyncio event loop."""

    def __init__(self, loop=None):
        self._loop = loop

    @property
    def loop(self):
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay_seconds, callback):
        """Returns a handle with cancel()."""
        return self.loop.call_later(delay_seconds, callback)


class WebSocketsTransport:
    """
    One WebSocket connection driven by the `websockets` asyncio client.

    Callbacks:
    - on_open(): the handshake completed
    - on_message(raw): one text/binary frame arrived
    - on_close(): the connection ended for any reason (handshake failure included)
    """

    def __init__(self, url, on_open, on_message, on_close, loop=None):
        self.url = url
        self.ready_state = CONNECTING
        self._on_open = on_open
        self._on_message = on_message
        self._on_close = on_close
        self._socket = None
        self._pending = set()
        self._loop = loop or asyncio.get_running_loop()
        self._task = self._loop.create_task(self._run())

    async def _run(self):
        try:
            async with websockets.connect(self.url) as socket:
                self._socket = socket
                self.ready_state = OPEN
                self._on_open()
                async for frame in socket:
                    self._on_message(frame)
        except ConnectionClosed as e:
            logger.info(f"WebSocket closed: {e}")
        except asyncio.CancelledError:
            logger.debug(f"WebSocket task cancelled for {self.url}")
            raise
        except (OSError, InvalidHandshake, InvalidURI) as e:
            logger.error(f"WebSocket error: {e}")
        finally:
            self._socket = None
            self.ready_state = CLOSED
            self._on_close()

    def send(self, text):
        if self.ready_state != OPEN or self._socket is None:
            return False
        self._spawn(self._socket.send(text))
        return True

    def close(self):
        if self.ready_state in (CLOSING, CLOSED):
            return
        self.ready_state = CLOSING
        if self._socket is not None:
            self._spawn(self._socket.close())
        else:
            self._task.cancel()

    def _spawn(self, coro):
        task = self._loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task):
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"WebSocket operation on {self.url} failed: {error}")
