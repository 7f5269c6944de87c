"""
Server side of the realtime layer: tracks which sockets joined which game
session and relays event envelopes between them.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import WebSocket, WebSocketDisconnect

from keeper.schema_loader import validate_data

logger = logging.getLogger(__name__)

# Relayed to everyone in the session except the sender
RELAY_EXCEPT_SENDER = {"gm_roll", "ambiance", "narration", "projection_update"}
# Relayed to everyone, sender included
RELAY_TO_ALL = {"effect_applied"}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_event(event_type: str, data: Any = None) -> Dict[str, Any]:
    """Outbound envelope: {type, data, timestamp}."""
    return {"type": event_type, "data": data, "timestamp": utc_now_iso()}


class GameConnection:
    """One accepted socket and the session it joined (if any)."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.session_id: Optional[str] = None
        self.user_id: Optional[str] = None


class SessionHub:
    """Manages WebSocket connections grouped by game session."""

    def __init__(self):
        # session_id → connections joined to it
        self.sessions: Dict[str, List[GameConnection]] = {}

    async def accept(self, websocket: WebSocket) -> GameConnection:
        await websocket.accept()
        connection = GameConnection(websocket)
        logger.info("New WebSocket connection established")
        await self._send(connection, build_event("connected", "Connected to Call of Cthulhu game server"))
        return connection

    def connected_users(self, session_id: str) -> List[Optional[str]]:
        return [conn.user_id for conn in self.sessions.get(session_id, [])]

    # ------------------------------------------------------------------
    # Session membership
    # ------------------------------------------------------------------

    async def join(self, connection: GameConnection, session_id: str, user_id: Optional[str]):
        if connection.session_id and connection.session_id != session_id:
            await self.leave(connection)

        connection.session_id = session_id
        connection.user_id = user_id
        members = self.sessions.setdefault(session_id, [])
        if connection not in members:
            members.append(connection)
        logger.info(f"User {user_id} joined session {session_id}")

        await self.broadcast(session_id, build_event("user_joined", {"user_id": user_id}), exclude=connection)
        await self._send(connection, build_event("joined_session", {"session_id": session_id}))

    async def leave(self, connection: GameConnection):
        session_id = connection.session_id
        if session_id is None:
            return

        remaining = self._remove(connection)
        if remaining:
            await self.broadcast(session_id, build_event("user_left", {"user_id": connection.user_id}))
        logger.info(f"User {connection.user_id} left session {session_id}")

        connection.session_id = None
        connection.user_id = None

    def disconnect(self, connection: GameConnection):
        """Forget a closed socket without notifying anyone."""
        self._remove(connection)
        logger.info("WebSocket connection closed")

    def _remove(self, connection: GameConnection) -> int:
        members = self.sessions.get(connection.session_id)
        if not members:
            return 0
        if connection in members:
            members.remove(connection)
        if not members:
            del self.sessions[connection.session_id]
            return 0
        return len(members)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def broadcast(self, session_id: Optional[str], message: dict, exclude: Optional[GameConnection] = None):
        """Send to every connection in a session; dead sockets are pruned."""
        if not session_id or session_id not in self.sessions:
            return

        dead = []
        for connection in list(self.sessions[session_id]):
            if connection is exclude:
                continue
            if not await self._send(connection, message):
                dead.append(connection)

        for connection in dead:
            self._remove(connection)

    async def _send(self, connection: GameConnection, message: dict) -> bool:
        try:
            await connection.websocket.send_json(message)
            return True
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.warning(f"Failed to send to {connection.user_id}: {e}")
            return False

    # ------------------------------------------------------------------
    # Inbound routing
    # ------------------------------------------------------------------

    async def handle(self, connection: GameConnection, message: Any):
        problem = validate_data(message, "ws_envelope")
        if problem is not True:
            await self._send(connection, build_event("error", "Invalid message format"))
            return

        message_type = message["type"]
        data = message.get("data")

        if message_type == "join_session":
            if isinstance(data, dict) and data.get("session_id"):
                await self.join(connection, str(data["session_id"]), data.get("user_id"))
            else:
                await self._send(connection, build_event("error", "join_session requires a session_id"))

        elif message_type == "leave_session":
            await self.leave(connection)

        elif message_type == "player_roll":
            if validate_data(data, "roll_event") is not True:
                await self._send(connection, build_event("error", "Invalid roll payload"))
                return
            payload = {**data, "user_id": connection.user_id}
            await self.broadcast(connection.session_id, build_event("player_roll", payload))

        elif message_type in RELAY_EXCEPT_SENDER:
            await self.broadcast(connection.session_id, build_event(message_type, data), exclude=connection)

        elif message_type in RELAY_TO_ALL:
            await self.broadcast(connection.session_id, build_event(message_type, data))

        elif message_type == "ping":
            await self._send(connection, build_event("pong"))

        else:
            logger.info(f"Unknown message type: {message_type}")
