"""
Game WebSocket endpoint for real-time sessions.

Handles:
- joining / leaving a session room
- GM and player dice rolls
- narration, ambiance and projection updates
- effects applied to characters
- ping / pong keep-alive
"""

import json
import logging

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect

from keeper.realtime.hub import SessionHub, build_event

logger = logging.getLogger(__name__)
game_ws_router = APIRouter(tags=["Realtime"])


def get_hub(request: Request) -> SessionHub:
    return request.app.state.hub


@game_ws_router.websocket("/game-ws")
async def game_websocket(websocket: WebSocket):
    """
    URL: ws://localhost:8000/game-ws

    Clients send {"type": "join_session", "data": {"session_id": ..., "user_id": ...}}
    first, then any of the relayed event types.
    """
    hub: SessionHub = websocket.app.state.hub
    connection = await hub.accept(websocket)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError as e:
                logger.error(f"Failed to parse WebSocket message: {e}")
                await websocket.send_json(build_event("error", "Invalid message format"))
                continue
            await hub.handle(connection, message)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {connection.user_id}")

    except Exception as e:
        # e.g. a binary frame (receive_text has no "text" key for it)
        logger.error(f"WebSocket error for {connection.user_id}: {e}", exc_info=True)
        try:
            await websocket.close(code=1011, reason="Internal error")
        except RuntimeError:
            logger.debug("WebSocket was already closed")

    finally:
        if connection.session_id:
            await hub.leave(connection)
        hub.disconnect(connection)
