import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from stuwork.utils.auth import get_user_from_token
from stuwork.utils.errors import UnauthorizedError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: Optional[str] = Query(None)):
    """
    Per-user push channel.

    The session token is checked before the handshake completes; every
    accepted socket joins the ``user:<id>`` room shared by all of that
    user's sessions.
    """
    try:
        user = await get_user_from_token(token)
    except UnauthorizedError as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=f"Authentication error: {e.message}")
        return

    channel = websocket.app.state.channel
    user_id = str(user["_id"])

    await websocket.accept()
    channel.join(user_id, websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            # Binary frames are ignored like any other client frame.
            text = message.get("text")
            if text and text.strip().lower() == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        channel.leave(user_id, websocket)
