"""
Per-user broadcast rooms over WebSocket connections.

One ``RealtimeChannel`` is built by the application and handed to the services
that push events. Every push is best-effort and at-most-once: a socket that
fails to receive a frame is dropped from its room and the caller never sees
the error.
"""
import logging
from collections import defaultdict
from typing import Any, Dict, Set

from bson import ObjectId
from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

NEW_NOTIFICATION = "new_notification"
APPLICATION_UPDATE = "application_update"
JOB_UPDATE = "job_update"
NEW_APPLICATION = "new_application"


def room_for(user_id) -> str:
    return f"user:{user_id}"


class RealtimeChannel:

    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = defaultdict(set)

    def join(self, user_id, websocket: WebSocket) -> str:
        room = room_for(user_id)
        self.rooms[room].add(websocket)
        logger.info("🔌 User connected: %s (%d session(s))", user_id, len(self.rooms[room]))
        return room

    def leave(self, user_id, websocket: WebSocket) -> None:
        room = room_for(user_id)
        sockets = self.rooms.get(room)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            del self.rooms[room]
        logger.info("User disconnected: %s", user_id)

    def connection_count(self, user_id) -> int:
        return len(self.rooms.get(room_for(user_id), ()))

    async def emit(self, user_id, event: str, data: Any) -> int:
        """Push ``event`` to every session of ``user_id``. Returns frames delivered."""
        room = room_for(user_id)
        sockets = list(self.rooms.get(room, ()))
        if not sockets:
            return 0

        frame = jsonable_encoder({"event": event, "data": data}, custom_encoder={ObjectId: str})
        delivered = 0
        for websocket in sockets:
            try:
                await websocket.send_json(frame)
                delivered += 1
            except Exception as e:
                # A dead socket must not break the emitting request.
                logger.warning("Dropping socket in %s after failed %s push: %s", room, event, e)
                self.leave(user_id, websocket)
        return delivered

    async def emit_notification(self, user_id, notification: dict) -> int:
        delivered = await self.emit(user_id, NEW_NOTIFICATION, notification)
        logger.info("📬 Notification sent to user: %s", user_id)
        return delivered

    async def emit_application_update(self, user_id, job_id, application_data: dict) -> int:
        delivered = await self.emit(user_id, APPLICATION_UPDATE, {"job_id": job_id, **application_data})
        logger.info("📝 Application update sent to user: %s", user_id)
        return delivered

    async def emit_job_update(self, user_id, job_data: dict) -> int:
        delivered = await self.emit(user_id, JOB_UPDATE, job_data)
        logger.info("💼 Job update sent to user: %s", user_id)
        return delivered

    async def emit_new_application(self, employer_id, application_data: dict) -> int:
        delivered = await self.emit(employer_id, NEW_APPLICATION, application_data)
        logger.info("📥 New application notification sent to employer: %s", employer_id)
        return delivered
