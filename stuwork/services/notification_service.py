import logging
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from stuwork.database import parse_object_id, to_str_id
from stuwork.services.realtime import RealtimeChannel
from stuwork.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = (
    "application_accepted",
    "application_rejected",
    "job_posted",
    "job_removed",
    "new_application",
)


class NotificationService:
    """Stores per-user notifications and relays each new one to the user's room."""

    def __init__(self, db: AsyncIOMotorDatabase, channel: RealtimeChannel):
        self.db = db
        self.channel = channel

    async def _related_jobs(self, job_ids) -> dict:
        ids = [job_id for job_id in set(job_ids) if job_id is not None]
        if not ids:
            return {}
        jobs = await self.db.jobs.find({"_id": {"$in": ids}}, {"title": 1}).to_list(len(ids))
        return {job["_id"]: {"id": str(job["_id"]), "title": job.get("title")} for job in jobs}

    def _present(self, notification: dict, related_jobs: dict) -> dict:
        out = to_str_id(notification)
        out["related_job"] = related_jobs.get(notification.get("related_job_id"))
        return out

    async def create_notification(
        self,
        user_id,
        message: str,
        notification_type: str,
        related_job_id=None,
    ) -> dict:
        """Persist a notification, then push it to the user's room."""
        if notification_type not in NOTIFICATION_TYPES:
            raise ValidationError(f"Unknown notification type: {notification_type}")

        notification = {
            "user_id": parse_object_id(user_id),
            "message": message,
            "type": notification_type,
            "related_job_id": parse_object_id(related_job_id),
            "read": False,
            "created_at": datetime.utcnow(),
        }
        result = await self.db.notifications.insert_one(notification)
        notification["_id"] = result.inserted_id

        related = await self._related_jobs([notification["related_job_id"]])
        payload = self._present(notification, related)

        try:
            await self.channel.emit_notification(str(user_id), payload)
        except Exception as e:
            logger.error("Failed to relay notification %s to %s: %s", payload["id"], user_id, e)

        return payload

    async def list_notifications(self, user: dict) -> List[dict]:
        notifications = await self.db.notifications.find(
            {"user_id": user["_id"]}
        ).sort("created_at", -1).to_list(500)

        related = await self._related_jobs(n.get("related_job_id") for n in notifications)
        return [self._present(n, related) for n in notifications]

    async def mark_read(self, user: dict, notification_id: str) -> None:
        oid = parse_object_id(notification_id)
        if oid is None:
            raise ValidationError("Invalid notification ID")

        result = await self.db.notifications.update_one(
            {"_id": oid, "user_id": user["_id"]},
            {"$set": {"read": True}},
        )
        if result.matched_count == 0:
            raise NotFoundError("Notification not found")

    async def mark_all_read(self, user: dict) -> int:
        result = await self.db.notifications.update_many(
            {"user_id": user["_id"], "read": False},
            {"$set": {"read": True}},
        )
        return result.modified_count


def get_notification_type(status: str) -> Optional[str]:
    """Notification type for an application status, None when nothing is sent."""
    return {
        "accepted": "application_accepted",
        "rejected": "application_rejected",
    }.get(status)
