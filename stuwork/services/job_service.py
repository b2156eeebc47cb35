import logging
import re
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from stuwork.database import parse_object_id, to_str_id
from stuwork.services.notification_service import NotificationService, get_notification_type
from stuwork.services.realtime import RealtimeChannel
from stuwork.utils.auth import authorize
from stuwork.utils.errors import AlreadyAppliedError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

EMPLOYER_ROLES = ("employer", "admin")
STUDENT_ROLES = ("student",)

JOB_TYPES = ("full-time", "part-time", "internship", "contract")
APPLICATION_STATUSES = ("pending", "accepted", "rejected")

JOB_FIELDS = ("title", "description", "location", "salary", "job_type", "requirements", "skills", "benefits")

APPLICANT_PROFILE = {"name": 1, "email": 1, "skills": 1, "experience": 1, "phone": 1, "address": 1}

ACCEPTED_MESSAGE = 'Congratulations! Your application for "{title}" has been accepted.'
INACTIVE_MESSAGE = "This job is no longer accepting applications"
REJECTED_MESSAGE = (
    'Your application for "{title}" has been reviewed. Unfortunately, '
    "we won't be moving forward with your application at this time."
)


def _employer_summary(employer: Optional[dict], *fields) -> Optional[dict]:
    if not employer:
        return None
    summary = {"id": str(employer["_id"]), "name": employer.get("name")}
    for field in fields:
        summary[field] = employer.get(field)
    return summary


def present_applicant(entry: dict, profile: Optional[dict] = None) -> dict:
    out = {
        "id": str(entry["_id"]),
        "user_id": str(entry["user_id"]),
        "applied_at": entry.get("applied_at"),
        "status": entry.get("status", "pending"),
    }
    if profile is not None:
        out["user"] = to_str_id(profile)
    return out


def present_job(job: dict, employer: Optional[dict] = None, include_applicants: bool = False,
                profiles: Optional[dict] = None) -> dict:
    """Client view of a job document. Applicants are only listed for the owner."""
    applicants = job.get("applicants", [])
    out = {
        "id": str(job["_id"]),
        "employer_id": str(job["employer_id"]),
        "employer": employer,
        "applicant_count": len(applicants),
        "is_active": job.get("is_active", True),
        "completed": job.get("completed", False),
        "created_at": job.get("created_at"),
        "updated_at": job.get("updated_at"),
    }
    for field in JOB_FIELDS:
        out[field] = job.get(field)
    if include_applicants:
        profiles = profiles or {}
        out["applicants"] = [present_applicant(a, profiles.get(a["user_id"])) for a in applicants]
    return out


class JobService:

    def __init__(self, db: AsyncIOMotorDatabase, notifications: NotificationService, channel: RealtimeChannel):
        self.db = db
        self.notifications = notifications
        self.channel = channel

    # ===========================
    # HELPERS
    # ===========================

    async def _get_job(self, job_id) -> dict:
        oid = parse_object_id(job_id)
        if oid is None:
            raise ValidationError("Invalid job ID")
        job = await self.db.jobs.find_one({"_id": oid})
        if not job:
            raise NotFoundError("Job not found")
        return job

    async def _users_by_id(self, user_ids, projection=None) -> dict:
        ids = list({uid for uid in user_ids if uid is not None})
        if not ids:
            return {}
        users = await self.db.users.find({"_id": {"$in": ids}}, projection or {"name": 1}).to_list(len(ids))
        return {u["_id"]: u for u in users}

    async def _notify(self, user_id, message, notification_type, job_id) -> None:
        # Notifications never unwind the mutation that triggered them.
        try:
            await self.notifications.create_notification(user_id, message, notification_type, job_id)
        except Exception:
            logger.exception("Error creating %s notification for %s", notification_type, user_id)

    # ===========================
    # PUBLIC
    # ===========================

    async def list_jobs(
        self,
        search: Optional[str] = None,
        location: Optional[str] = None,
        job_type: Optional[str] = None,
        skills: Optional[str] = None,
        limit: int = 100,
    ) -> List[dict]:
        """Active jobs only, newest first, with optional filters."""
        query = {"is_active": True}

        if search:
            pattern = re.escape(search)
            query["$or"] = [
                {"title": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
            ]
        if location:
            query["location"] = {"$regex": re.escape(location), "$options": "i"}
        if job_type:
            query["job_type"] = job_type
        if skills:
            skill_list = [s.strip() for s in skills.split(",") if s.strip()]
            if skill_list:
                query["skills"] = {"$in": skill_list}

        jobs = await self.db.jobs.find(query).sort("created_at", -1).limit(limit).to_list(limit)
        employers = await self._users_by_id(job["employer_id"] for job in jobs)
        return [present_job(job, _employer_summary(employers.get(job["employer_id"]))) for job in jobs]

    async def get_job(self, job_id) -> dict:
        job = await self._get_job(job_id)
        employer = await self.db.users.find_one(
            {"_id": job["employer_id"]}, {"name": 1, "email": 1, "phone": 1}
        )
        return present_job(job, _employer_summary(employer, "email", "phone"))

    # ===========================
    # EMPLOYER
    # ===========================

    async def create_job(self, user: dict, fields: dict) -> dict:
        authorize(user, EMPLOYER_ROLES, message="Only employers can create jobs")

        now = datetime.utcnow()
        job = {
            "title": fields["title"].strip(),
            "description": fields["description"],
            "location": fields["location"].strip(),
            "salary": fields.get("salary") or "Not specified",
            "job_type": fields.get("job_type") or "full-time",
            "requirements": fields.get("requirements") or [],
            "skills": fields.get("skills") or [],
            "benefits": fields.get("benefits") or "",
            "employer_id": user["_id"],
            "applicants": [],
            "is_active": True,
            "completed": False,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.db.jobs.insert_one(job)
        job["_id"] = result.inserted_id

        presented = present_job(job, _employer_summary(user))
        await self.channel.emit_job_update(str(user["_id"]), {
            "job_id": presented["id"],
            "action": "created",
            "job": presented,
        })
        logger.info("Job %s posted by %s", presented["id"], user["email"])
        return presented

    async def update_job(self, user: dict, job_id, changes: dict) -> dict:
        authorize(user, EMPLOYER_ROLES, message="Only employers can update jobs")
        job = await self._get_job(job_id)
        authorize(user, EMPLOYER_ROLES, owner_id=job["employer_id"],
                  owner_message="You can only update your own jobs")

        update_data = {k: v for k, v in changes.items() if k in JOB_FIELDS}
        if not update_data:
            raise ValidationError("No fields to update")
        update_data["updated_at"] = datetime.utcnow()

        updated = await self.db.jobs.find_one_and_update(
            {"_id": job["_id"]},
            {"$set": update_data},
            return_document=ReturnDocument.AFTER,
        )
        presented = present_job(updated, _employer_summary(user))
        await self.channel.emit_job_update(str(user["_id"]), {
            "job_id": presented["id"],
            "action": "updated",
            "job": presented,
        })
        return presented

    async def complete_job(self, user: dict, job_id) -> dict:
        authorize(user, EMPLOYER_ROLES, message="Only employers can mark jobs completed")
        job = await self._get_job(job_id)
        authorize(user, EMPLOYER_ROLES, owner_id=job["employer_id"],
                  owner_message="You can only update your own jobs")

        await self.db.jobs.update_one(
            {"_id": job["_id"]},
            {"$set": {"completed": True, "is_active": False, "updated_at": datetime.utcnow()}},
        )
        await self.channel.emit_job_update(str(user["_id"]), {
            "job_id": str(job["_id"]),
            "action": "completed",
            "completed": True,
            "is_active": False,
        })
        return {"job_id": str(job["_id"]), "completed": True, "is_active": False}

    async def list_employer_jobs(self, user: dict) -> List[dict]:
        authorize(user, EMPLOYER_ROLES, message="Only employers can view their jobs")

        jobs = await self.db.jobs.find({"employer_id": user["_id"]}).sort("created_at", -1).to_list(1000)
        applicant_ids = [a["user_id"] for job in jobs for a in job.get("applicants", [])]
        profiles = await self._users_by_id(applicant_ids, APPLICANT_PROFILE)

        employer = _employer_summary(user)
        return [present_job(job, employer, include_applicants=True, profiles=profiles) for job in jobs]

    async def set_application_status(self, user: dict, job_id, application_id, status: str) -> dict:
        """
        Move one applicant entry to ``status``.

        Accepting closes the job and rejects every other pending applicant.
        Each affected student gets a notification and an application_update
        push; the employer gets a job_update with the new applicant list.
        """
        authorize(user, EMPLOYER_ROLES, message="Only employers can update application status")
        if status not in APPLICATION_STATUSES:
            raise ValidationError("Invalid application status")

        job = await self._get_job(job_id)
        authorize(user, EMPLOYER_ROLES, owner_id=job["employer_id"],
                  owner_message="You can only update applications for your own jobs")

        app_oid = parse_object_id(application_id)
        if app_oid is None:
            raise NotFoundError("Application not found")

        # Element-level writes only, so concurrent applies are never overwritten.
        update = {"applicants.$.status": status, "updated_at": datetime.utcnow()}
        if status == "accepted":
            update["is_active"] = False
        result = await self.db.jobs.update_one(
            {"_id": job["_id"], "applicants._id": app_oid},
            {"$set": update},
        )
        if result.matched_count == 0:
            raise NotFoundError("Application not found")

        auto_rejected = []
        if status == "accepted":
            # The job is closed now, so this read sees every applicant it ever gets.
            closed = await self.db.jobs.find_one({"_id": job["_id"]}, {"applicants": 1})
            for applicant in closed.get("applicants", []):
                if applicant["_id"] == app_oid or applicant.get("status") != "pending":
                    continue
                rejected = await self.db.jobs.update_one(
                    {"_id": job["_id"],
                     "applicants": {"$elemMatch": {"_id": applicant["_id"], "status": "pending"}}},
                    {"$set": {"applicants.$.status": "rejected"}},
                )
                if rejected.modified_count:
                    auto_rejected.append(applicant)

        job = await self.db.jobs.find_one({"_id": job["_id"]})
        applicants = job.get("applicants", [])
        target = next(a for a in applicants if a["_id"] == app_oid)

        job_id_str = str(job["_id"])
        title = job.get("title", "")

        for applicant in auto_rejected:
            await self._notify(applicant["user_id"], REJECTED_MESSAGE.format(title=title),
                               "application_rejected", job["_id"])
            await self.channel.emit_application_update(str(applicant["user_id"]), job_id_str, {
                "status": "rejected",
                "job_title": title,
            })

        notification_type = get_notification_type(status)
        if notification_type:
            template = ACCEPTED_MESSAGE if status == "accepted" else REJECTED_MESSAGE
            await self._notify(target["user_id"], template.format(title=title), notification_type, job["_id"])
            await self.channel.emit_application_update(str(target["user_id"]), job_id_str, {
                "status": status,
                "job_title": title,
            })

        is_active = job.get("is_active", True)
        await self.channel.emit_job_update(str(user["_id"]), {
            "job_id": job_id_str,
            "action": "applications_updated",
            "applicants": [present_applicant(a) for a in applicants],
            "is_active": is_active,
        })

        return {
            "application": present_applicant(target),
            "is_active": is_active,
            "auto_rejected": len(auto_rejected),
        }

    # ===========================
    # STUDENT
    # ===========================

    async def apply_to_job(self, user: dict, job_id) -> dict:
        authorize(user, STUDENT_ROLES, message="Only students can apply for jobs")
        job = await self._get_job(job_id)

        if not job.get("is_active", True):
            raise ValidationError(INACTIVE_MESSAGE)

        if any(a["user_id"] == user["_id"] for a in job.get("applicants", [])):
            raise AlreadyAppliedError()

        now = datetime.utcnow()
        entry = {"_id": ObjectId(), "user_id": user["_id"], "applied_at": now, "status": "pending"}

        # Conditional push: a concurrent duplicate apply or close matches nothing.
        result = await self.db.jobs.update_one(
            {"_id": job["_id"], "is_active": True, "applicants.user_id": {"$ne": user["_id"]}},
            {"$push": {"applicants": entry}, "$set": {"updated_at": now}},
        )
        if result.modified_count == 0:
            current = await self.db.jobs.find_one({"_id": job["_id"]}, {"is_active": 1})
            if current is None:
                raise NotFoundError("Job not found")
            if not current.get("is_active", True):
                raise ValidationError(INACTIVE_MESSAGE)
            raise AlreadyAppliedError()

        applicant_name = user.get("name") or "A student"
        await self._notify(job["employer_id"], f'{applicant_name} applied for "{job.get("title")}".',
                           "new_application", job["_id"])
        await self.channel.emit_new_application(str(job["employer_id"]), {
            "job_id": str(job["_id"]),
            "job_title": job.get("title"),
            "application_id": str(entry["_id"]),
            "applicant_name": user.get("name"),
            "applicant_id": str(user["_id"]),
            "applied_at": now,
        })
        return present_applicant(entry)

    async def list_student_applications(self, user: dict) -> List[dict]:
        authorize(user, STUDENT_ROLES, message="Only students can view their applications")

        jobs = await self.db.jobs.find({"applicants.user_id": user["_id"]}).sort("created_at", -1).to_list(500)
        employers = await self._users_by_id(job["employer_id"] for job in jobs)

        result = []
        for job in jobs:
            own = next((a for a in job.get("applicants", []) if a["user_id"] == user["_id"]), None)
            if own is None:
                continue
            item = present_job(job, _employer_summary(employers.get(job["employer_id"])))
            item["application_id"] = str(own["_id"])
            item["application_status"] = own.get("status", "pending")
            item["applied_at"] = own.get("applied_at")
            result.append(item)
        return result
