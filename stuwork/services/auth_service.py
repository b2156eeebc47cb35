import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from stuwork.config import OTP_EXPIRE_MINUTES
from stuwork.utils.auth import create_access_token
from stuwork.utils.email import Mailer
from stuwork.utils.errors import (
    ConflictError,
    DuplicateUserError,
    EmailDeliveryError,
    InvalidCredentialsError,
    InvalidOrExpiredOtpError,
    NotFoundError,
    ValidationError,
)
from stuwork.utils.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)

REGISTRATION = "registration"
PASSWORD_RESET = "password_reset"
OTP_PURPOSES = (REGISTRATION, PASSWORD_RESET)

ROLES = ("student", "employer", "admin")

PROFILE_FIELDS = ("name", "phone", "skills", "experience", "address", "headline", "about")


def generate_otp() -> str:
    """Generate a uniformly random 6-digit OTP (100000-999999)."""
    return str(100000 + secrets.randbelow(900000))


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(user: dict) -> dict:
    """User fields that are safe to return to clients."""
    out = {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role"),
    }
    for field in PROFILE_FIELDS:
        if field != "name":
            out[field] = user.get(field)
    out["is_verified"] = user.get("is_verified", False)
    out["created_at"] = user.get("created_at")
    return out


class AuthService:

    def __init__(self, db: AsyncIOMotorDatabase, mailer: Mailer):
        self.db = db
        self.mailer = mailer

    # ===========================
    # OTP
    # ===========================

    async def send_otp(self, email: str, purpose: str = REGISTRATION) -> str:
        """
        Issue a fresh OTP for (email, purpose) and deliver it.

        Registration codes are refused for existing accounts and reset codes
        for unknown ones. Older codes for the same pair are purged first, so
        at most one code is valid at a time. Returns the normalized email.
        """
        if purpose not in OTP_PURPOSES:
            raise ValidationError("Invalid OTP purpose")

        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required")

        existing_user = await self.db.users.find_one({"email": email})
        if purpose == REGISTRATION and existing_user:
            raise DuplicateUserError()
        if purpose == PASSWORD_RESET and not existing_user:
            raise NotFoundError("No account found with this email")

        otp = generate_otp()
        now = datetime.utcnow()

        await self.db.otps.delete_many({"email": email, "purpose": purpose})
        try:
            await self.db.otps.insert_one({
                "email": email,
                "otp": otp,
                "purpose": purpose,
                "is_used": False,
                "created_at": now,
                "expires_at": now + timedelta(minutes=OTP_EXPIRE_MINUTES),
            })
        except DuplicateKeyError:
            raise ConflictError("An OTP request for this email is already in progress. Please try again.")

        delivered = await self.mailer.send_otp_email(email, otp, purpose)
        if not delivered:
            if purpose == PASSWORD_RESET:
                raise EmailDeliveryError("Failed to send reset OTP email")
            raise EmailDeliveryError()

        logger.info("OTP issued for %s (%s)", email, purpose)
        return email

    async def consume_otp(self, email: str, otp: str, purpose: str) -> dict:
        """
        Atomically mark a matching OTP as used.

        A record matches only when email, code and purpose are equal, it is
        unused and it has not expired.
        """
        record = await self.db.otps.find_one_and_update(
            {
                "email": normalize_email(email),
                "otp": otp,
                "purpose": purpose,
                "is_used": False,
                "expires_at": {"$gt": datetime.utcnow()},
            },
            {"$set": {"is_used": True, "used_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if record is None:
            raise InvalidOrExpiredOtpError()
        return record

    # ===========================
    # ACCOUNTS
    # ===========================

    async def verify_and_register(
        self,
        name: str,
        email: str,
        password: str,
        otp: str,
        role: Optional[str] = None,
        phone: Optional[str] = None,
        skills=None,
    ) -> Tuple[str, dict]:
        email = normalize_email(email)
        role = (role or "student").lower()
        if role not in ROLES:
            raise ValidationError("Invalid role")

        if await self.db.users.find_one({"email": email}):
            raise DuplicateUserError("User already exists")

        await self.consume_otp(email, otp, REGISTRATION)

        now = datetime.utcnow()
        user = {
            "name": name.strip(),
            "email": email,
            "password": get_password_hash(password),
            "role": role,
            "phone": phone,
            "skills": skills or [],
            "is_verified": True,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.db.users.insert_one(user)
        except DuplicateKeyError:
            raise DuplicateUserError("User already exists")
        user["_id"] = result.inserted_id

        # Best-effort: the account exists whether or not this goes out.
        try:
            sent = await self.mailer.send_welcome_email(email, user["name"])
            if not sent:
                logger.warning("Welcome email to %s was not delivered", email)
        except Exception as e:
            logger.error("Welcome email to %s failed: %s", email, e)

        logger.info("New %s registered: %s", role, email)
        return create_access_token(user["_id"]), public_user(user)

    async def login(self, email: str, password: str) -> Tuple[str, dict]:
        user = await self.db.users.find_one({"email": normalize_email(email)})
        if not user or not verify_password(password, user.get("password")):
            raise InvalidCredentialsError()

        return create_access_token(user["_id"]), public_user(user)

    async def reset_password(self, email: str, otp: str, new_password: str) -> None:
        email = normalize_email(email)

        await self.consume_otp(email, otp, PASSWORD_RESET)

        user = await self.db.users.find_one({"email": email})
        if not user:
            raise NotFoundError("User not found")

        await self.db.users.update_one(
            {"_id": user["_id"]},
            {"$set": {
                "password": get_password_hash(new_password),
                "password_reset_at": datetime.utcnow(),
                "updated_at": datetime.utcnow(),
            }},
        )
        await self.db.otps.delete_many({"email": email, "purpose": PASSWORD_RESET})
        logger.info("Password reset for %s", email)

    # ===========================
    # PROFILE
    # ===========================

    async def get_profile(self, user: dict) -> dict:
        return public_user(user)

    async def update_profile(self, user: dict, changes: dict) -> dict:
        update_data = {k: v for k, v in changes.items() if k in PROFILE_FIELDS}
        if not update_data:
            return public_user(user)

        update_data["updated_at"] = datetime.utcnow()
        updated = await self.db.users.find_one_and_update(
            {"_id": user["_id"]},
            {"$set": update_data},
            return_document=ReturnDocument.AFTER,
        )
        return public_user(updated)
