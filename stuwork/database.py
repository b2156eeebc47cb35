import logging
from typing import Any, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from stuwork.config import DATABASE_NAME, MONGODB_URI

logger = logging.getLogger(__name__)

client: Optional[AsyncIOMotorClient] = None
db: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo():
    global client, db

    if not MONGODB_URI:
        raise ValueError("MONGODB_URI environment variable is not set! Check your .env file.")

    client = AsyncIOMotorClient(MONGODB_URI)
    db = client[DATABASE_NAME]
    await client.admin.command("ping")
    await ensure_indexes(db)

    if "mongodb+srv" in MONGODB_URI:
        logger.info("✅ Connected to MongoDB Atlas (database=%s)", DATABASE_NAME)
    else:
        logger.info("✅ Connected to MongoDB at %s (database=%s)", MONGODB_URI, DATABASE_NAME)


async def close_mongo_connection():
    if client:
        client.close()
        logger.info("MongoDB connection closed")


async def ensure_indexes(database: AsyncIOMotorDatabase):
    """Create the indexes the services rely on for uniqueness and expiry."""
    await database.users.create_index("email", unique=True)

    # One OTP per (email, purpose); expired codes are reaped by the TTL monitor.
    await database.otps.create_index(
        [("email", ASCENDING), ("purpose", ASCENDING)], unique=True
    )
    await database.otps.create_index("expires_at", expireAfterSeconds=0)

    await database.jobs.create_index([("is_active", ASCENDING), ("created_at", DESCENDING)])
    await database.jobs.create_index("employer_id")
    await database.jobs.create_index("applicants.user_id")

    await database.notifications.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])


def get_db() -> AsyncIOMotorDatabase:
    return db


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for ``value`` or None if it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def to_str_id(doc: Any) -> Any:
    """Recursively turn ``_id`` into ``id`` and every ObjectId into a string."""
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, list):
        return [to_str_id(item) for item in doc]
    if isinstance(doc, dict):
        out = {}
        for key, value in doc.items():
            if key == "_id":
                out["id"] = to_str_id(value)
            else:
                out[key] = to_str_id(value)
        return out
    return doc
