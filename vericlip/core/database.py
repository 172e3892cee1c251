"""
MongoDB access for uploads and verification reports (Motor, async).

Collections:
  video_uploads         — one row per uploaded video, carries processing status
  verification_reports  — append-only report history, one insert per successful run

`db_client` is opened in the app lifespan and closed on shutdown. When Mongo
is unreachable at startup the API keeps serving: /health reports the
database as disconnected and routes that need it answer 503.
"""

import logging
import re

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from vericlip.core.config import settings

logger = logging.getLogger(__name__)

UPLOADS_COLLECTION = "video_uploads"
REPORTS_COLLECTION = "verification_reports"

# (collection, keys) pairs backing the dashboard and archive queries.
_INDEXES = (
    (UPLOADS_COLLECTION, [("user_id", ASCENDING), ("status", ASCENDING)]),
    (REPORTS_COLLECTION, [("user_id", ASCENDING), ("created_at", DESCENDING)]),
    (REPORTS_COLLECTION, [("video_id", ASCENDING)]),
)


async def ensure_indexes(db) -> None:
    for collection, keys in _INDEXES:
        await db[collection].create_index(keys)


class DatabaseClient:
    """Motor client plus the selected database; tests swap `.client` / `.db`."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None

    async def connect(self, uri: str, db_name: str) -> None:
        logger.info("Connecting to MongoDB at %s", _redact_uri(uri))
        try:
            self.client = AsyncIOMotorClient(uri, serverSelectionTimeoutMS=5000, tlsCAFile=certifi.where())
            self.db = self.client[db_name]
            await self.client.admin.command("ping")
            await ensure_indexes(self.db)
        except Exception as exc:
            logger.warning("MongoDB unavailable at startup (%s); uploads and reports will answer 503", exc)
            self.client = None
            self.db = None
            return
        logger.info("MongoDB ready (db: %s)", db_name)

    def close(self) -> None:
        if self.client is None:
            return
        self.client.close()
        self.client = None
        self.db = None
        logger.info("MongoDB connection closed")


db_client = DatabaseClient()


async def connect_to_mongo() -> None:
    await db_client.connect(settings.mongo_uri, settings.mongo_db_name)


async def close_mongo_connection() -> None:
    db_client.close()


def get_db() -> AsyncIOMotorDatabase | None:
    """FastAPI dependency; None while Mongo is unavailable."""
    return db_client.db


def _redact_uri(uri: str) -> str:
    """Hide the userinfo part of a Mongo URI (user, or user:password)."""
    return re.sub(r"://[^/@]+@", "://<redacted>@", uri)
