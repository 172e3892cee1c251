"""
report_store.py — Persistence collaborator for the verification pipeline.

Wraps the Motor database with the handful of operations the pipeline and
routes need:
  - public_url(path)         storage path → public video URL
  - insert_report(fields)    one insert per successful run (never updated)
  - update_status(id, s)     upload status transitions
  - claim_pending(id)        atomic pending → processing, so a video gets one run
plus read helpers for the report / dashboard routes.

Errors from Motor propagate unchanged; the pipeline treats any of them as
fatal for the run.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote

from bson import ObjectId

from vericlip.core.config import settings
from vericlip.core.database import REPORTS_COLLECTION, UPLOADS_COLLECTION
from vericlip.models.verification import (
    ReportMetadata,
    SentimentDistribution,
    UploadStatus,
    UserStats,
    VerificationReport,
    VideoUploadCreate,
    VideoUploadRecord,
)

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """A write did not affect the row it targeted."""


# ── Document mappers ──────────────────────────────────────────────────────────

def doc_to_upload(doc: dict) -> VideoUploadRecord:
    return VideoUploadRecord(
        id=str(doc["_id"]),
        user_id=doc.get("user_id", ""),
        filename=doc.get("filename", ""),
        file_url=doc.get("file_url", ""),
        file_size=doc.get("file_size", 0),
        content_type=doc.get("content_type", "video/mp4"),
        status=doc.get("status", "pending"),
        upload_date=doc.get("upload_date", datetime.now(tz=timezone.utc)),
    )


def doc_to_report(doc: dict) -> VerificationReport:
    metadata_raw = doc.get("metadata")
    return VerificationReport(
        id=str(doc["_id"]),
        video_id=doc.get("video_id", ""),
        user_id=doc.get("user_id", ""),
        authenticity_score=doc.get("authenticity_score", 0),
        deepfake_likelihood=doc.get("deepfake_likelihood", 50),
        transcript=doc.get("transcript", ""),
        sentiment_analysis=SentimentDistribution(**doc.get("sentiment_analysis", {"positive": 33, "negative": 33, "neutral": 34})),
        tampering_indicators=doc.get("tampering_indicators", []),
        key_frames=doc.get("key_frames", []),
        metadata=ReportMetadata(**metadata_raw) if metadata_raw else None,
        created_at=doc.get("created_at", datetime.now(tz=timezone.utc)),
    )


# ── Store ─────────────────────────────────────────────────────────────────────

class ReportStore:
    def __init__(self, db: Any) -> None:
        self.db = db

    @property
    def uploads(self):
        return self.db[UPLOADS_COLLECTION]

    @property
    def reports(self):
        return self.db[REPORTS_COLLECTION]

    @staticmethod
    def public_url(path: str) -> str:
        base = settings.storage_public_base_url.rstrip("/")
        return f"{base}/{settings.storage_bucket}/{quote(path.lstrip('/'))}"

    # ── Uploads ───────────────────────────────────────────────────────────────

    async def create_upload(self, payload: VideoUploadCreate, status: UploadStatus = "pending") -> VideoUploadRecord:
        doc = {
            "user_id": payload.user_id,
            "filename": payload.filename,
            "file_url": payload.storage_path,
            "file_size": payload.file_size,
            "content_type": payload.content_type,
            "status": status,
            "upload_date": datetime.now(tz=timezone.utc),
        }
        result = await self.uploads.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info("Registered upload %s for user %s (%s)", result.inserted_id, payload.user_id, status)
        return doc_to_upload(doc)

    async def get_upload(self, video_id: str) -> Optional[VideoUploadRecord]:
        doc = await self.uploads.find_one({"_id": ObjectId(video_id)})
        return doc_to_upload(doc) if doc else None

    async def update_status(self, video_id: str, status: UploadStatus) -> None:
        result = await self.uploads.update_one(
            {"_id": ObjectId(video_id)},
            {"$set": {"status": status}},
        )
        if result.matched_count == 0:
            raise StorageError(f"upload {video_id} not found")
        logger.info("Upload %s → %s", video_id, status)

    async def claim_pending(self, video_id: str) -> bool:
        """Move a pending upload to processing; False if it was not pending."""
        result = await self.uploads.update_one(
            {"_id": ObjectId(video_id), "status": "pending"},
            {"$set": {"status": "processing"}},
        )
        return result.modified_count == 1

    # ── Reports ───────────────────────────────────────────────────────────────

    async def insert_report(self, fields: dict) -> VerificationReport:
        doc = {**fields, "created_at": datetime.now(tz=timezone.utc)}
        result = await self.reports.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc_to_report(doc)

    async def discard_report(self, report_id: str) -> None:
        """Compensating delete for a report whose run failed right after the insert."""
        await self.reports.delete_one({"_id": ObjectId(report_id)})
        logger.warning("Discarded report %s from a failed run", report_id)

    async def get_report(self, report_id: str) -> Optional[VerificationReport]:
        doc = await self.reports.find_one({"_id": ObjectId(report_id)})
        return doc_to_report(doc) if doc else None

    async def list_reports(
        self,
        user_id: Optional[str] = None,
        video_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[VerificationReport], int]:
        query: dict = {}
        if user_id:
            query["user_id"] = user_id
        if video_id:
            query["video_id"] = video_id

        total = await self.reports.count_documents(query)
        cursor = self.reports.find(query).sort("created_at", -1).skip((page - 1) * limit).limit(limit)

        items = []
        async for doc in cursor:
            try:
                items.append(doc_to_report(doc))
            except Exception as exc:
                logger.warning("Skipping malformed report doc: %s", exc)
        return items, total

    async def user_stats(self, user_id: str) -> UserStats:
        total_uploads = await self.uploads.count_documents({"user_id": user_id})
        pending = await self.uploads.count_documents({"user_id": user_id, "status": {"$in": ["pending", "processing"]}})

        scores = []
        async for doc in self.reports.find({"user_id": user_id}):
            scores.append(int(doc.get("authenticity_score", 0)))

        return UserStats(
            total_uploads=total_uploads,
            total_reports=len(scores),
            verified_videos=sum(1 for s in scores if s >= 70),
            flagged_content=sum(1 for s in scores if s < 50),
            average_score=round(sum(scores) / len(scores)) if scores else 0,
            pending_analysis=pending,
        )
