"""
videos.py — Upload registration and verification trigger.

Routes:
  POST /api/v1/videos                    — register an uploaded video and verify it
  POST /api/v1/videos/{video_id}/verify  — verify an already-registered pending upload
  GET  /api/v1/videos/{video_id}         — upload record + processing status

HOW THE DATA FLOWS
──────────────────
1. The client uploads the raw bytes to the `videos` storage bucket itself.
2. It then calls POST /api/v1/videos with the storage path, size and MIME type.
3. Size and type are checked (413 / 415), an upload row is created with
   status "processing", and the verification pipeline runs once.
4. The response carries the upload row, the report, and the progress
   notifications emitted during the run.
5. If the run fails the upload is marked "failed" and the route answers
   502 with the notifications (no report).
"""

import logging

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, HTTPException, Request

from vericlip.core.config import settings
from vericlip.core.database import get_db
from vericlip.core.rate_limit import limiter
from vericlip.models.verification import (
    ReportOut,
    VerificationResponse,
    VideoUploadCreate,
    VideoUploadRecord,
)
from vericlip.services.report_store import ReportStore
from vericlip.services.score_aggregator import authenticity_label
from vericlip.services.verification_pipeline import PipelineError, build_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/videos", tags=["videos"])


def _validate_oid(video_id: str) -> ObjectId:
    try:
        return ObjectId(video_id)
    except InvalidId:
        raise HTTPException(status_code=422, detail="Invalid video ID format")


def _validate_upload(payload: VideoUploadCreate) -> None:
    if payload.file_size > settings.max_file_size:
        limit_mb = settings.max_file_size // (1024 * 1024)
        raise HTTPException(status_code=413, detail=f"File size exceeds {limit_mb}MB limit")
    if payload.content_type not in settings.allowed_file_types:
        raise HTTPException(
            status_code=415,
            detail="Invalid file type. Please upload MP4, MOV, or AVI files.",
        )


async def _verify(db, upload: VideoUploadRecord) -> VerificationResponse:
    pipeline = build_pipeline(db)
    try:
        report = await pipeline.run(upload.id, upload.file_url, upload.user_id)
    except PipelineError as exc:
        raise HTTPException(
            status_code=502,
            detail={
                "message": "Failed to process video",
                "video_id": upload.id,
                "notifications": [n.model_dump() for n in pipeline.notifier.messages],
            },
        ) from exc

    return VerificationResponse(
        video=upload.model_copy(update={"status": "completed"}),
        report=ReportOut(**report.model_dump(), authenticity_label=authenticity_label(report.authenticity_score)),
        notifications=pipeline.notifier.messages,
    )


# ── Routes ────────────────────────────────────────────────────────────────────

@router.post("", response_model=VerificationResponse, status_code=201)
@limiter.limit("10/minute")
async def register_and_verify(request: Request, payload: VideoUploadCreate, db=Depends(get_db)):
    """Register a video already placed in storage, then run the verification pipeline."""
    _validate_upload(payload)
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    upload = await ReportStore(db).create_upload(payload, status="processing")
    return await _verify(db, upload)


@router.post("/{video_id}/verify", response_model=VerificationResponse)
@limiter.limit("10/minute")
async def verify_pending(request: Request, video_id: str, db=Depends(get_db)):
    """Run the pipeline for a registered upload that is still pending."""
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    _validate_oid(video_id)

    store = ReportStore(db)
    upload = await store.get_upload(video_id)
    if upload is None:
        raise HTTPException(status_code=404, detail="Video not found")
    if not await store.claim_pending(video_id):
        raise HTTPException(status_code=409, detail=f"Video is already {upload.status}")

    return await _verify(db, upload.model_copy(update={"status": "processing"}))


@router.get("/{video_id}", response_model=VideoUploadRecord)
async def get_video(video_id: str, db=Depends(get_db)):
    """Return the upload record, including its processing status."""
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    _validate_oid(video_id)

    upload = await ReportStore(db).get_upload(video_id)
    if upload is None:
        raise HTTPException(status_code=404, detail="Video not found")
    return upload
