"""
verification.py — Pydantic schemas for video uploads and verification reports.

VideoUploadCreate   — what the client sends after placing bytes in storage
VideoUploadRecord   — stored upload row with its processing status
SentimentDistribution — 3-way sentiment split, always summing to 100
VerificationReport  — the immutable result of one pipeline run
VerificationResponse — report + the notifications emitted during the run
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from vericlip.core.numeric import clamp_percent

UploadStatus = Literal["pending", "processing", "completed", "failed"]


# ── Sentiment ─────────────────────────────────────────────────────────────────

class SentimentDistribution(BaseModel):
    """Percentages; neutral is derived so the three always add up to 100."""

    positive: int = Field(ge=0, le=100)
    negative: int = Field(ge=0, le=100)
    neutral: int = Field(ge=0, le=100)

    @model_validator(mode="after")
    def _sums_to_100(self) -> "SentimentDistribution":
        total = self.positive + self.negative + self.neutral
        if total != 100:
            raise ValueError(f"sentiment percentages must sum to 100, got {total}")
        return self

    @classmethod
    def from_scores(cls, positive: float, negative: float) -> "SentimentDistribution":
        """Build from raw [0,1] probabilities, clamping so neutral never goes negative."""
        pos = clamp_percent(positive * 100)
        neg = min(100 - pos, clamp_percent(negative * 100))
        return cls(positive=pos, negative=neg, neutral=100 - pos - neg)

    @classmethod
    def flat(cls) -> "SentimentDistribution":
        return cls(positive=33, negative=33, neutral=34)


# ── Uploads ───────────────────────────────────────────────────────────────────

class VideoUploadCreate(BaseModel):
    """Payload for POST /api/v1/videos."""

    user_id: str = Field(..., min_length=1)
    filename: str = Field(..., min_length=1)
    storage_path: str = Field(..., min_length=1, description="Path of the raw bytes inside the videos bucket")
    file_size: int = Field(..., ge=0)
    content_type: str = Field(..., min_length=1)


class VideoUploadRecord(BaseModel):
    id: str
    user_id: str
    filename: str
    file_url: str  # storage path, resolved to a public URL by the pipeline
    file_size: int
    content_type: str = "video/mp4"
    status: UploadStatus
    upload_date: datetime


# ── Reports ───────────────────────────────────────────────────────────────────

class ReportMetadata(BaseModel):
    processing_date: datetime
    models_used: list[str] = Field(default_factory=list)
    frames_sampled: int = 0
    fallbacks_used: list[str] = Field(default_factory=list)
    pending_checks: list[str] = Field(default_factory=list)
    pipeline_version: str = "0.1.0"


class VerificationReport(BaseModel):
    """A completed verification report. Inserted once, never updated."""

    id: str
    video_id: str
    user_id: str
    authenticity_score: int = Field(ge=0, le=100)
    deepfake_likelihood: int = Field(ge=0, le=100)
    transcript: str
    sentiment_analysis: SentimentDistribution
    tampering_indicators: list[str] = Field(default_factory=list)
    key_frames: list[str] = Field(default_factory=list, max_length=3)
    metadata: Optional[ReportMetadata] = None
    created_at: datetime

    model_config = {"frozen": True}


class ReportOut(VerificationReport):
    """Report as served by the API, with a display label for the score."""

    authenticity_label: str


class ReportListResponse(BaseModel):
    items: list[ReportOut]
    total: int
    page: int
    limit: int
    pages: int


class Notification(BaseModel):
    level: Literal["info", "success", "error"]
    message: str


class VerificationResponse(BaseModel):
    """Response body for the upload / verify endpoints."""

    video: VideoUploadRecord
    report: ReportOut
    notifications: list[Notification] = Field(default_factory=list)


class UserStats(BaseModel):
    total_uploads: int
    total_reports: int
    verified_videos: int  # authenticity_score >= 70
    flagged_content: int  # authenticity_score < 50
    average_score: int
    pending_analysis: int
