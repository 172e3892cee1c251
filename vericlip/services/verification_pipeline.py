"""
verification_pipeline.py — One verification run for one uploaded video.

Stages:

  UPLOADED
    ├─ visual branch  : FRAMES_SAMPLED → DEEPFAKE_SCORED
    └─ speech branch  : TRANSCRIPT_EXTRACTED → SENTIMENT_ANALYZED
  (both branches run concurrently in a TaskGroup and are joined here)
  INDICATORS_DETECTED → SCORE_AGGREGATED → COMPLETED

Any exception on the way (persistence errors, or anything unexpected)
moves the run to FAILED: the upload is marked `failed`, exactly one error
notification is emitted, and PipelineError is raised — no report is returned.

Sampling and inference problems never get this far: the frame sampler
degrades to [] and the inference gateway to its fallback results, so a user
always gets a report unless persistence fails.
"""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from vericlip.ai import tamper_heuristics
from vericlip.ai.deepfake_scorer import DeepfakeScorer
from vericlip.ai.frame_sampler import Frame, FrameSampler
from vericlip.ai.inference_gateway import GatewayConfig, InferenceGateway
from vericlip.ai.sentiment_analyzer import SentimentAnalyzer
from vericlip.ai.transcript_extractor import TranscriptExtractor
from vericlip.core.config import settings
from vericlip.models.verification import ReportMetadata, SentimentDistribution, VerificationReport
from vericlip.services.notifications import PipelineNotifier
from vericlip.services.report_store import ReportStore
from vericlip.services.score_aggregator import aggregate

logger = logging.getLogger(__name__)

PIPELINE_VERSION = "0.1.0"


class PipelineStage(str, Enum):
    UPLOADED = "uploaded"
    FRAMES_SAMPLED = "frames_sampled"
    DEEPFAKE_SCORED = "deepfake_scored"
    TRANSCRIPT_EXTRACTED = "transcript_extracted"
    SENTIMENT_ANALYZED = "sentiment_analyzed"
    INDICATORS_DETECTED = "indicators_detected"
    SCORE_AGGREGATED = "score_aggregated"
    COMPLETED = "completed"
    FAILED = "failed"


class PipelineError(Exception):
    """A run ended in FAILED. `stage` is the last stage reached before the error."""

    def __init__(self, video_id: str, stage: PipelineStage, cause: BaseException) -> None:
        super().__init__(f"verification of video {video_id} failed after {stage.value}: {cause}")
        self.video_id = video_id
        self.stage = stage
        self.cause = cause


class VerificationPipeline:
    """
    Runs the full verification for one video. Build a new instance per run;
    it owns its frames, its gateway's fallback bookkeeping, and its notifier.
    """

    def __init__(
        self,
        store: ReportStore,
        gateway: InferenceGateway,
        sampler: Optional[FrameSampler] = None,
        notifier: Optional[PipelineNotifier] = None,
        frame_count: int = 5,
        key_frame_limit: int = 3,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.sampler = sampler or FrameSampler()
        self.notifier = notifier or PipelineNotifier()
        self.frame_count = frame_count
        self.key_frame_limit = min(key_frame_limit, 3)

        self.deepfake_scorer = DeepfakeScorer(gateway)
        self.transcript_extractor = TranscriptExtractor(gateway)
        self.sentiment_analyzer = SentimentAnalyzer(gateway)

        self.stage = PipelineStage.UPLOADED
        self.history: list[PipelineStage] = [PipelineStage.UPLOADED]

    def _advance(self, stage: PipelineStage) -> None:
        logger.debug("Pipeline stage %s → %s", self.stage.value, stage.value)
        self.stage = stage
        self.history.append(stage)

    # ── Branches ──────────────────────────────────────────────────────────────

    async def _visual_branch(self, video_url: str) -> tuple[list[Frame], int]:
        self.notifier.info("Extracting video frames...")
        frames = await self.sampler.sample(video_url, self.frame_count)
        self._advance(PipelineStage.FRAMES_SAMPLED)

        self.notifier.info("Analyzing for deepfakes...")
        likelihood = await self.deepfake_scorer.score(frames)
        self._advance(PipelineStage.DEEPFAKE_SCORED)
        return frames, likelihood

    async def _speech_branch(self, video_url: str) -> tuple[str, SentimentDistribution]:
        self.notifier.info("Extracting speech content...")
        transcript = await self.transcript_extractor.extract(video_url)
        self._advance(PipelineStage.TRANSCRIPT_EXTRACTED)

        self.notifier.info("Analyzing sentiment...")
        sentiment = await self.sentiment_analyzer.analyze(transcript)
        self._advance(PipelineStage.SENTIMENT_ANALYZED)
        return transcript, sentiment

    async def _run_branches(self, video_url: str):
        """Run both branches; if one raises, the other is cancelled before the error surfaces."""
        try:
            async with asyncio.TaskGroup() as tg:
                visual = tg.create_task(self._visual_branch(video_url))
                speech = tg.create_task(self._speech_branch(video_url))
        except ExceptionGroup as group:
            raise group.exceptions[0]
        return visual.result(), speech.result()

    # ── Run ───────────────────────────────────────────────────────────────────

    async def run(self, video_id: str, storage_path: str, user_id: str) -> VerificationReport:
        logger.info("Starting verification (video=%s, path=%s)", video_id, storage_path)
        report: Optional[VerificationReport] = None
        try:
            self.notifier.info("Starting AI analysis...")
            video_url = self.store.public_url(storage_path)

            (frames, likelihood), (transcript, sentiment) = await self._run_branches(video_url)

            # JPEG decode and resize stay off the event loop.
            indicators = await asyncio.to_thread(tamper_heuristics.detect, likelihood, sentiment, frames)
            self._advance(PipelineStage.INDICATORS_DETECTED)

            score = aggregate(likelihood, sentiment, len(indicators))
            self._advance(PipelineStage.SCORE_AGGREGATED)

            report = await self.store.insert_report(
                self._report_fields(video_id, user_id, frames, likelihood, transcript, sentiment, indicators, score)
            )
            await self.store.update_status(video_id, "completed")
        except Exception as exc:
            failed_after = self.stage
            logger.exception("Error processing video %s (after %s)", video_id, failed_after.value)
            await self._fail(video_id, report)
            raise PipelineError(video_id, failed_after, exc) from exc

        self._advance(PipelineStage.COMPLETED)
        self.notifier.success("Video analysis complete!")
        logger.info(
            "Verification complete (video=%s, report=%s, score=%d, likelihood=%d, indicators=%d)",
            video_id, report.id, report.authenticity_score, likelihood, len(indicators),
        )
        return report

    async def _fail(self, video_id: str, report: Optional[VerificationReport]) -> None:
        self._advance(PipelineStage.FAILED)
        # A report inserted before the status write failed must not stay visible.
        if report is not None:
            try:
                await self.store.discard_report(report.id)
            except Exception as exc:
                logger.error("Could not discard report %s: %s", report.id, exc)
        try:
            await self.store.update_status(video_id, "failed")
        except Exception as exc:
            logger.error("Could not mark video %s as failed: %s", video_id, exc)
        self.notifier.error("Failed to process video")

    def _report_fields(
        self,
        video_id: str,
        user_id: str,
        frames: list[Frame],
        likelihood: int,
        transcript: str,
        sentiment: SentimentDistribution,
        indicators: list[str],
        score: int,
    ) -> dict[str, Any]:
        metadata = ReportMetadata(
            processing_date=datetime.now(tz=timezone.utc),
            models_used=self.gateway.models_used,
            frames_sampled=len(frames),
            fallbacks_used=sorted(kind.value for kind in self.gateway.fallback_kinds),
            pending_checks=list(tamper_heuristics.PENDING_CHECKS),
            pipeline_version=PIPELINE_VERSION,
        )
        return {
            "video_id": video_id,
            "user_id": user_id,
            "authenticity_score": score,
            "deepfake_likelihood": likelihood,
            "transcript": transcript,
            "sentiment_analysis": sentiment.model_dump(),
            "tampering_indicators": indicators,
            "key_frames": [f.data_url for f in frames[: self.key_frame_limit]],
            "metadata": metadata.model_dump(),
        }


def build_pipeline(db: Any) -> VerificationPipeline:
    """Wire a fresh pipeline for one run from the process-wide settings."""
    return VerificationPipeline(
        store=ReportStore(db),
        gateway=InferenceGateway(GatewayConfig.from_settings(settings)),
        sampler=FrameSampler(jpeg_quality=settings.jpeg_quality),
        frame_count=settings.frame_sample_count,
        key_frame_limit=settings.key_frame_limit,
    )
