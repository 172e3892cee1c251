"""
inference_gateway.py — Async wrapper around the HuggingFace Inference API.

Three capabilities, one per remote model:
  - ModelKind.DEEPFAKE       → image classification (umm-maybe/AI-image-detector)
  - ModelKind.SPEECH_TO_TEXT → transcription (openai/whisper-base)
  - ModelKind.SENTIMENT      → text classification (distilbert SST-2)

Every request is POST {hf_api_url}/{model_id} with body {"inputs": payload}
and a Bearer token.

Graceful degradation: a missing token, mock mode, a timeout, a non-2xx
status, a network error, or a response whose shape the strict parser
rejects all resolve to the fixed fallback result for that capability.
invoke() never raises; callers always get a structurally valid result.

Retry policy: one attempt by default. Set INFERENCE_MAX_RETRIES > 0 to
retry transport / HTTP errors with jittered exponential backoff before
falling back. Parse errors are never retried.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

import httpx

from vericlip.core.config import Settings, settings

logger = logging.getLogger(__name__)


class ModelKind(str, Enum):
    DEEPFAKE = "deepfake-classify"
    SPEECH_TO_TEXT = "speech-to-text"
    SENTIMENT = "sentiment-classify"


# ── Result variants ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LabelScore:
    label: str
    score: float  # 0.0 – 1.0


@dataclass(frozen=True)
class Classification:
    labels: tuple[LabelScore, ...]
    fallback: bool = False

    def top(self) -> Optional[LabelScore]:
        """Highest-scoring label, or None for an empty classification."""
        if not self.labels:
            return None
        return max(self.labels, key=lambda ls: ls.score)

    def score_for(self, label: str) -> Optional[float]:
        wanted = label.lower()
        for ls in self.labels:
            if ls.label.lower() == wanted:
                return ls.score
        return None


@dataclass(frozen=True)
class Transcription:
    text: Optional[str]
    fallback: bool = False


InferenceResult = Union[Classification, Transcription]


# ── Fallbacks ─────────────────────────────────────────────────────────────────

FALLBACK_TRANSCRIPT = (
    "This is a sample transcript of the video content. "
    "The speaker discusses important topics related to the subject matter."
)

_FALLBACKS: dict[ModelKind, InferenceResult] = {
    ModelKind.DEEPFAKE: Classification(
        labels=(LabelScore("REAL", 0.85),),
        fallback=True,
    ),
    ModelKind.SPEECH_TO_TEXT: Transcription(text=FALLBACK_TRANSCRIPT, fallback=True),
    ModelKind.SENTIMENT: Classification(
        labels=(LabelScore("POSITIVE", 0.6), LabelScore("NEGATIVE", 0.1)),
        fallback=True,
    ),
}


def fallback_for(kind: ModelKind) -> InferenceResult:
    return _FALLBACKS[kind]


# ── Strict parsers ────────────────────────────────────────────────────────────

class InferenceResponseError(ValueError):
    """Response body did not match the shape expected for its capability."""


def _parse_classification(data: Any) -> Classification:
    # Text-classification models answer [[{...}, ...]]; image models answer [{...}, ...]
    if isinstance(data, list) and data and isinstance(data[0], list):
        data = data[0]
    if not isinstance(data, list) or not data:
        raise InferenceResponseError(f"expected a non-empty label list, got {type(data).__name__}")

    labels = []
    for item in data:
        if not isinstance(item, dict):
            raise InferenceResponseError("label entry is not an object")
        label, score = item.get("label"), item.get("score")
        if not isinstance(label, str) or isinstance(score, bool) or not isinstance(score, (int, float)):
            raise InferenceResponseError(f"malformed label entry: {item!r}")
        if not 0.0 <= float(score) <= 1.0:
            raise InferenceResponseError(f"score out of range: {score!r}")
        labels.append(LabelScore(label=label, score=float(score)))
    return Classification(labels=tuple(labels))


def _parse_transcription(data: Any) -> Transcription:
    if not isinstance(data, dict):
        raise InferenceResponseError(f"expected an object, got {type(data).__name__}")
    if "error" in data:
        raise InferenceResponseError(f"endpoint reported error: {data['error']}")
    text = data.get("text")
    if text is not None and not isinstance(text, str):
        raise InferenceResponseError("text field is not a string")
    return Transcription(text=text or None)


_PARSERS = {
    ModelKind.DEEPFAKE: _parse_classification,
    ModelKind.SPEECH_TO_TEXT: _parse_transcription,
    ModelKind.SENTIMENT: _parse_classification,
}


# ── Configuration ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GatewayConfig:
    api_url: str
    api_key: str
    models: dict[ModelKind, str] = field(default_factory=dict)
    timeout_seconds: float = 20.0
    max_retries: int = 0
    backoff_seconds: float = 0.5
    mock_mode: bool = False

    @classmethod
    def from_settings(cls, s: Settings = settings) -> "GatewayConfig":
        return cls(
            api_url=s.hf_api_url.rstrip("/"),
            api_key=s.hf_api_key,
            models={
                ModelKind.DEEPFAKE: s.deepfake_model,
                ModelKind.SPEECH_TO_TEXT: s.speech_model,
                ModelKind.SENTIMENT: s.sentiment_model,
            },
            timeout_seconds=s.inference_timeout_seconds,
            max_retries=max(0, s.inference_max_retries),
            backoff_seconds=s.inference_backoff_seconds,
            mock_mode=s.ai_mock_mode,
        )


# ── Gateway ───────────────────────────────────────────────────────────────────

class InferenceGateway:
    """
    Single entry point for remote model calls.

    One gateway is built per pipeline run; `fallback_kinds` records which
    capabilities degraded to their fallback during that run so the report
    metadata can say so.
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or GatewayConfig.from_settings()
        self._transport = transport
        self.fallback_kinds: set[ModelKind] = set()

        self.offline = self.config.mock_mode
        if not self.offline and not self.config.api_key:
            logger.warning(
                "HF_API_KEY not set — inference calls will return fallback results. "
                "Set AI_MOCK_MODE=true to silence this warning."
            )
            self.offline = True

    def model_id(self, kind: ModelKind) -> str:
        return self.config.models.get(kind, "")

    @property
    def models_used(self) -> list[str]:
        return [self.model_id(kind) for kind in ModelKind]

    async def invoke(self, kind: ModelKind, payload: str) -> InferenceResult:
        """Run one capability; returns a parsed result or its fallback, never raises."""
        if self.offline:
            return self._fallback(kind, "offline")

        try:
            data = await self._post_with_retries(kind, payload)
            return _PARSERS[kind](data)
        except InferenceResponseError as exc:
            logger.error("Unexpected %s response from %s: %s", kind.value, self.model_id(kind), exc)
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Inference API error (model=%s): %s — %s",
                self.model_id(kind),
                exc.response.status_code,
                exc.response.text[:200],
            )
        except Exception as exc:
            logger.error("Inference request failed (model=%s): %s", self.model_id(kind), exc)
        return self._fallback(kind, "error")

    async def _post_with_retries(self, kind: ModelKind, payload: str) -> Any:
        attempts = self.config.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return await self._post(kind, payload)
            except httpx.HTTPError as exc:
                if attempt == attempts:
                    raise
                delay = self.config.backoff_seconds * (2 ** (attempt - 1)) * random.uniform(0.5, 1.5)
                logger.warning(
                    "Inference attempt %d/%d failed (model=%s): %s — retrying in %.2fs",
                    attempt, attempts, self.model_id(kind), exc, delay,
                )
                await asyncio.sleep(delay)

    async def _post(self, kind: ModelKind, payload: str) -> Any:
        url = f"{self.config.api_url}/{self.model_id(kind)}"
        async with httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.post(
                url,
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Content-Type": "application/json",
                },
                json={"inputs": payload},
            )
            response.raise_for_status()
            return response.json()

    def _fallback(self, kind: ModelKind, reason: str) -> InferenceResult:
        logger.debug("Using fallback result for %s (%s)", kind.value, reason)
        self.fallback_kinds.add(kind)
        return fallback_for(kind)
