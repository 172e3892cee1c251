"""
tamper_heuristics.py — Human-readable tamper indicators.

Rules run in a fixed order and each may fire independently:
  1. likelihood > 70            → high-probability manipulation
  2. 50 < likelihood ≤ 70       → moderate signs of manipulation
  3. negative sentiment > 60    → high negative sentiment
  4. frame-transition check     → one consecutive pair of sampled frames is far
                                  less correlated than the rest of the clip

Audio/video sync analysis is not implemented yet; it is reported as a
pending check (see PENDING_CHECKS) and never contributes an indicator.
"""

import base64
import logging
from collections.abc import Sequence

import cv2
import numpy as np

from vericlip.ai.frame_sampler import Frame
from vericlip.models.verification import SentimentDistribution

logger = logging.getLogger(__name__)

HIGH_MANIPULATION = "High probability of AI-generated or manipulated content detected"
MODERATE_MANIPULATION = "Moderate signs of potential video manipulation"
HIGH_NEGATIVE_SENTIMENT = "High negative sentiment detected in speech content"
INCONSISTENT_TRANSITIONS = "Inconsistent frame transitions detected"

PENDING_CHECKS = ("audio_video_sync",)

# A transition whose correlation sits this far below the clip's median is an outlier.
_TRANSITION_DROP = 0.35
_ANALYSIS_SIZE = (64, 64)


def _decode_gray(frame: Frame) -> np.ndarray | None:
    try:
        buf = np.frombuffer(base64.b64decode(frame.image_b64), dtype=np.uint8)
        image = cv2.imdecode(buf, cv2.IMREAD_GRAYSCALE)
    except (ValueError, cv2.error) as exc:
        logger.debug("Could not decode frame at %.0f ms: %s", frame.timestamp_ms, exc)
        return None
    if image is None:
        return None
    return cv2.resize(image, _ANALYSIS_SIZE).astype(np.float32) / 255.0


def _ncc(a: np.ndarray, b: np.ndarray) -> float:
    """Normalised cross-correlation; flat images count as perfectly correlated."""
    sa, sb = float(np.std(a)), float(np.std(b))
    if sa < 1e-10 or sb < 1e-10:
        return 1.0
    return float(np.mean((a - np.mean(a)) * (b - np.mean(b))) / (sa * sb))


def transition_outliers(frames: Sequence[Frame]) -> list[int]:
    """Indices i where the i → i+1 transition is an outlier. Needs ≥ 3 decodable frames."""
    grays = [g for g in (_decode_gray(f) for f in frames) if g is not None]
    if len(grays) < 3:
        return []

    correlations = np.array([_ncc(grays[i], grays[i + 1]) for i in range(len(grays) - 1)])
    median = float(np.median(correlations))
    return [i for i, value in enumerate(correlations) if median - value > _TRANSITION_DROP]


def detect(
    deepfake_likelihood: int,
    sentiment: SentimentDistribution,
    frames: Sequence[Frame] = (),
) -> list[str]:
    indicators: list[str] = []

    if deepfake_likelihood > 70:
        indicators.append(HIGH_MANIPULATION)
    elif deepfake_likelihood > 50:
        indicators.append(MODERATE_MANIPULATION)

    if sentiment.negative > 60:
        indicators.append(HIGH_NEGATIVE_SENTIMENT)

    outliers = transition_outliers(frames)
    if outliers:
        logger.info("Frame transition outliers at %s", outliers)
        indicators.append(INCONSISTENT_TRANSITIONS)

    return indicators
