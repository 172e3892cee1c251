"""
deepfake_scorer.py — Reduce per-frame classifier output to one likelihood.

Each sampled frame goes through the DEEPFAKE capability. The top label is
read as:
    fake-like label → contribution = score × 100
    real-like label → contribution = (1 − score) × 100
Contributions are averaged and rounded half-up. No frames, or no usable
classification, gives the neutral prior of 50.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Optional

from vericlip.ai.frame_sampler import Frame
from vericlip.ai.inference_gateway import Classification, InferenceGateway, ModelKind
from vericlip.core.numeric import clamp_percent

logger = logging.getLogger(__name__)

NEUTRAL_LIKELIHOOD = 50

_FAKE_LABELS = {"fake", "deepfake", "artificial", "ai"}
_REAL_LABELS = {"real", "genuine", "authentic", "human"}


def fake_contribution(result: Classification) -> Optional[float]:
    """Fake likelihood in [0, 100] implied by one classification, or None if unusable."""
    top = result.top()
    if top is None:
        return None
    label = top.label.lower()
    if label in _FAKE_LABELS:
        return top.score * 100
    if label in _REAL_LABELS:
        return (1 - top.score) * 100
    return None


class DeepfakeScorer:
    def __init__(self, gateway: InferenceGateway) -> None:
        self.gateway = gateway

    async def score(self, frames: Sequence[Frame]) -> int:
        if not frames:
            return NEUTRAL_LIKELIHOOD

        results = await asyncio.gather(
            *(self.gateway.invoke(ModelKind.DEEPFAKE, frame.image_b64) for frame in frames)
        )

        contributions = []
        for frame, result in zip(frames, results):
            value = fake_contribution(result) if isinstance(result, Classification) else None
            if value is None:
                logger.warning("Unusable deepfake classification for frame at %.0f ms", frame.timestamp_ms)
                continue
            contributions.append(value)

        if not contributions:
            return NEUTRAL_LIKELIHOOD

        likelihood = clamp_percent(sum(contributions) / len(contributions))
        logger.info("Deepfake likelihood %d from %d/%d frames", likelihood, len(contributions), len(frames))
        return likelihood
