"""
sentiment_analyzer.py — Transcript text → {positive, negative, neutral} percentages.

The SST-2 model only scores POSITIVE and NEGATIVE; neutral is whatever is
left so the three always sum to 100. A classification with neither label,
or any unexpected error, yields the flat prior {33, 33, 34}.
"""

import logging

from vericlip.ai.inference_gateway import Classification, InferenceGateway, ModelKind
from vericlip.models.verification import SentimentDistribution

logger = logging.getLogger(__name__)


class SentimentAnalyzer:
    def __init__(self, gateway: InferenceGateway) -> None:
        self.gateway = gateway

    async def analyze(self, text: str) -> SentimentDistribution:
        try:
            result = await self.gateway.invoke(ModelKind.SENTIMENT, text)
            if not isinstance(result, Classification):
                raise TypeError(f"unexpected result type {type(result).__name__}")

            positive = result.score_for("POSITIVE")
            negative = result.score_for("NEGATIVE")
            if positive is None and negative is None:
                logger.warning("Sentiment response had no POSITIVE/NEGATIVE labels — using flat prior")
                return SentimentDistribution.flat()

            return SentimentDistribution.from_scores(positive or 0.0, negative or 0.0)
        except Exception as exc:
            logger.error("Sentiment analysis failed: %s", exc)
            return SentimentDistribution.flat()
