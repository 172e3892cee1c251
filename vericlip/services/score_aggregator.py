"""
score_aggregator.py — Authenticity score from the pipeline's three signals.

    score = (100 − likelihood) × 0.6          inverse deepfake likelihood
          + (positive / 100) × 20             positive speech sentiment
          + (20 if no indicators else 10)     flat bonus, halved by any indicator

Rounded half-up and clamped to [0, 100]. Higher = more likely genuine.

USAGE
─────
    from vericlip.services.score_aggregator import aggregate, authenticity_label

    score = aggregate(20, SentimentDistribution(positive=60, negative=10, neutral=30), 0)
    # score → 80
    authenticity_label(score)
    # → "High Authenticity"
"""

from vericlip.core.numeric import clamp_percent
from vericlip.models.verification import SentimentDistribution

_LIKELIHOOD_WEIGHT = 0.6
_SENTIMENT_SCALE = 20
_CLEAN_BONUS = 20
_FLAGGED_BONUS = 10

_LABEL_THRESHOLDS = [
    (70, "High Authenticity"),
    (40, "Medium Authenticity"),
    (0,  "Low Authenticity"),
]


def aggregate(deepfake_likelihood: int, sentiment: SentimentDistribution, indicator_count: int) -> int:
    score = (100 - deepfake_likelihood) * _LIKELIHOOD_WEIGHT
    score += (sentiment.positive / 100) * _SENTIMENT_SCALE
    score += _CLEAN_BONUS if indicator_count == 0 else _FLAGGED_BONUS
    return clamp_percent(score)


def authenticity_label(score: int) -> str:
    for threshold, label in _LABEL_THRESHOLDS:
        if score >= threshold:
            return label
    return "Low Authenticity"
