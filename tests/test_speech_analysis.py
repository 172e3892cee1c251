"""
test_speech_analysis.py — Transcript extraction and sentiment distribution.
"""

import pytest
from pydantic import ValidationError

from vericlip.ai.inference_gateway import (
    FALLBACK_TRANSCRIPT,
    Classification,
    GatewayConfig,
    InferenceGateway,
    LabelScore,
    ModelKind,
    Transcription,
)
from vericlip.ai.sentiment_analyzer import SentimentAnalyzer
from vericlip.ai.transcript_extractor import NO_TRANSCRIPT, TranscriptExtractor
from vericlip.models.verification import SentimentDistribution


class StubGateway:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def invoke(self, kind, payload):
        self.calls.append((kind, payload))
        if self.error:
            raise self.error
        return self.result


def _offline_gateway():
    return InferenceGateway(GatewayConfig(api_url="https://hf.test", api_key="", mock_mode=True))


def _sentiment(*pairs):
    return Classification(labels=tuple(LabelScore(label, score) for label, score in pairs))


# ── Transcript ────────────────────────────────────────────────────────────────

class TestTranscriptExtractor:
    async def test_returns_text_and_sends_url(self):
        gateway = StubGateway(Transcription(text="we interrupt this broadcast"))
        text = await TranscriptExtractor(gateway).extract("https://storage/videos/a.mp4")
        assert text == "we interrupt this broadcast"
        assert gateway.calls == [(ModelKind.SPEECH_TO_TEXT, "https://storage/videos/a.mp4")]

    async def test_missing_text_gives_placeholder(self):
        text = await TranscriptExtractor(StubGateway(Transcription(text=None))).extract("u")
        assert text == NO_TRANSCRIPT

    async def test_fallback_transcript(self):
        assert await TranscriptExtractor(_offline_gateway()).extract("u") == FALLBACK_TRANSCRIPT


# ── Sentiment ─────────────────────────────────────────────────────────────────

class TestSentimentAnalyzer:
    async def test_scales_to_percentages(self):
        gateway = StubGateway(_sentiment(("POSITIVE", 0.72), ("NEGATIVE", 0.28)))
        result = await SentimentAnalyzer(gateway).analyze("lovely")
        assert result == SentimentDistribution(positive=72, negative=28, neutral=0)

    async def test_fallback_path(self):
        result = await SentimentAnalyzer(_offline_gateway()).analyze("anything")
        assert result == SentimentDistribution(positive=60, negative=10, neutral=30)

    async def test_only_one_label(self):
        result = await SentimentAnalyzer(StubGateway(_sentiment(("NEGATIVE", 0.9)))).analyze("awful")
        assert result == SentimentDistribution(positive=0, negative=90, neutral=10)

    async def test_no_known_labels_gives_flat_prior(self):
        result = await SentimentAnalyzer(StubGateway(_sentiment(("LABEL_0", 0.9)))).analyze("x")
        assert result == SentimentDistribution.flat()

    async def test_wrong_result_type_gives_flat_prior(self):
        result = await SentimentAnalyzer(StubGateway(Transcription(text="?"))).analyze("x")
        assert result == SentimentDistribution(positive=33, negative=33, neutral=34)

    async def test_unexpected_error_gives_flat_prior(self):
        result = await SentimentAnalyzer(StubGateway(error=RuntimeError("boom"))).analyze("x")
        assert result == SentimentDistribution.flat()

    @pytest.mark.parametrize("pos,neg", [
        (0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (0.5, 0.5), (0.7, 0.6),
        (0.333, 0.333), (0.995, 0.004), (0.125, 0.875),
    ])
    async def test_always_sums_to_100(self, pos, neg):
        gateway = StubGateway(_sentiment(("POSITIVE", pos), ("NEGATIVE", neg)))
        result = await SentimentAnalyzer(gateway).analyze("x")
        assert result.positive + result.negative + result.neutral == 100
        assert min(result.positive, result.negative, result.neutral) >= 0


class TestSentimentDistribution:
    def test_rejects_bad_sum(self):
        with pytest.raises(ValidationError):
            SentimentDistribution(positive=50, negative=50, neutral=50)

    def test_from_scores_clamps_overflow(self):
        dist = SentimentDistribution.from_scores(0.7, 0.6)
        assert (dist.positive, dist.negative, dist.neutral) == (70, 30, 0)
