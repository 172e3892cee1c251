"""
test_deepfake_scorer.py — Per-frame classification → aggregate likelihood.
"""

import pytest

from vericlip.ai.deepfake_scorer import NEUTRAL_LIKELIHOOD, DeepfakeScorer, fake_contribution
from vericlip.ai.frame_sampler import Frame
from vericlip.ai.inference_gateway import (
    Classification,
    GatewayConfig,
    InferenceGateway,
    LabelScore,
    ModelKind,
)


class StubGateway:
    """Returns queued results in call order and records payloads."""

    def __init__(self, results):
        self._results = list(results)
        self.calls = []

    async def invoke(self, kind, payload):
        self.calls.append((kind, payload))
        return self._results.pop(0)


def _cls(*pairs):
    return Classification(labels=tuple(LabelScore(label, score) for label, score in pairs))


def _frames(n):
    return [Frame(timestamp_ms=i * 100.0, image_b64=f"frame-{i}") for i in range(n)]


class TestFakeContribution:
    def test_fake_label(self):
        assert fake_contribution(_cls(("FAKE", 0.9))) == pytest.approx(90)

    def test_real_label(self):
        assert fake_contribution(_cls(("REAL", 0.85))) == pytest.approx(15)

    def test_uses_top_label(self):
        assert fake_contribution(_cls(("real", 0.3), ("artificial", 0.7))) == pytest.approx(70)

    def test_unknown_label_is_unusable(self):
        assert fake_contribution(_cls(("cat", 0.99))) is None

    def test_empty_is_unusable(self):
        assert fake_contribution(Classification(labels=())) is None


class TestScore:
    async def test_no_frames_is_neutral(self):
        gateway = StubGateway([])
        assert await DeepfakeScorer(gateway).score([]) == 50
        assert gateway.calls == []

    async def test_one_call_per_frame_with_frame_payload(self):
        gateway = StubGateway([_cls(("REAL", 0.9))] * 3)
        await DeepfakeScorer(gateway).score(_frames(3))
        assert [c[0] for c in gateway.calls] == [ModelKind.DEEPFAKE] * 3
        assert [c[1] for c in gateway.calls] == ["frame-0", "frame-1", "frame-2"]

    async def test_average_of_contributions(self):
        gateway = StubGateway([_cls(("FAKE", 0.9)), _cls(("REAL", 0.9)), _cls(("FAKE", 0.6))])
        # (90 + 10 + 60) / 3 = 53.33
        assert await DeepfakeScorer(gateway).score(_frames(3)) == 53

    async def test_unusable_frames_are_skipped(self):
        gateway = StubGateway([_cls(("FAKE", 0.8)), _cls(("dog", 1.0))])
        assert await DeepfakeScorer(gateway).score(_frames(2)) == 80

    async def test_all_unusable_is_neutral(self):
        gateway = StubGateway([_cls(("dog", 1.0)), _cls(("cat", 0.5))])
        assert await DeepfakeScorer(gateway).score(_frames(2)) == NEUTRAL_LIKELIHOOD

    async def test_fallback_gateway_scores_likely_real(self):
        gateway = InferenceGateway(GatewayConfig(api_url="https://hf.test", api_key="", mock_mode=True))
        # Fallback is REAL @ 0.85 for every frame → 15
        assert await DeepfakeScorer(gateway).score(_frames(5)) == 15

    @pytest.mark.parametrize("score", [0.0, 0.25, 0.5, 1.0])
    async def test_result_in_range(self, score):
        gateway = StubGateway([_cls(("FAKE", score)), _cls(("REAL", score))])
        assert 0 <= await DeepfakeScorer(gateway).score(_frames(2)) <= 100
