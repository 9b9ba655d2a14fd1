"""Unit tests for image verification."""

import random

import pytest

from disaster_hub.models import VerificationStatus
from disaster_hub.services.verification import MockImageVerifier
from disaster_hub.services.verification.service import classify


class TestClassify:
    """Tests for the score-to-verdict mapping."""

    def test_manipulation_wins(self) -> None:
        status, _ = classify(99, manipulation_detected=True, disaster_context=True)
        assert status == VerificationStatus.FLAGGED

    def test_unrelated(self) -> None:
        status, _ = classify(99, manipulation_detected=False, disaster_context=False)
        assert status == VerificationStatus.UNRELATED

    @pytest.mark.parametrize(
        "score, expected",
        [
            (81, VerificationStatus.VERIFIED),
            (80, VerificationStatus.PENDING),
            (51, VerificationStatus.PENDING),
            (50, VerificationStatus.REJECTED),
        ],
    )
    def test_score_thresholds(self, score, expected) -> None:
        status, text = classify(score, manipulation_detected=False, disaster_context=True)
        assert status == expected
        assert text


class TestMockImageVerifier:
    """Tests for MockImageVerifier."""

    @pytest.mark.asyncio
    async def test_verify_is_consistent(self) -> None:
        verifier = MockImageVerifier(rng=random.Random(1))
        result = await verifier.verify("https://example.com/flood.jpg")
        assert result.image_url == "https://example.com/flood.jpg"
        assert 0 <= result.authenticity_score <= 100
        assert 60 <= result.confidence <= 100
        status, _ = classify(
            result.authenticity_score, result.manipulation_detected, result.disaster_context
        )
        assert result.verification_status == status

    @pytest.mark.asyncio
    async def test_seeded_rng_is_reproducible(self) -> None:
        a = await MockImageVerifier(rng=random.Random(3)).verify("u")
        b = await MockImageVerifier(rng=random.Random(3)).verify("u")
        assert a.authenticity_score == b.authenticity_score
        assert a.verification_status == b.verification_status
