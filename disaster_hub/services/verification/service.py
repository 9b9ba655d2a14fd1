"""Image authenticity verification (mock analyser).

Scores are drawn from a random generator; the verdict is derived from the
scores with fixed thresholds.
"""

import logging
import random
from abc import ABC, abstractmethod

from disaster_hub.models import ImageAnalysis, ImageVerification, VerificationStatus

logger = logging.getLogger(__name__)


def classify(
    authenticity_score: float, manipulation_detected: bool, disaster_context: bool
) -> tuple[VerificationStatus, str]:
    """Map analysis scores to a verdict and a human-readable explanation."""
    if manipulation_detected:
        return (
            VerificationStatus.FLAGGED,
            "Potential image manipulation detected. Signs of digital alteration found in pixel analysis.",
        )
    if not disaster_context:
        return (
            VerificationStatus.UNRELATED,
            "Image does not appear to show disaster-related content. May be unrelated to reported incident.",
        )
    if authenticity_score > 80:
        return (
            VerificationStatus.VERIFIED,
            "Image appears authentic and shows disaster-related content. High confidence in verification.",
        )
    if authenticity_score > 50:
        return (
            VerificationStatus.PENDING,
            "Image shows some signs of authenticity but requires manual review for final verification.",
        )
    return (
        VerificationStatus.REJECTED,
        "Low authenticity score. Image may be manipulated or unrelated to disaster context.",
    )


class ImageVerifier(ABC):
    """Abstract base class for image verification services."""

    @abstractmethod
    async def verify(self, image_url: str) -> ImageVerification:
        pass


class MockImageVerifier(ImageVerifier):
    """Random-score verifier standing in for an AI vision model."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    async def verify(self, image_url: str) -> ImageVerification:
        rng = self._rng
        authenticity_score = rng.random() * 100
        manipulation_detected = rng.random() > 0.8
        disaster_context = rng.random() > 0.3
        status, context_analysis = classify(
            authenticity_score, manipulation_detected, disaster_context
        )
        result = ImageVerification(
            image_url=image_url,
            authenticity_score=authenticity_score,
            manipulation_detected=manipulation_detected,
            disaster_context=disaster_context,
            confidence=rng.random() * 40 + 60,
            analysis=ImageAnalysis(
                image_quality="good" if rng.random() > 0.2 else "poor",
                lighting_consistency="consistent" if rng.random() > 0.15 else "inconsistent",
                metadata_intact=rng.random() > 0.1,
                reverse_image_search="found_elsewhere" if rng.random() > 0.9 else "unique",
            ),
            context_analysis=context_analysis,
            verification_status=status,
        )
        logger.info(f"[VERIFY] {image_url} -> {status.value}")
        return result
