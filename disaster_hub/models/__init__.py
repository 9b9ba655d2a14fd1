"""Disaster Hub data models."""

from .core import (
    URGENCY_RANK,
    AuditEntry,
    Coordinates,
    Disaster,
    ImageAnalysis,
    ImageVerification,
    OfficialUpdate,
    Report,
    Resource,
    ResourceType,
    SocialMediaPost,
    Urgency,
    User,
    UserRole,
    VerificationStatus,
    utc_now,
)
from .errors import AppError, ErrorCode

__all__ = [
    "URGENCY_RANK",
    "AuditEntry",
    "Coordinates",
    "Disaster",
    "ImageAnalysis",
    "ImageVerification",
    "OfficialUpdate",
    "Report",
    "Resource",
    "ResourceType",
    "SocialMediaPost",
    "Urgency",
    "User",
    "UserRole",
    "VerificationStatus",
    "utc_now",
    "AppError",
    "ErrorCode",
]
