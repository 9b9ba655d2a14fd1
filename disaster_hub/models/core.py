"""Core data models for Disaster Hub.

Pydantic models for coordinates, disasters, resources, social media posts,
official updates and image verification results.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    """Roles known to the header-based mock authentication."""

    ADMIN = "admin"
    CONTRIBUTOR = "contributor"


class Urgency(str, Enum):
    """Urgency of a social media post or priority of an official update."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Higher sorts first
URGENCY_RANK = {
    Urgency.CRITICAL: 3,
    Urgency.HIGH: 2,
    Urgency.MEDIUM: 1,
    Urgency.LOW: 0,
}


class ResourceType(str, Enum):
    SHELTER = "shelter"
    MEDICAL = "medical"
    FOOD = "food"
    SUPPLIES = "supplies"


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    PENDING = "pending"
    FLAGGED = "flagged"
    UNRELATED = "unrelated"
    REJECTED = "rejected"


class Coordinates(BaseModel):
    """Geographic coordinates with validation.

    Latitude must be between -90 and 90 degrees.
    Longitude must be between -180 and 180 degrees.
    """

    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lng: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class User(BaseModel):
    id: str
    name: str
    role: UserRole


class AuditEntry(BaseModel):
    """One entry in a disaster's audit trail."""

    action: str
    user_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    changes: Optional[dict] = None


class Disaster(BaseModel):
    """A disaster record.

    Coordinates are optional: a disaster created from a free-text location is
    geocoded on creation, but records can exist without a known position.
    """

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    location_name: Optional[str] = None
    location: Optional[Coordinates] = None
    tags: list[str] = Field(default_factory=list)
    owner_id: str
    audit_trail: list[AuditEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)


class Resource(BaseModel):
    """A relief resource (shelter, food bank, medical post, supply hub)."""

    id: str = Field(..., min_length=1)
    disaster_id: Optional[str] = None
    name: str = Field(..., min_length=1)
    location_name: str
    location: Optional[Coordinates] = None
    type: str
    capacity: Optional[int] = Field(None, ge=0)
    current_occupancy: Optional[int] = Field(None, ge=0)
    contact: Optional[str] = None
    status: str = "active"
    services: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)


class SocialMediaPost(BaseModel):
    id: str
    user: str
    content: str
    timestamp: datetime
    platform: str = "twitter"
    location: str = "Unknown"
    urgency: Urgency = Urgency.MEDIUM
    keywords: list[str] = Field(default_factory=list)
    is_realtime: bool = False
    verification_status: Optional[VerificationStatus] = None
    report_id: Optional[str] = None


class Report(BaseModel):
    """A user-submitted report attached to a disaster."""

    id: str
    disaster_id: str
    user_id: str
    content: str
    image_url: Optional[str] = None
    verification_status: VerificationStatus = VerificationStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)


class OfficialUpdate(BaseModel):
    id: str
    source: str
    title: str
    content: str
    url: str
    published_at: datetime
    priority: Urgency = Urgency.MEDIUM
    category: str = "official"
    tags: list[str] = Field(default_factory=list)
    is_scraped: bool = False


class ImageAnalysis(BaseModel):
    image_quality: str
    lighting_consistency: str
    metadata_intact: bool
    reverse_image_search: str


class ImageVerification(BaseModel):
    """Result of the (mock) image authenticity analysis."""

    image_url: str
    authenticity_score: float = Field(..., ge=0, le=100)
    manipulation_detected: bool
    disaster_context: bool
    confidence: float = Field(..., ge=0, le=100)
    analysis: ImageAnalysis
    context_analysis: str
    verification_status: VerificationStatus
    verified_at: datetime = Field(default_factory=utc_now)
    verification_method: str = "mock_analyzer"
