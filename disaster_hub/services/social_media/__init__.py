"""Social media service module."""

from .service import PRIORITY_TERMS, SocialMediaService

__all__ = ["PRIORITY_TERMS", "SocialMediaService"]
