"""Disaster repository module."""

from .service import DisasterRepository, InMemoryDisasterRepository

__all__ = ["DisasterRepository", "InMemoryDisasterRepository"]
