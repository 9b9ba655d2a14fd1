"""Resource service module."""

from .service import ResourceService

__all__ = ["ResourceService"]
