"""Image verification service module."""

from .service import ImageVerifier, MockImageVerifier, classify

__all__ = ["ImageVerifier", "MockImageVerifier", "classify"]
