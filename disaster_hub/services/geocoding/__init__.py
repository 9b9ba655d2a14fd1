"""Geocoding service module."""

from .service import DEFAULT_COORDINATES, GeocodingService, MockGeocodingService

__all__ = ["DEFAULT_COORDINATES", "GeocodingService", "MockGeocodingService"]
