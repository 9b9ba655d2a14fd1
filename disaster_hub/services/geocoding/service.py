"""Location extraction and geocoding.

The mock implementation pulls a place name out of free text with a few
regular expressions and resolves it against a fixed gazetteer. Unknown names
fall back to the New York City centre.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

from disaster_hub.models import Coordinates

logger = logging.getLogger(__name__)

DEFAULT_COORDINATES = Coordinates(lat=40.7128, lng=-74.0060)

GAZETTEER: dict[str, Coordinates] = {
    "Manhattan, NYC": Coordinates(lat=40.7831, lng=-73.9712),
    "Manhattan": Coordinates(lat=40.7831, lng=-73.9712),
    "New York": Coordinates(lat=40.7128, lng=-74.0060),
    "NYC": Coordinates(lat=40.7128, lng=-74.0060),
    "Brooklyn": Coordinates(lat=40.6782, lng=-73.9442),
    "Queens": Coordinates(lat=40.7282, lng=-73.7949),
    "Bronx": Coordinates(lat=40.8448, lng=-73.8648),
    "Staten Island": Coordinates(lat=40.5795, lng=-74.1502),
    "Lower East Side": Coordinates(lat=40.7209, lng=-73.9896),
    "Lower East Side, NYC": Coordinates(lat=40.7209, lng=-73.9896),
    "San Francisco": Coordinates(lat=37.7749, lng=-122.4194),
    "Los Angeles": Coordinates(lat=34.0522, lng=-118.2437),
    "Chicago": Coordinates(lat=41.8781, lng=-87.6298),
    "Houston": Coordinates(lat=29.7604, lng=-95.3698),
    "Miami": Coordinates(lat=25.7617, lng=-80.1918),
    "Seattle": Coordinates(lat=47.6062, lng=-122.3321),
    "Boston": Coordinates(lat=42.3601, lng=-71.0589),
    "Washington DC": Coordinates(lat=38.9072, lng=-77.0369),
    "Philadelphia": Coordinates(lat=39.9526, lng=-75.1652),
    "Atlanta": Coordinates(lat=33.7490, lng=-84.3880),
}

# Tried in order; the first match wins
LOCATION_PATTERNS = [
    re.compile(r"\b(?:in|at|near)\s+([A-Z][a-zA-Z\s,]+)"),
    re.compile(r"\b([A-Z][a-zA-Z\s]+,\s*[A-Z]{2,})"),
    re.compile(r"\b([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)+)"),
]


class GeocodingService(ABC):
    """Abstract base class for geocoding services."""

    @abstractmethod
    async def extract_location(self, description: str) -> Optional[str]:
        """Find a location name in free text, or None."""
        pass

    @abstractmethod
    async def geocode(self, location_name: str) -> Coordinates:
        """Resolve a location name to coordinates."""
        pass


class MockGeocodingService(GeocodingService):
    """Regex extraction plus a static gazetteer."""

    def __init__(
        self,
        gazetteer: dict[str, Coordinates] | None = None,
        default: Coordinates = DEFAULT_COORDINATES,
    ) -> None:
        self._gazetteer = gazetteer if gazetteer is not None else GAZETTEER
        self._default = default

    async def extract_location(self, description: str) -> Optional[str]:
        for pattern in LOCATION_PATTERNS:
            for match in pattern.finditer(description):
                cleaned = match.group(1).strip().strip(",").strip()
                if len(cleaned) > 2:
                    return cleaned
        return None

    async def geocode(self, location_name: str) -> Coordinates:
        # Runs of whitespace never change the answer
        name = " ".join(location_name.split())
        if name in self._gazetteer:
            return self._gazetteer[name]

        lowered = name.lower()
        contained = [key for key in self._gazetteer if key.lower() in lowered]
        if contained:
            # "Brooklyn, NYC" should resolve to Brooklyn, not NYC
            return self._gazetteer[max(contained, key=len)]
        for key, coords in self._gazetteer.items():
            if lowered and lowered in key.lower():
                return coords

        logger.warning(f"[GEOCODE] No coordinates for '{location_name}', defaulting to NYC")
        return self._default
