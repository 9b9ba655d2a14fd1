"""Great-circle distance helpers.

``haversine_distance`` is the scalar form used for single lookups.
``filter_by_radius`` ranks a batch of geo-tagged records around a reference
point, computing all distances in one numpy pass.
"""

import copy
import logging
import math
from collections.abc import Iterable, Mapping
from typing import Any

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in kilometers between two points on the Earth's surface.

    Returns exactly 0.0 for identical coordinates. The haversine term is
    clamped to [0, 1] so antipodal points do not produce NaN from rounding.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_distances(
    ref_lat: float, ref_lng: float, lats: NDArray[np.float64], lngs: NDArray[np.float64]
) -> NDArray[np.float64]:
    """Vectorised ``haversine_distance`` from one point to many."""
    phi1 = np.radians(ref_lat)
    phi2 = np.radians(lats)
    d_phi = np.radians(lats - ref_lat)
    d_lambda = np.radians(lngs - ref_lng)

    a = np.sin(d_phi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def extract_point(candidate: Any) -> tuple[float, float] | None:
    """Return ``(lat, lng)`` from a record's ``location`` field.

    Accepts ``{"lat", "lng"}`` or ``{"lat", "lon"}`` mappings. Anything missing,
    non-numeric, non-finite or out of range yields None.
    """
    if not isinstance(candidate, Mapping):
        return None
    location = candidate.get("location")
    if not isinstance(location, Mapping):
        return None

    lat = location.get("lat")
    lng = location.get("lng", location.get("lon"))
    if isinstance(lat, bool) or isinstance(lng, bool):
        return None
    try:
        lat_f = float(lat)  # type: ignore[arg-type]
        lng_f = float(lng)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None

    if not (math.isfinite(lat_f) and math.isfinite(lng_f)):
        return None
    if not (-90 <= lat_f <= 90 and -180 <= lng_f <= 180):
        return None
    return lat_f, lng_f


def filter_by_radius(
    candidates: Iterable[Mapping[str, Any]],
    ref_lat: float,
    ref_lng: float,
    radius_km: float,
) -> list[dict[str, Any]]:
    """Candidates within ``radius_km`` of the reference point, nearest first.

    Each returned item is a shallow copy of the input record with an added
    ``distance`` (km). The boundary is inclusive and ties keep input order.
    Records without a usable location are skipped.

    Args:
        candidates: Records exposing ``location: {"lat", "lng"}``.
        ref_lat: Reference latitude.
        ref_lng: Reference longitude.
        radius_km: Search radius in kilometers. Negative radius matches nothing.

    Returns:
        A new list of deep copies; the input records are never modified.
    """
    if radius_km < 0:
        return []

    located: list[Mapping[str, Any]] = []
    lats: list[float] = []
    lngs: list[float] = []
    skipped = 0
    for candidate in candidates:
        point = extract_point(candidate)
        if point is None:
            skipped += 1
            continue
        located.append(candidate)
        lats.append(point[0])
        lngs.append(point[1])

    if skipped:
        logger.debug(f"[GEO] Skipped {skipped} candidates without a usable location")
    if not located:
        return []

    distances = haversine_distances(
        ref_lat, ref_lng, np.array(lats, dtype=np.float64), np.array(lngs, dtype=np.float64)
    )
    order = np.argsort(distances, kind="stable")

    results: list[dict[str, Any]] = []
    for idx in order:
        distance = float(distances[idx])
        if distance > radius_km:
            # Sorted ascending, nothing further can match
            break
        item = copy.deepcopy(dict(located[idx]))
        item["distance"] = distance
        results.append(item)
    return results
