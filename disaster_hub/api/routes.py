"""API routes for Disaster Hub.

Every cached read goes through ``cached_fetch``: the key covers all request
parameters, a hit skips the computation, a miss computes and stores with the
endpoint's TTL. Routes that change or recompute data publish a real-time
event; publishing never delays or fails the response.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from disaster_hub.models import (
    Coordinates,
    Disaster,
    ErrorCode,
    Report,
    Resource,
    SocialMediaPost,
    Urgency,
    User,
    UserRole,
    utc_now,
)
from disaster_hub.services import (
    CacheStore,
    CacheTTL,
    ConnectionManager,
    DisasterRepository,
    GeocodingService,
    ImageVerifier,
    OfficialUpdatesService,
    RealtimeEvent,
    ResourceService,
    SocialMediaService,
    cached_fetch,
)
from disaster_hub.services.geocoding import DEFAULT_COORDINATES
from disaster_hub.services.social_media import PRIORITY_TERMS

from .dependencies import (
    api_error,
    get_cache,
    get_current_user,
    get_disasters,
    get_geocoder,
    get_official_updates,
    get_realtime,
    get_resources,
    get_social_media,
    get_verifier,
    require_role,
)

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_user)])


async def _get_disaster_or_404(repo: DisasterRepository, disaster_id: str) -> Disaster:
    disaster = await repo.get(disaster_id)
    if disaster is None:
        raise api_error(
            404,
            ErrorCode.NOT_FOUND,
            f"Disaster {disaster_id} not found",
            "Disaster not found.",
        )
    return disaster


async def _geocode_cached(
    cache: CacheStore, geocoder: GeocodingService, location_name: str
) -> Coordinates:
    """Geocode a location name through the cache."""

    async def compute() -> dict:
        coords = await geocoder.geocode(location_name)
        logger.info(f"[GEOCODE] {location_name} -> {coords.lat}, {coords.lng}")
        return coords.model_dump()

    result = await cached_fetch(
        cache, CacheStore.build_geocode_key(location_name), compute, CacheTTL.GEOCODE
    )
    return Coordinates(**result.value)


# ─── Disasters ───


class DisasterCreateRequest(BaseModel):
    """Request model for creating a disaster."""
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    location_name: Optional[str] = None
    location: Optional[Coordinates] = None
    tags: list[str] = Field(default_factory=list)


class DisasterUpdateRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    location_name: Optional[str] = None
    location: Optional[Coordinates] = None
    tags: Optional[list[str]] = None


class DisasterListResponse(BaseModel):
    disasters: list[Disaster]
    count: int
    filters: dict


class DeleteResponse(BaseModel):
    message: str
    id: str


@router.get("/disasters", response_model=DisasterListResponse)
async def list_disasters(
    tag: Optional[str] = None,
    owner_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    repo: DisasterRepository = Depends(get_disasters),
) -> DisasterListResponse:
    """List disasters, newest first."""
    disasters = await repo.list_disasters(tag=tag, owner_id=owner_id, limit=limit, offset=offset)
    logger.info(f"[DISASTER] Retrieved {len(disasters)} disasters")
    return DisasterListResponse(
        disasters=disasters,
        count=len(disasters),
        filters={"tag": tag, "owner_id": owner_id},
    )


@router.get("/disasters/{disaster_id}", response_model=Disaster)
async def get_disaster(
    disaster_id: str,
    repo: DisasterRepository = Depends(get_disasters),
) -> Disaster:
    return await _get_disaster_or_404(repo, disaster_id)


@router.post("/disasters", response_model=Disaster, status_code=201)
async def create_disaster(
    request: DisasterCreateRequest,
    user: User = Depends(get_current_user),
    repo: DisasterRepository = Depends(get_disasters),
    cache: CacheStore = Depends(get_cache),
    geocoder: GeocodingService = Depends(get_geocoder),
    realtime: ConnectionManager = Depends(get_realtime),
) -> Disaster:
    """Create a disaster owned by the caller.

    A ``location_name`` without explicit coordinates is geocoded.
    """
    location = request.location
    if location is None and request.location_name:
        location = await _geocode_cached(cache, geocoder, request.location_name)

    disaster = await repo.create(
        title=request.title,
        description=request.description,
        owner_id=user.id,
        location_name=request.location_name,
        location=location,
        tags=request.tags,
    )
    realtime.publish(RealtimeEvent.DISASTER_UPDATED, {"action": "create", "disaster": disaster})
    return disaster


@router.put("/disasters/{disaster_id}", response_model=Disaster)
async def update_disaster(
    disaster_id: str,
    request: DisasterUpdateRequest,
    user: User = Depends(get_current_user),
    repo: DisasterRepository = Depends(get_disasters),
    cache: CacheStore = Depends(get_cache),
    geocoder: GeocodingService = Depends(get_geocoder),
    realtime: ConnectionManager = Depends(get_realtime),
) -> Disaster:
    """Update a disaster. Only its owner or an admin may do so."""
    existing = await _get_disaster_or_404(repo, disaster_id)
    if existing.owner_id != user.id and user.role != UserRole.ADMIN:
        raise api_error(
            403,
            ErrorCode.FORBIDDEN,
            f"{user.id} does not own disaster {disaster_id}",
            "Not authorized to update this disaster.",
        )

    changes: dict[str, Any] = {
        field: getattr(request, field) for field in request.model_fields_set
    }
    if "location_name" in changes and "location" not in changes and changes["location_name"]:
        changes["location"] = await _geocode_cached(cache, geocoder, changes["location_name"])

    disaster = await repo.update(disaster_id, user.id, changes)
    if disaster is None:
        raise api_error(404, ErrorCode.NOT_FOUND, f"Disaster {disaster_id} not found", "Disaster not found.")

    realtime.publish(RealtimeEvent.DISASTER_UPDATED, {"action": "update", "disaster": disaster})
    return disaster


@router.delete("/disasters/{disaster_id}", response_model=DeleteResponse)
async def delete_disaster(
    disaster_id: str,
    user: User = Depends(require_role(UserRole.ADMIN)),
    repo: DisasterRepository = Depends(get_disasters),
    realtime: ConnectionManager = Depends(get_realtime),
) -> DeleteResponse:
    """Delete a disaster (admins only)."""
    removed = await repo.delete(disaster_id)
    if removed is None:
        raise api_error(404, ErrorCode.NOT_FOUND, f"Disaster {disaster_id} not found", "Disaster not found.")

    logger.info(f"[DISASTER] {disaster_id} deleted by {user.id}")
    realtime.publish(RealtimeEvent.DISASTER_UPDATED, {"action": "delete", "disaster": removed})
    return DeleteResponse(message="Disaster deleted successfully", id=disaster_id)


# ─── Geocoding ───


class GeocodeRequest(BaseModel):
    """Either a free-text description or a location name is required."""
    description: Optional[str] = None
    location_name: Optional[str] = None


class GeocodeResponse(BaseModel):
    original_description: Optional[str] = None
    extracted_location: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    success: bool
    message: Optional[str] = None


class LocationGeocodeResponse(BaseModel):
    location_name: str
    coordinates: Coordinates
    success: bool = True


@router.post("/geocode", response_model=GeocodeResponse)
async def geocode(
    request: GeocodeRequest,
    cache: CacheStore = Depends(get_cache),
    geocoder: GeocodingService = Depends(get_geocoder),
) -> GeocodeResponse:
    """Extract a location from text (when needed) and geocode it."""
    if not request.description and not request.location_name:
        raise api_error(
            400,
            ErrorCode.INVALID_INPUT,
            "Either description or location_name is required",
            "Please provide a description or a location name.",
        )

    location_name = request.location_name
    if request.description and not location_name:
        description = request.description

        async def extract() -> Optional[str]:
            return await geocoder.extract_location(description)

        extraction = await cached_fetch(
            cache,
            CacheStore.build_location_extraction_key(description),
            extract,
            CacheTTL.LOCATION_EXTRACTION,
        )
        location_name = extraction.value
        if location_name and not extraction.cached:
            logger.info(f"[GEOCODE] Location extracted from description: {location_name}")

    if not location_name:
        return GeocodeResponse(
            original_description=request.description,
            success=False,
            message="Could not extract or geocode location",
        )

    coordinates = await _geocode_cached(cache, geocoder, location_name)
    return GeocodeResponse(
        original_description=request.description,
        extracted_location=location_name,
        coordinates=coordinates,
        success=True,
    )


@router.get("/geocode/location/{name}", response_model=LocationGeocodeResponse)
async def geocode_location(
    name: str,
    cache: CacheStore = Depends(get_cache),
    geocoder: GeocodingService = Depends(get_geocoder),
) -> LocationGeocodeResponse:
    coordinates = await _geocode_cached(cache, geocoder, name)
    return LocationGeocodeResponse(location_name=name, coordinates=coordinates)


# ─── Resources ───


class NearbyResourcesResponse(BaseModel):
    disaster_id: str
    search_location: Coordinates
    radius: float
    resources: list[dict]
    count: int
    filters: dict
    cached: bool
    last_updated: datetime


class ResourceTypesResponse(BaseModel):
    disaster_id: str
    resource_types: list[dict]
    total_resources: int


class ResourceCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    location_name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    capacity: Optional[int] = Field(None, ge=0)
    contact: Optional[str] = None
    services: list[str] = Field(default_factory=list)


class ResourceUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    location_name: Optional[str] = None
    location: Optional[Coordinates] = None
    type: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    current_occupancy: Optional[int] = Field(None, ge=0)
    contact: Optional[str] = None
    status: Optional[str] = None
    services: Optional[list[str]] = None


@router.get("/disasters/{disaster_id}/resources", response_model=NearbyResourcesResponse)
async def get_nearby_resources(
    disaster_id: str,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    radius: float = Query(10.0, description="Search radius in km"),
    resource_type: Optional[str] = Query(None, alias="type"),
    status: str = "active",
    repo: DisasterRepository = Depends(get_disasters),
    resources: ResourceService = Depends(get_resources),
    cache: CacheStore = Depends(get_cache),
    realtime: ConnectionManager = Depends(get_realtime),
) -> NearbyResourcesResponse:
    """Resources near the query point, or near the disaster when no point is given."""
    disaster = await _get_disaster_or_404(repo, disaster_id)

    longitude = lng if lng is not None else lon
    if lat is not None and longitude is not None:
        search = Coordinates(lat=lat, lng=longitude)
    elif disaster.location is not None:
        search = disaster.location
    else:
        logger.warning(f"[RESOURCES] No location for disaster {disaster_id}, using NYC center")
        search = DEFAULT_COORDINATES

    async def compute() -> list[dict]:
        return resources.find_nearby(
            disaster_id, search.lat, search.lng, radius, resource_type, status
        )

    key = CacheStore.build_resources_key(
        disaster_id, search.lat, search.lng, radius, resource_type, status
    )
    result = await cached_fetch(cache, key, compute, CacheTTL.RESOURCES)

    realtime.publish(RealtimeEvent.RESOURCES_UPDATED, {
        "disaster_id": disaster_id,
        "resources": result.value,
        "search_location": search,
        "radius": radius,
    })
    return NearbyResourcesResponse(
        disaster_id=disaster_id,
        search_location=search,
        radius=radius,
        resources=result.value,
        count=len(result.value),
        filters={"type": resource_type, "status": status},
        cached=result.cached,
        last_updated=utc_now(),
    )


@router.get("/disasters/{disaster_id}/resources/types", response_model=ResourceTypesResponse)
async def get_resource_types(
    disaster_id: str,
    repo: DisasterRepository = Depends(get_disasters),
    resources: ResourceService = Depends(get_resources),
) -> ResourceTypesResponse:
    await _get_disaster_or_404(repo, disaster_id)
    return ResourceTypesResponse(
        disaster_id=disaster_id,
        resource_types=resources.resource_types(disaster_id),
        total_resources=resources.count(disaster_id),
    )


@router.post("/disasters/{disaster_id}/resources", response_model=Resource, status_code=201)
async def create_resource(
    disaster_id: str,
    request: ResourceCreateRequest,
    user: User = Depends(get_current_user),
    repo: DisasterRepository = Depends(get_disasters),
    resources: ResourceService = Depends(get_resources),
    cache: CacheStore = Depends(get_cache),
    realtime: ConnectionManager = Depends(get_realtime),
) -> Resource:
    await _get_disaster_or_404(repo, disaster_id)
    location = None
    if request.lat is not None and request.lng is not None:
        location = Coordinates(lat=request.lat, lng=request.lng)

    resource = resources.add(
        disaster_id=disaster_id,
        name=request.name,
        location_name=request.location_name,
        resource_type=request.type,
        location=location,
        capacity=request.capacity,
        contact=request.contact,
        services=request.services,
    )
    logger.info(f"[RESOURCES] {resource.id} created by {user.id}")
    await cache.invalidate(CacheStore.build_resources_prefix(disaster_id))
    realtime.publish(RealtimeEvent.RESOURCES_UPDATED, {
        "disaster_id": disaster_id,
        "action": "create",
        "resource": resource,
    })
    return resource


@router.put("/disasters/{disaster_id}/resources/{resource_id}", response_model=Resource)
async def update_resource(
    disaster_id: str,
    resource_id: str,
    request: ResourceUpdateRequest,
    user: User = Depends(get_current_user),
    repo: DisasterRepository = Depends(get_disasters),
    resources: ResourceService = Depends(get_resources),
    cache: CacheStore = Depends(get_cache),
    realtime: ConnectionManager = Depends(get_realtime),
) -> Resource:
    await _get_disaster_or_404(repo, disaster_id)
    changes = {field: getattr(request, field) for field in request.model_fields_set}
    resource = resources.update(disaster_id, resource_id, changes)
    if resource is None:
        raise api_error(404, ErrorCode.NOT_FOUND, f"Resource {resource_id} not found", "Resource not found.")

    logger.info(f"[RESOURCES] {resource_id} updated by {user.id}")
    # Seeded resources appear in every disaster's answers
    prefix = (
        CacheStore.build_resources_prefix(disaster_id) if resource.disaster_id else "resources:"
    )
    await cache.invalidate(prefix)
    realtime.publish(RealtimeEvent.RESOURCES_UPDATED, {
        "disaster_id": disaster_id,
        "action": "update",
        "resource": resource,
    })
    return resource


# ─── Social media ───


class SocialMediaResponse(BaseModel):
    disaster_id: str
    posts: list[SocialMediaPost]
    count: int
    realtime: bool
    cached: bool
    last_updated: datetime


class PriorityPostsResponse(BaseModel):
    disaster_id: str
    priority_posts: list[SocialMediaPost]
    count: int
    criteria: list[str]
    last_updated: datetime


class ReportRequest(BaseModel):
    content: str = Field(..., min_length=1)
    location: Optional[str] = None
    urgency: Urgency = Urgency.MEDIUM
    image_url: Optional[str] = None


class ReportResponse(BaseModel):
    report: Report
    social_media_post: SocialMediaPost
    message: str


@router.get("/disasters/{disaster_id}/social-media", response_model=SocialMediaResponse)
async def list_social_media_posts(
    disaster_id: str,
    limit: int = Query(20, ge=1, le=100),
    realtime: bool = False,
    repo: DisasterRepository = Depends(get_disasters),
    social: SocialMediaService = Depends(get_social_media),
    cache: CacheStore = Depends(get_cache),
    manager: ConnectionManager = Depends(get_realtime),
) -> SocialMediaResponse:
    """Social media reports for a disaster.

    ``realtime`` skips the cache read, adds newly generated posts and stores
    the result with a short TTL.
    """
    disaster = await _get_disaster_or_404(repo, disaster_id)

    async def compute() -> list[dict]:
        posts = social.feed(
            disaster.tags, limit=limit, realtime=realtime, disaster_id=disaster_id
        )
        logger.info(f"[SOCIAL] Retrieved {len(posts)} posts for disaster {disaster_id}")
        return [post.model_dump(mode="json") for post in posts]

    result = await cached_fetch(
        cache,
        CacheStore.build_social_media_key(disaster_id, limit),
        compute,
        CacheTTL.SOCIAL_MEDIA_REALTIME if realtime else CacheTTL.SOCIAL_MEDIA,
        bypass_cache=realtime,
    )
    posts = [SocialMediaPost(**post) for post in result.value]

    new_posts = [post for post in posts if post.is_realtime]
    if realtime and new_posts:
        manager.publish(RealtimeEvent.SOCIAL_MEDIA_UPDATED, {
            "disaster_id": disaster_id,
            "new_posts": new_posts,
            "total_posts": len(posts),
        })

    return SocialMediaResponse(
        disaster_id=disaster_id,
        posts=posts,
        count=len(posts),
        realtime=realtime,
        cached=result.cached,
        last_updated=utc_now(),
    )


@router.get("/disasters/{disaster_id}/social-media/priority", response_model=PriorityPostsResponse)
async def get_priority_posts(
    disaster_id: str,
    repo: DisasterRepository = Depends(get_disasters),
    social: SocialMediaService = Depends(get_social_media),
) -> PriorityPostsResponse:
    disaster = await _get_disaster_or_404(repo, disaster_id)
    posts = social.priority_posts(disaster.tags, disaster_id)
    return PriorityPostsResponse(
        disaster_id=disaster_id,
        priority_posts=posts,
        count=len(posts),
        criteria=[Urgency.CRITICAL.value, Urgency.HIGH.value, *PRIORITY_TERMS],
        last_updated=utc_now(),
    )


@router.post("/disasters/{disaster_id}/social-media/report", response_model=ReportResponse, status_code=201)
async def submit_report(
    disaster_id: str,
    request: ReportRequest,
    user: User = Depends(get_current_user),
    repo: DisasterRepository = Depends(get_disasters),
    social: SocialMediaService = Depends(get_social_media),
    cache: CacheStore = Depends(get_cache),
    realtime: ConnectionManager = Depends(get_realtime),
) -> ReportResponse:
    await _get_disaster_or_404(repo, disaster_id)
    report, post = social.submit_report(
        disaster_id,
        user.id,
        request.content,
        location=request.location,
        urgency=request.urgency,
        image_url=request.image_url,
    )
    await cache.invalidate(CacheStore.build_social_media_prefix(disaster_id))
    realtime.publish(RealtimeEvent.SOCIAL_MEDIA_UPDATED, {
        "disaster_id": disaster_id,
        "new_posts": [post],
        "action": "user_report",
    })
    return ReportResponse(report=report, social_media_post=post, message="Report submitted successfully")


# ─── Official updates ───


class OfficialUpdatesResponse(BaseModel):
    disaster_id: str
    updates: list[dict]
    count: int
    filters: dict
    fresh_data: bool
    cached: bool
    last_updated: datetime


class SourcesResponse(BaseModel):
    disaster_id: str
    sources: list[dict]
    count: int


class RefreshResponse(BaseModel):
    disaster_id: str
    invalidated: int
    message: str


@router.get("/disasters/{disaster_id}/official-updates", response_model=OfficialUpdatesResponse)
async def list_official_updates(
    disaster_id: str,
    limit: int = Query(20, ge=1, le=100),
    priority: Optional[Urgency] = None,
    category: Optional[str] = None,
    fresh: bool = False,
    repo: DisasterRepository = Depends(get_disasters),
    updates_service: OfficialUpdatesService = Depends(get_official_updates),
    cache: CacheStore = Depends(get_cache),
) -> OfficialUpdatesResponse:
    """Official updates relevant to a disaster.

    ``fresh`` skips the cache read and scrapes the official sources.
    """
    disaster = await _get_disaster_or_404(repo, disaster_id)
    priority_value = priority.value if priority else None

    async def compute() -> list[dict]:
        updates = await updates_service.fetch(
            disaster.tags, priority=priority_value, category=category, fresh=fresh, limit=limit
        )
        logger.info(f"[UPDATES] Retrieved {len(updates)} official updates for disaster {disaster_id}")
        return [update.model_dump(mode="json") for update in updates]

    result = await cached_fetch(
        cache,
        CacheStore.build_official_updates_key(disaster_id, priority_value, category, limit),
        compute,
        CacheTTL.OFFICIAL_UPDATES_FRESH if fresh else CacheTTL.OFFICIAL_UPDATES,
        bypass_cache=fresh,
    )
    return OfficialUpdatesResponse(
        disaster_id=disaster_id,
        updates=result.value,
        count=len(result.value),
        filters={"priority": priority_value, "category": category},
        fresh_data=fresh,
        cached=result.cached,
        last_updated=utc_now(),
    )


@router.get("/disasters/{disaster_id}/official-updates/sources", response_model=SourcesResponse)
async def get_official_sources(
    disaster_id: str,
    repo: DisasterRepository = Depends(get_disasters),
    updates_service: OfficialUpdatesService = Depends(get_official_updates),
) -> SourcesResponse:
    await _get_disaster_or_404(repo, disaster_id)
    sources = updates_service.sources
    return SourcesResponse(disaster_id=disaster_id, sources=sources, count=len(sources))


@router.post("/disasters/{disaster_id}/official-updates/refresh", response_model=RefreshResponse)
async def refresh_official_updates(
    disaster_id: str,
    repo: DisasterRepository = Depends(get_disasters),
    cache: CacheStore = Depends(get_cache),
    realtime: ConnectionManager = Depends(get_realtime),
) -> RefreshResponse:
    """Drop every cached official-updates answer for the disaster."""
    await _get_disaster_or_404(repo, disaster_id)
    invalidated = await cache.invalidate(CacheStore.build_official_updates_prefix(disaster_id))
    logger.info(f"[UPDATES] Invalidated {invalidated} cached answers for disaster {disaster_id}")
    realtime.publish(RealtimeEvent.OFFICIAL_UPDATES_UPDATED, {
        "disaster_id": disaster_id,
        "action": "refresh",
    })
    return RefreshResponse(
        disaster_id=disaster_id,
        invalidated=invalidated,
        message="Official updates cache cleared",
    )


# ─── Image verification ───


class VerifyImageRequest(BaseModel):
    image_url: str = Field(..., min_length=1)


class BatchVerifyRequest(BaseModel):
    image_urls: list[str] = Field(..., min_length=1, max_length=10)


class VerifyImageResponse(BaseModel):
    disaster_id: str
    verification: dict
    cached: bool


class BatchVerifyResponse(BaseModel):
    disaster_id: str
    results: list[dict]
    total: int
    succeeded: int


async def _verify_cached(cache: CacheStore, verifier: ImageVerifier, image_url: str):
    async def compute() -> dict:
        verification = await verifier.verify(image_url)
        return verification.model_dump(mode="json")

    return await cached_fetch(
        cache,
        CacheStore.build_image_verification_key(image_url),
        compute,
        CacheTTL.IMAGE_VERIFICATION,
    )


@router.post("/disasters/{disaster_id}/verify-image", response_model=VerifyImageResponse)
async def verify_image(
    disaster_id: str,
    request: VerifyImageRequest,
    repo: DisasterRepository = Depends(get_disasters),
    cache: CacheStore = Depends(get_cache),
    verifier: ImageVerifier = Depends(get_verifier),
) -> VerifyImageResponse:
    await _get_disaster_or_404(repo, disaster_id)
    result = await _verify_cached(cache, verifier, request.image_url)
    return VerifyImageResponse(disaster_id=disaster_id, verification=result.value, cached=result.cached)


@router.post("/disasters/{disaster_id}/verify-image/batch", response_model=BatchVerifyResponse)
async def verify_images_batch(
    disaster_id: str,
    request: BatchVerifyRequest,
    repo: DisasterRepository = Depends(get_disasters),
    cache: CacheStore = Depends(get_cache),
    verifier: ImageVerifier = Depends(get_verifier),
) -> BatchVerifyResponse:
    """Verify up to 10 images; a failing image is reported, not fatal."""
    await _get_disaster_or_404(repo, disaster_id)
    results: list[dict] = []
    for image_url in request.image_urls:
        try:
            result = await _verify_cached(cache, verifier, image_url)
            results.append({"image_url": image_url, "success": True, "verification": result.value})
        except Exception as e:
            logger.error(f"[VERIFY] Error verifying {image_url}: {e}")
            results.append({"image_url": image_url, "success": False, "error": str(e)})

    return BatchVerifyResponse(
        disaster_id=disaster_id,
        results=results,
        total=len(results),
        succeeded=sum(1 for r in results if r["success"]),
    )


# ─── Cache administration ───


class CacheAdminResponse(BaseModel):
    success: bool
    action: str


@router.post("/cache/cleanup", response_model=CacheAdminResponse)
async def cleanup_cache(
    user: User = Depends(require_role(UserRole.ADMIN)),
    cache: CacheStore = Depends(get_cache),
) -> CacheAdminResponse:
    """Remove expired cache entries."""
    success = await cache.cleanup()
    logger.info(f"[CACHE] Cleanup requested by {user.id}: {success}")
    return CacheAdminResponse(success=success, action="cleanup")


@router.delete("/cache", response_model=CacheAdminResponse)
async def clear_cache(
    user: User = Depends(require_role(UserRole.ADMIN)),
    cache: CacheStore = Depends(get_cache),
) -> CacheAdminResponse:
    """Remove every cache entry."""
    success = await cache.clear()
    logger.info(f"[CACHE] Clear requested by {user.id}: {success}")
    return CacheAdminResponse(success=success, action="clear")
