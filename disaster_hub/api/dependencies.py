"""FastAPI dependencies: service lookup and header-based mock authentication.

Services are built once in the application lifespan and stored on
``app.state``; handlers receive them through these dependencies.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from disaster_hub.models import AppError, ErrorCode, User, UserRole
from disaster_hub.services import (
    CacheStore,
    ConnectionManager,
    DisasterRepository,
    GeocodingService,
    ImageVerifier,
    OfficialUpdatesService,
    ResourceService,
    SocialMediaService,
)

logger = logging.getLogger(__name__)

MOCK_USERS: dict[str, User] = {
    "netrunnerX": User(id="netrunnerX", name="NetRunner X", role=UserRole.ADMIN),
    "reliefAdmin": User(id="reliefAdmin", name="Relief Admin", role=UserRole.ADMIN),
    "contributor1": User(id="contributor1", name="Contributor One", role=UserRole.CONTRIBUTOR),
    "citizen1": User(id="citizen1", name="Citizen One", role=UserRole.CONTRIBUTOR),
}


def api_error(
    status_code: int,
    code: ErrorCode,
    message: str,
    user_message: str,
    details: Optional[dict] = None,
) -> HTTPException:
    """Build an HTTPException whose detail is a serialized ``AppError``."""
    error = AppError(code=code, message=message, user_message=user_message, details=details)
    return HTTPException(status_code=status_code, detail=error.model_dump(mode="json"))


def get_cache(request: Request) -> CacheStore:
    return request.app.state.cache


def get_realtime(request: Request) -> ConnectionManager:
    return request.app.state.realtime


def get_geocoder(request: Request) -> GeocodingService:
    return request.app.state.geocoder


def get_disasters(request: Request) -> DisasterRepository:
    return request.app.state.disasters


def get_resources(request: Request) -> ResourceService:
    return request.app.state.resources


def get_social_media(request: Request) -> SocialMediaService:
    return request.app.state.social_media


def get_official_updates(request: Request) -> OfficialUpdatesService:
    return request.app.state.official_updates


def get_verifier(request: Request) -> ImageVerifier:
    return request.app.state.verifier


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> User:
    """Resolve the caller from ``x-user-id`` or ``Authorization: Bearer <id>``."""
    user_id = x_user_id
    if not user_id and authorization:
        user_id = authorization.removeprefix("Bearer ").strip()

    if not user_id:
        raise api_error(
            401,
            ErrorCode.UNAUTHORIZED,
            "Missing x-user-id or Authorization header",
            "Authentication required.",
        )

    user = MOCK_USERS.get(user_id)
    if user is None:
        raise api_error(
            401,
            ErrorCode.UNAUTHORIZED,
            f"Unknown user: {user_id}",
            "User not found in system.",
        )

    logger.debug(f"[AUTH] Authenticated user: {user.id} ({user.role.value})")
    return user


def require_role(*roles: UserRole):
    """Dependency factory restricting a route to the given roles."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise api_error(
                403,
                ErrorCode.FORBIDDEN,
                f"Role {user.role.value} not in {[r.value for r in roles]}",
                "Insufficient permissions.",
                details={"required": [r.value for r in roles], "current": user.role.value},
            )
        return user

    return checker
