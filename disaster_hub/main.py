"""Disaster Hub FastAPI Application.

Main entry point for the backend API server.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException

from disaster_hub.api import router
from disaster_hub.config import Settings
from disaster_hub.models import ErrorCode, utc_now
from disaster_hub.services import (
    ConnectionManager,
    InMemoryDisasterRepository,
    MockGeocodingService,
    MockImageVerifier,
    OfficialUpdatesService,
    ResourceService,
    SocialMediaService,
    create_cache_store,
)
from disaster_hub.utils.ratelimit import RateLimiter

logger = logging.getLogger(__name__)

# Paths exempt from rate limiting
UNLIMITED_PATHS = ("/health", "/ws")


def _error_response(status_code: int, error: dict, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


def _validation_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors reduced to location, message and type."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application. Settings default to the environment."""
    settings = settings or Settings.from_env()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        app.state.cache = create_cache_store(
            backend=settings.cache_backend,
            database_url=settings.database_url,
            redis_url=settings.redis_url,
            default_ttl=settings.cache_default_ttl,
        )
        app.state.realtime = ConnectionManager()
        app.state.geocoder = MockGeocodingService()
        app.state.disasters = InMemoryDisasterRepository()
        app.state.resources = ResourceService()
        app.state.social_media = SocialMediaService()
        app.state.official_updates = OfficialUpdatesService()
        app.state.verifier = MockImageVerifier()
        logger.info(f"[APP] Started with {settings.cache_backend} cache backend")
        yield
        # Shutdown
        await app.state.realtime.close()
        await app.state.cache.close()
        logger.info("[APP] Shutdown complete")

    app = FastAPI(
        title="Disaster Hub API",
        description="Disaster response coordination backend",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiter = RateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        """Limit requests per client (user id header, else client address)."""
        if request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        client = request.headers.get("x-user-id") or (
            request.client.host if request.client else "unknown"
        )
        status = app.state.rate_limiter.hit(client)
        headers = {
            "X-RateLimit-Limit": str(status.limit),
            "X-RateLimit-Remaining": str(status.remaining),
            "X-RateLimit-Reset": str(int(status.reset_at)),
        }
        if not status.allowed:
            logger.warning(f"[RATE] Limit exceeded for {client}")
            headers["Retry-After"] = str(status.retry_after)
            return _error_response(
                429,
                {
                    "code": ErrorCode.RATE_LIMITED.value,
                    "message": f"Rate limit of {status.limit} requests exceeded",
                    "user_message": "Too many requests. Please try again later.",
                },
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response

    # Global exception handlers
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Wrap route errors in the common error envelope."""
        if isinstance(exc.detail, dict):
            error = exc.detail
        else:
            error = {
                "code": ErrorCode.NOT_FOUND.value if exc.status_code == 404 else ErrorCode.API_ERROR.value,
                "message": str(exc.detail),
                "user_message": str(exc.detail),
            }
        return _error_response(exc.status_code, error, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Handle invalid request bodies and query parameters."""
        return _error_response(
            422,
            {
                "code": ErrorCode.VALIDATION_ERROR.value,
                "message": "Request validation failed",
                "user_message": "Invalid request format. Please check your input.",
                "details": {"errors": _validation_errors(exc)},
            },
        )

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: ValidationError):
        """Handle Pydantic validation errors."""
        return _error_response(
            422,
            {
                "code": ErrorCode.VALIDATION_ERROR.value,
                "message": str(exc),
                "user_message": "Invalid request format. Please check your input.",
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors."""
        logger.exception(f"[APP] Unhandled error on {request.url.path}: {exc}")
        return _error_response(
            500,
            {
                "code": ErrorCode.API_ERROR.value,
                "message": str(exc),
                "user_message": "Something went wrong. Please try again.",
            },
        )

    # Include API routes
    app.include_router(router, prefix="/api")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": utc_now().isoformat()}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Real-time event stream. Incoming messages other than ping are ignored."""
        manager: ConnectionManager = websocket.app.state.realtime
        await manager.connect(websocket)
        try:
            while True:
                message = await websocket.receive_text()
                if message == "ping":
                    await websocket.send_json({"event": "pong", "timestamp": utc_now().isoformat()})
        except WebSocketDisconnect:
            manager.disconnect(websocket)

    return app


app = create_app()
