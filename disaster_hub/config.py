"""Application settings read from environment variables.

A ``.env`` file in the working directory is loaded first when present.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime configuration.

    Attributes:
        database_url: SQLAlchemy URL of the database holding the cache table.
        cache_backend: ``sql`` (default) or ``redis``.
        redis_url: Redis URL, used only with the redis backend.
        cache_default_ttl: TTL in seconds when a caller does not pass one.
        rate_limit_max_requests: Requests allowed per client per window.
        rate_limit_window_seconds: Length of the rate limit window.
        cors_origins: Allowed CORS origins.
        log_level: Root log level name.
    """

    database_url: str = "sqlite:///./disaster_hub.db"
    cache_backend: str = "sql"
    redis_url: str = "redis://localhost:6379"
    cache_default_ttl: int = 3600
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 900
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current environment."""
        defaults = cls()
        cors = os.getenv("CORS_ORIGINS")
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            cache_backend=os.getenv("CACHE_BACKEND", defaults.cache_backend).lower(),
            redis_url=os.getenv("REDIS_URL", defaults.redis_url),
            cache_default_ttl=int(os.getenv("CACHE_DEFAULT_TTL", defaults.cache_default_ttl)),
            rate_limit_max_requests=int(
                os.getenv("RATE_LIMIT_MAX_REQUESTS", defaults.rate_limit_max_requests)
            ),
            rate_limit_window_seconds=int(
                os.getenv("RATE_LIMIT_WINDOW_SECONDS", defaults.rate_limit_window_seconds)
            ),
            cors_origins=_split_csv(cors) if cors else defaults.cors_origins,
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )
