"""Disaster records.

In-memory repository seeded with sample disasters. Every mutation appends an
entry to the record's audit trail.
"""

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional
from uuid import uuid4

from disaster_hub.models import AuditEntry, Coordinates, Disaster, utc_now

logger = logging.getLogger(__name__)


def _seed_disasters() -> list[Disaster]:
    now = utc_now()
    return [
        Disaster(
            id="disaster_1",
            title="NYC Flood",
            description="Heavy flooding in Manhattan, NYC. Water levels rising across Lower Manhattan.",
            location_name="Manhattan, NYC",
            location=Coordinates(lat=40.7831, lng=-73.9712),
            tags=["flood", "urgent"],
            owner_id="netrunnerX",
            audit_trail=[AuditEntry(action="create", user_id="netrunnerX", timestamp=now - timedelta(hours=6))],
            created_at=now - timedelta(hours=6),
        ),
        Disaster(
            id="disaster_2",
            title="Brooklyn Power Outage",
            description="Widespread power outage in Brooklyn after the storm.",
            location_name="Brooklyn",
            location=Coordinates(lat=40.6782, lng=-73.9442),
            tags=["power", "outage"],
            owner_id="reliefAdmin",
            audit_trail=[AuditEntry(action="create", user_id="reliefAdmin", timestamp=now - timedelta(hours=3))],
            created_at=now - timedelta(hours=3),
        ),
        Disaster(
            id="disaster_3",
            title="Queens Fire",
            description="Fire reported near a warehouse district.",
            location_name=None,
            location=None,
            tags=["fire"],
            owner_id="contributor1",
            audit_trail=[AuditEntry(action="create", user_id="contributor1", timestamp=now - timedelta(hours=1))],
            created_at=now - timedelta(hours=1),
        ),
    ]


class DisasterRepository(ABC):
    """Abstract base class for disaster storage."""

    @abstractmethod
    async def list_disasters(
        self,
        tag: Optional[str] = None,
        owner_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Disaster]:
        pass

    @abstractmethod
    async def get(self, disaster_id: str) -> Optional[Disaster]:
        pass

    @abstractmethod
    async def create(
        self,
        title: str,
        description: str,
        owner_id: str,
        location_name: Optional[str] = None,
        location: Optional[Coordinates] = None,
        tags: Optional[list[str]] = None,
    ) -> Disaster:
        pass

    @abstractmethod
    async def update(self, disaster_id: str, user_id: str, changes: dict) -> Optional[Disaster]:
        pass

    @abstractmethod
    async def delete(self, disaster_id: str) -> Optional[Disaster]:
        pass


class InMemoryDisasterRepository(DisasterRepository):
    """Dictionary-backed repository. Data lives for the life of the process."""

    UPDATABLE_FIELDS = ("title", "description", "location_name", "location", "tags")

    def __init__(self, seed: bool = True) -> None:
        self._disasters: dict[str, Disaster] = {}
        if seed:
            for disaster in _seed_disasters():
                self._disasters[disaster.id] = disaster

    async def list_disasters(
        self,
        tag: Optional[str] = None,
        owner_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Disaster]:
        disasters = sorted(self._disasters.values(), key=lambda d: d.created_at, reverse=True)
        if tag:
            disasters = [d for d in disasters if tag in d.tags]
        if owner_id:
            disasters = [d for d in disasters if d.owner_id == owner_id]
        return [d.model_copy(deep=True) for d in disasters[offset:offset + limit]]

    async def get(self, disaster_id: str) -> Optional[Disaster]:
        disaster = self._disasters.get(disaster_id)
        return disaster.model_copy(deep=True) if disaster else None

    async def create(
        self,
        title: str,
        description: str,
        owner_id: str,
        location_name: Optional[str] = None,
        location: Optional[Coordinates] = None,
        tags: Optional[list[str]] = None,
    ) -> Disaster:
        disaster = Disaster(
            id=str(uuid4()),
            title=title,
            description=description,
            location_name=location_name,
            location=location,
            tags=tags or [],
            owner_id=owner_id,
            audit_trail=[AuditEntry(action="create", user_id=owner_id)],
        )
        self._disasters[disaster.id] = disaster
        logger.info(f"[DISASTER] Created {disaster.id} by {owner_id}")
        return disaster.model_copy(deep=True)

    async def update(self, disaster_id: str, user_id: str, changes: dict) -> Optional[Disaster]:
        existing = self._disasters.get(disaster_id)
        if existing is None:
            return None

        applied = {k: v for k, v in changes.items() if k in self.UPDATABLE_FIELDS}
        audit = AuditEntry(
            action="update",
            user_id=user_id,
            changes={
                k: (v.model_dump() if isinstance(v, Coordinates) else v)
                for k, v in applied.items()
            },
        )
        updated = existing.model_copy(
            update={**applied, "audit_trail": [*existing.audit_trail, audit]},
            deep=True,
        )
        self._disasters[disaster_id] = updated
        logger.info(f"[DISASTER] Updated {disaster_id} by {user_id}")
        return updated.model_copy(deep=True)

    async def delete(self, disaster_id: str) -> Optional[Disaster]:
        removed = self._disasters.pop(disaster_id, None)
        if removed is not None:
            logger.info(f"[DISASTER] Deleted {disaster_id}")
        return removed
