"""Relief resources and nearby-resource search."""

import logging
from datetime import timedelta
from typing import Any, Optional
from uuid import uuid4

from disaster_hub.models import Coordinates, Resource, ResourceType, utc_now
from disaster_hub.utils.geo import filter_by_radius

logger = logging.getLogger(__name__)

RESOURCE_TYPE_INFO = {
    ResourceType.SHELTER: ("Emergency Shelters", "Temporary housing and accommodation", "home"),
    ResourceType.MEDICAL: ("Medical Facilities", "Emergency medical care and treatment", "medical"),
    ResourceType.FOOD: ("Food Distribution", "Food banks and meal distribution centers", "food"),
    ResourceType.SUPPLIES: ("Emergency Supplies", "Essential supplies and equipment", "supplies"),
}


def _seed_resources() -> list[Resource]:
    now = utc_now()
    return [
        Resource(
            id="resource_1",
            name="Red Cross Emergency Shelter",
            location_name="Manhattan Community Center",
            location=Coordinates(lat=40.7589, lng=-73.9851),
            type=ResourceType.SHELTER.value,
            capacity=200,
            current_occupancy=45,
            contact="(212) 555-0123",
            services=["food", "medical", "clothing"],
            created_at=now - timedelta(hours=2),
        ),
        Resource(
            id="resource_2",
            name="NYC Emergency Food Bank",
            location_name="Lower East Side",
            location=Coordinates(lat=40.7209, lng=-73.9896),
            type=ResourceType.FOOD.value,
            capacity=500,
            current_occupancy=120,
            contact="(212) 555-0456",
            services=["food", "water"],
            created_at=now - timedelta(hours=3),
        ),
        Resource(
            id="resource_3",
            name="Mount Sinai Emergency Medical",
            location_name="Upper East Side",
            location=Coordinates(lat=40.7829, lng=-73.9654),
            type=ResourceType.MEDICAL.value,
            capacity=50,
            current_occupancy=12,
            contact="(212) 555-0789",
            services=["medical", "emergency"],
            created_at=now - timedelta(hours=1),
        ),
        Resource(
            id="resource_4",
            name="Brooklyn Relief Center",
            location_name="Downtown Brooklyn",
            location=Coordinates(lat=40.6892, lng=-73.9442),
            type=ResourceType.SHELTER.value,
            capacity=150,
            current_occupancy=89,
            contact="(718) 555-0321",
            services=["shelter", "food", "clothing"],
            created_at=now - timedelta(hours=4),
        ),
        Resource(
            id="resource_5",
            name="Queens Emergency Supply Hub",
            location_name="Flushing, Queens",
            location=Coordinates(lat=40.7282, lng=-73.7949),
            type=ResourceType.SUPPLIES.value,
            capacity=1000,
            current_occupancy=234,
            contact="(718) 555-0654",
            services=["supplies", "clothing", "tools"],
            created_at=now - timedelta(hours=5),
        ),
    ]


class ResourceService:
    """In-memory resource registry with radius search.

    Seeded resources are shared by every disaster; resources added through
    the API carry their ``disaster_id``.
    """

    def __init__(self, seed: bool = True) -> None:
        self._resources: dict[str, Resource] = {}
        if seed:
            for resource in _seed_resources():
                self._resources[resource.id] = resource

    def _visible_to(self, disaster_id: str) -> list[Resource]:
        """Shared seed resources plus those added for ``disaster_id``."""
        return [r for r in self._resources.values() if r.disaster_id in (None, disaster_id)]

    def find_nearby(
        self,
        disaster_id: str,
        lat: float,
        lng: float,
        radius_km: float,
        resource_type: Optional[str] = None,
        status: str = "active",
    ) -> list[dict[str, Any]]:
        """Resources matching status/type within ``radius_km``, nearest first.

        Each result is the resource as JSON plus its ``distance`` in km.
        """
        candidates = [
            r.model_dump(mode="json")
            for r in self._visible_to(disaster_id)
            if r.status == status and (resource_type is None or r.type == resource_type)
        ]
        nearby = filter_by_radius(candidates, lat, lng, radius_km)
        logger.info(
            f"[RESOURCES] {len(nearby)}/{len(candidates)} within {radius_km}km of ({lat}, {lng})"
        )
        return nearby

    def resource_types(self, disaster_id: str) -> list[dict[str, Any]]:
        """Known resource types with the number of resources of each visible to ``disaster_id``."""
        visible = self._visible_to(disaster_id)
        types = []
        for resource_type, (name, description, icon) in RESOURCE_TYPE_INFO.items():
            types.append({
                "type": resource_type.value,
                "name": name,
                "description": description,
                "icon": icon,
                "count": sum(1 for r in visible if r.type == resource_type.value),
            })
        return types

    def count(self, disaster_id: str) -> int:
        return len(self._visible_to(disaster_id))

    def add(
        self,
        disaster_id: str,
        name: str,
        location_name: str,
        resource_type: str,
        location: Optional[Coordinates] = None,
        capacity: Optional[int] = None,
        contact: Optional[str] = None,
        services: Optional[list[str]] = None,
    ) -> Resource:
        resource = Resource(
            id=str(uuid4()),
            disaster_id=disaster_id,
            name=name,
            location_name=location_name,
            location=location,
            type=resource_type,
            capacity=capacity,
            contact=contact,
            services=services or [],
        )
        self._resources[resource.id] = resource
        logger.info(f"[RESOURCES] Added {resource.id} for disaster {disaster_id}")
        return resource

    def update(self, disaster_id: str, resource_id: str, changes: dict) -> Optional[Resource]:
        """Apply changes to a resource visible to ``disaster_id``.

        Returns None when the resource does not exist or belongs to another disaster.
        """
        existing = self._resources.get(resource_id)
        if existing is None or existing.disaster_id not in (None, disaster_id):
            return None
        allowed = set(Resource.model_fields) - {"id", "disaster_id", "created_at"}
        # Re-validate so bad coordinates or negative capacity are rejected
        updated = Resource.model_validate({
            **existing.model_dump(),
            **{k: v for k, v in changes.items() if k in allowed},
        })
        self._resources[resource_id] = updated
        logger.info(f"[RESOURCES] Updated {resource_id} for disaster {disaster_id}")
        return updated
