"""Unit tests for the in-memory disaster repository."""

import pytest

from disaster_hub.models import Coordinates
from disaster_hub.services.disasters import InMemoryDisasterRepository


class TestInMemoryDisasterRepository:
    """Tests for InMemoryDisasterRepository."""

    def setup_method(self) -> None:
        self.repo = InMemoryDisasterRepository()

    @pytest.mark.asyncio
    async def test_seeded(self) -> None:
        disasters = await self.repo.list_disasters()
        assert {d.id for d in disasters} == {"disaster_1", "disaster_2", "disaster_3"}

    @pytest.mark.asyncio
    async def test_filter_by_tag_and_owner(self) -> None:
        assert [d.id for d in await self.repo.list_disasters(tag="flood")] == ["disaster_1"]
        assert [d.id for d in await self.repo.list_disasters(owner_id="reliefAdmin")] == ["disaster_2"]

    @pytest.mark.asyncio
    async def test_pagination(self) -> None:
        first = await self.repo.list_disasters(limit=2)
        rest = await self.repo.list_disasters(limit=2, offset=2)
        assert len(first) == 2
        assert len(rest) == 1
        assert not {d.id for d in first} & {d.id for d in rest}

    @pytest.mark.asyncio
    async def test_create_records_audit(self) -> None:
        disaster = await self.repo.create(
            title="Bronx Storm",
            description="High winds",
            owner_id="citizen1",
            location_name="Bronx",
            location=Coordinates(lat=40.8448, lng=-73.8648),
            tags=["storm"],
        )
        stored = await self.repo.get(disaster.id)
        assert stored is not None
        assert stored.title == "Bronx Storm"
        assert stored.audit_trail[0].action == "create"
        assert stored.audit_trail[0].user_id == "citizen1"

    @pytest.mark.asyncio
    async def test_update_applies_known_fields(self) -> None:
        updated = await self.repo.update(
            "disaster_1", "netrunnerX", {"title": "NYC Flood (escalated)", "owner_id": "someone"}
        )
        assert updated is not None
        assert updated.title == "NYC Flood (escalated)"
        assert updated.owner_id == "netrunnerX"
        assert updated.audit_trail[-1].action == "update"
        assert updated.audit_trail[-1].changes == {"title": "NYC Flood (escalated)"}

    @pytest.mark.asyncio
    async def test_update_missing(self) -> None:
        assert await self.repo.update("nope", "netrunnerX", {"title": "x"}) is None

    @pytest.mark.asyncio
    async def test_returned_copies_are_isolated(self) -> None:
        disaster = await self.repo.get("disaster_1")
        disaster.tags.append("mutated")
        assert "mutated" not in (await self.repo.get("disaster_1")).tags

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        removed = await self.repo.delete("disaster_2")
        assert removed is not None and removed.id == "disaster_2"
        assert await self.repo.get("disaster_2") is None
        assert await self.repo.delete("disaster_2") is None

    @pytest.mark.asyncio
    async def test_unseeded(self) -> None:
        assert await InMemoryDisasterRepository(seed=False).list_disasters() == []
