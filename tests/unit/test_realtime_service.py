"""Unit tests for the WebSocket connection manager."""

import asyncio

import pytest

from disaster_hub.models import Coordinates
from disaster_hub.services.realtime import ConnectionManager, RealtimeEvent


class FakeWebSocket:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.accepted = False
        self.closed = False
        self.sent: list[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, message: dict) -> None:
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True


class TestConnectionManager:
    """Tests for ConnectionManager."""

    def setup_method(self) -> None:
        self.manager = ConnectionManager()

    @pytest.mark.asyncio
    async def test_broadcast_reaches_every_client(self) -> None:
        clients = [FakeWebSocket(), FakeWebSocket()]
        for ws in clients:
            await self.manager.connect(ws)

        delivered = await self.manager.broadcast(
            RealtimeEvent.RESOURCES_UPDATED, {"location": Coordinates(lat=1, lng=2)}
        )
        assert delivered == 2
        for ws in clients:
            assert ws.accepted
            message = ws.sent[0]
            assert message["event"] == "resources_updated"
            assert message["data"] == {"location": {"lat": 1.0, "lng": 2.0}}
            assert "timestamp" in message

    @pytest.mark.asyncio
    async def test_failed_client_is_dropped(self) -> None:
        good, bad = FakeWebSocket(), FakeWebSocket(fail=True)
        await self.manager.connect(good)
        await self.manager.connect(bad)

        delivered = await self.manager.broadcast(RealtimeEvent.DISASTER_UPDATED, {})
        assert delivered == 1
        assert self.manager.connection_count == 1

    @pytest.mark.asyncio
    async def test_broadcast_without_clients(self) -> None:
        assert await self.manager.broadcast(RealtimeEvent.DISASTER_UPDATED, {"x": 1}) == 0

    @pytest.mark.asyncio
    async def test_publish_does_not_wait(self) -> None:
        ws = FakeWebSocket()
        await self.manager.connect(ws)
        self.manager.publish(RealtimeEvent.SOCIAL_MEDIA_UPDATED, {"n": 1})
        assert ws.sent == []
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert ws.sent[0]["event"] == "social_media_updated"

    def test_publish_without_loop_is_dropped(self) -> None:
        self.manager.publish(RealtimeEvent.DISASTER_UPDATED, {})

    @pytest.mark.asyncio
    async def test_close_flushes_and_disconnects(self) -> None:
        ws = FakeWebSocket()
        await self.manager.connect(ws)
        self.manager.publish(RealtimeEvent.OFFICIAL_UPDATES_UPDATED, {})
        await self.manager.close()
        assert len(ws.sent) == 1
        assert ws.closed
        assert self.manager.connection_count == 0

    @pytest.mark.asyncio
    async def test_disconnect_unknown_is_noop(self) -> None:
        self.manager.disconnect(FakeWebSocket())
        assert self.manager.connection_count == 0
