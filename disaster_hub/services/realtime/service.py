"""Real-time change notifications over WebSockets.

Clients connect to ``/ws`` and receive ``{"event", "data", "timestamp"}``
messages whenever a route changes or recomputes data. Delivery is best
effort: there is no acknowledgment, and a client that is not connected
when an event fires simply misses it.
"""

import asyncio
import logging
from typing import Any

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from disaster_hub.models import utc_now

logger = logging.getLogger(__name__)


class RealtimeEvent:
    """Event names pushed to clients."""

    DISASTER_UPDATED = "disaster_updated"
    RESOURCES_UPDATED = "resources_updated"
    SOCIAL_MEDIA_UPDATED = "social_media_updated"
    OFFICIAL_UPDATES_UPDATED = "official_updates_updated"


class ConnectionManager:
    """Tracks connected WebSockets and fans events out to them."""

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self._pending: set[asyncio.Task] = set()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)
        logger.info(f"[WS] Client connected ({self.connection_count} total)")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.discard(websocket)
            logger.info(f"[WS] Client disconnected ({self.connection_count} total)")

    async def broadcast(self, event: str, data: Any) -> int:
        """Send an event to every connected client.

        Clients whose send fails are dropped. Never raises.

        Returns:
            Number of clients the message was delivered to.
        """
        try:
            message = {
                "event": event,
                "data": jsonable_encoder(data),
                "timestamp": utc_now().isoformat(),
            }
        except Exception as e:
            logger.error(f"[WS] Could not encode {event} payload: {e}")
            return 0

        delivered = 0
        for websocket in list(self._connections):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"[WS] Dropping client after failed send: {e}")
                self.disconnect(websocket)

        logger.debug(f"[WS] {event} delivered to {delivered} clients")
        return delivered

    def publish(self, event: str, data: Any) -> None:
        """Schedule a broadcast and return immediately.

        Meant for request handlers: the response never waits on, or fails
        because of, the broadcast.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"[WS] No running event loop, dropping {event}")
            return

        task = loop.create_task(self.broadcast(event, data))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def close(self) -> None:
        """Wait for in-flight broadcasts, then close every connection."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        for websocket in list(self._connections):
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"[WS] Error closing client: {e}")
            self.disconnect(websocket)
