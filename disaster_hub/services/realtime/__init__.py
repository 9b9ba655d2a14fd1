"""Real-time WebSocket broadcasting."""

from .service import ConnectionManager, RealtimeEvent

__all__ = ["ConnectionManager", "RealtimeEvent"]
