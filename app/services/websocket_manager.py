"""
SGI Compliance Tracker - WebSocket Manager

Real-time collection snapshots via WebSockets.

Each connection subscribes to one or more channels; every channel is
backed by a change feed of the data service, so a connection receives
the full collection on subscribe and again after every change.

Channels:
- requirements: requirement documents with their plans and evidence
- users: user registry (without credentials)
- standards: standard definitions and comments
- settings: general settings (company logo)

Message format (server -> client):
    {"event": "snapshot", "channel": "<name>", "data": [...], "timestamp": "..."}
    {"event": "error", "channel": "<name>", "data": {"code": ..., "message": ...}}
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from app.services.data_service import DataService
from app.utils.error_handling import AppException

logger = logging.getLogger(__name__)


class SnapshotChannel(str, Enum):
    """WebSocket snapshot channels."""
    REQUIREMENTS = "requirements"
    USERS = "users"
    STANDARDS = "standards"
    SETTINGS = "settings"


@dataclass
class WebSocketConnection:
    """Represents a WebSocket connection and its feed subscriptions."""
    websocket: WebSocket
    unsubscribers: Dict[str, Callable[[], None]] = field(default_factory=dict)
    connected_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channels": sorted(self.unsubscribers),
            "connected_at": self.connected_at.isoformat(),
        }


def serialize_snapshot(snapshot: Any) -> Any:
    """Plain JSON form of a feed snapshot."""
    if isinstance(snapshot, list):
        return [item.to_document() if hasattr(item, "to_document") else item for item in snapshot]
    return snapshot


class WebSocketManager:
    """
    Tracks WebSocket connections and bridges them to the data service
    change feeds. One instance per application, kept on ``app.state``.
    """

    def __init__(self, data_service: DataService):
        self.data_service = data_service
        self._connections: Dict[str, WebSocketConnection] = {}
        self._lock = asyncio.Lock()
        self._subscribers = {
            SnapshotChannel.REQUIREMENTS.value: data_service.subscribe_to_requirements,
            SnapshotChannel.USERS.value: data_service.subscribe_to_users,
            SnapshotChannel.STANDARDS.value: data_service.subscribe_to_standards,
            SnapshotChannel.SETTINGS.value: data_service.subscribe_to_settings,
        }

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket, channels: List[str]) -> str:
        """
        Accept the connection and subscribe it to the given channels.

        Returns:
            Connection ID
        """
        await websocket.accept()
        connection_id = str(uuid.uuid4())
        async with self._lock:
            self._connections[connection_id] = WebSocketConnection(websocket=websocket)
        logger.info(f"WebSocket connected: channels={channels}, connection_id={connection_id}")

        for channel in channels:
            await self.subscribe(connection_id, channel)
        return connection_id

    async def subscribe(self, connection_id: str, channel: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is None or channel in connection.unsubscribers:
            return
        subscribe = self._subscribers.get(channel)
        if subscribe is None:
            await self.send_error(connection_id, channel, "UNKNOWN_CHANNEL", f"Unknown channel '{channel}'")
            return

        async def on_data(snapshot: Any) -> None:
            await self.send_to_connection(connection_id, "snapshot", channel, serialize_snapshot(snapshot))

        async def on_error(exc: Exception) -> None:
            code = exc.code.value if isinstance(exc, AppException) else "INTERNAL_ERROR"
            await self.send_error(connection_id, channel, code, str(exc))

        unsubscribe = await subscribe(on_data, on_error)
        # The first snapshot send may have dropped the connection
        if connection_id not in self._connections:
            unsubscribe()
            return
        connection.unsubscribers[channel] = unsubscribe

    async def unsubscribe(self, connection_id: str, channel: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is None:
            return
        unsubscribe = connection.unsubscribers.pop(channel, None)
        if unsubscribe is not None:
            unsubscribe()

    async def disconnect(self, connection_id: str) -> None:
        """Drop a connection and all its feed subscriptions."""
        async with self._lock:
            connection = self._connections.pop(connection_id, None)
        if connection is None:
            return
        for unsubscribe in connection.unsubscribers.values():
            unsubscribe()
        logger.info(f"WebSocket disconnected: connection_id={connection_id}")

    async def send_to_connection(self, connection_id: str, event_type: str, channel: str, data: Any) -> bool:
        """Send a message to a specific connection."""
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        message = {
            "event": event_type,
            "channel": channel,
            "data": data,
            "timestamp": datetime.utcnow().isoformat(),
        }
        try:
            await connection.websocket.send_json(jsonable_encoder(message))
            return True
        except Exception as e:
            logger.error(f"Error sending to connection {connection_id}: {e}")
            await self.disconnect(connection_id)
            return False

    async def send_error(self, connection_id: str, channel: str, code: str, message: str) -> bool:
        return await self.send_to_connection(connection_id, "error", channel, {"code": code, "message": message})

    def get_stats(self) -> Dict[str, Any]:
        channels: Dict[str, int] = {}
        for connection in self._connections.values():
            for channel in connection.unsubscribers:
                channels[channel] = channels.get(channel, 0) + 1
        return {"total_connections": self.connection_count, "channels": channels}
