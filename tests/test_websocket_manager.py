"""
SGI Compliance Tracker - WebSocket Manager Tests

Bridging of change feeds to WebSocket connections, with a mocked socket.
"""

from unittest.mock import AsyncMock

from app.services.data_service import DataService
from app.services.websocket_manager import WebSocketManager
from tests.factories import make_requirement


def _sent(websocket: AsyncMock) -> list:
    return [c.args[0] for c in websocket.send_json.await_args_list]


class TestWebSocketManager:

    async def test_snapshot_on_connect_and_change(self, sql_data_service: DataService):
        """A connection gets the collection on connect and after each change."""
        manager = WebSocketManager(sql_data_service)
        websocket = AsyncMock()

        connection_id = await manager.connect(websocket, ["requirements"])
        websocket.accept.assert_awaited_once()
        assert _sent(websocket)[0]["event"] == "snapshot"
        assert _sent(websocket)[0]["data"] == []

        created = await sql_data_service.create_requirement(make_requirement(), creation_year=2025)
        last = _sent(websocket)[-1]
        assert last["channel"] == "requirements"
        assert last["data"][0]["id"] == created.id
        assert "2025" in last["data"][0]["plans"]

        await manager.disconnect(connection_id)
        await sql_data_service.delete_requirement(created.id)
        assert len(_sent(websocket)) == 2
        assert sql_data_service.feeds["requirements"].subscriber_count == 0

    async def test_stats(self, sql_data_service: DataService):
        manager = WebSocketManager(sql_data_service)
        await manager.connect(AsyncMock(), ["users", "settings"])
        await manager.connect(AsyncMock(), ["users"])
        assert manager.get_stats() == {"total_connections": 2, "channels": {"users": 2, "settings": 1}}

    async def test_unknown_channel_sends_error(self, sql_data_service: DataService):
        manager = WebSocketManager(sql_data_service)
        websocket = AsyncMock()
        await manager.connect(websocket, ["invoices"])
        message = _sent(websocket)[0]
        assert message["event"] == "error"
        assert message["data"]["code"] == "UNKNOWN_CHANNEL"

    async def test_broken_socket_is_dropped(self, sql_data_service: DataService):
        manager = WebSocketManager(sql_data_service)
        websocket = AsyncMock()
        await manager.connect(websocket, ["standards"])

        websocket.send_json.side_effect = RuntimeError("connection reset")
        await sql_data_service.upsert_standard({"id": "std-iso", "type": "ISO 9001:2015 (Calidad)"})

        assert manager.connection_count == 0
        assert sql_data_service.feeds["standards"].subscriber_count == 0

    async def test_socket_broken_before_first_snapshot(self, sql_data_service: DataService):
        """A connection that fails on the initial snapshot leaves no subscriber behind."""
        manager = WebSocketManager(sql_data_service)
        websocket = AsyncMock()
        websocket.send_json.side_effect = RuntimeError("connection reset")

        await manager.connect(websocket, ["requirements", "users"])

        assert manager.connection_count == 0
        assert sql_data_service.feeds["requirements"].subscriber_count == 0
        assert sql_data_service.feeds["users"].subscriber_count == 0
