"""
SGI Compliance Tracker - Real-time Router

WebSocket endpoints pushing full collection snapshots.

Endpoints:
- /ws/requirements, /ws/users, /ws/standards, /ws/settings
- /ws/stats: connection statistics (HTTP)

Message Types (client -> server):
    - "ping": heartbeat, answered with {"event": "pong"}

Message Types (server -> client):
    - {"event": "snapshot", "channel": "...", "data": [...]}
    - {"event": "error", "channel": "...", "data": {"code": ..., "message": ...}}
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect, status

from app.services.websocket_manager import SnapshotChannel, WebSocketManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["WebSocket"])

CHANNELS = {c.value for c in SnapshotChannel}


@router.get("/stats")
async def websocket_stats(request: Request):
    ws_manager: WebSocketManager = request.app.state.ws_manager
    return ws_manager.get_stats()


@router.websocket("/{channel}")
async def snapshot_socket(websocket: WebSocket, channel: str):
    """Stream snapshots of one collection until the client disconnects."""
    if channel not in CHANNELS:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    ws_manager: WebSocketManager = websocket.app.state.ws_manager
    connection_id = await ws_manager.connect(websocket, [channel])
    try:
        while True:
            message = await websocket.receive_text()
            if message.strip().lower() == "ping":
                await websocket.send_json({"event": "pong", "timestamp": datetime.utcnow().isoformat()})
    except WebSocketDisconnect:
        logger.debug(f"Client left channel {channel}: {connection_id}")
    finally:
        await ws_manager.disconnect(connection_id)
