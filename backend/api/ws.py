"""
Battery Charger Monitor - WebSocket API
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-14): Transition and "cleared" events pushed from the monitor
v1.0.0 (2026-10-05): Initial WebSocket endpoint for live cycle status
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from typing import Dict, Set
import asyncio
import json
import logging

from config import settings

router = APIRouter()
logger = logging.getLogger(__name__)


class LiveHub:
    """Connected dashboard clients; registered as a ChargeCycleMonitor listener"""

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()

    def connect(self, websocket: WebSocket):
        self.active_connections.add(websocket)
        logger.info(f"WebSocket client connected. Total connections: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket):
        self.active_connections.discard(websocket)
        logger.info(f"WebSocket client removed. Total connections: {len(self.active_connections)}")

    async def broadcast(self, event: Dict):
        """Send a monitor event to every connected client"""
        if not self.active_connections:
            return

        message = json.dumps(event, default=str)

        disconnected = set()
        for connection in list(self.active_connections):
            try:
                await connection.send_text(message)
            except Exception as e:
                logger.error(f"Failed to send {event.get('type')} to client: {e}")
                disconnected.add(connection)

        self.active_connections.difference_update(disconnected)


@router.websocket("/live")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time cycle updates
    Sends cycle status every WS_UPDATE_INTERVAL seconds, answers "ping" with "pong"
    """
    monitor = getattr(websocket.app.state, "monitor", None)
    hub = getattr(websocket.app.state, "live_hub", None)
    if monitor is None or hub is None:
        await websocket.close(code=1013)
        return

    await websocket.accept()
    hub.connect(websocket)

    try:
        await websocket.send_json({"type": "initial", "status": monitor.get_status()})

        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=settings.WS_UPDATE_INTERVAL)

                if data == "ping":
                    await websocket.send_text("pong")

            except asyncio.TimeoutError:
                await websocket.send_json({"type": "update", "status": monitor.get_status()})

    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        hub.disconnect(websocket)
