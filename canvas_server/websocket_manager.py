"""
WebSocket Manager - Pushes render snapshots to connected renderers.

Every message is a scene_updated event carrying a full RenderSnapshot, so a
renderer never has to merge partial updates. A renderer that connects late
is sent the current frame immediately.
"""
import asyncio
import json
import logging

from fastapi import WebSocket

from canvas_engine import RenderSnapshot

logger = logging.getLogger(__name__)


def scene_message(snapshot: RenderSnapshot) -> str:
    """Serialize a snapshot into the scene_updated wire message."""
    return json.dumps({
        "type": "scene_updated",
        "snapshot": snapshot.model_dump(mode="json")
    })


class WebSocketManager:
    """
    Tracks renderer connections and fans snapshots out to them.

    Sends run concurrently; a renderer whose send fails is dropped without
    holding up the others.
    """

    def __init__(self):
        self._connections: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket, snapshot: RenderSnapshot):
        """Accept a renderer and sync it to the current frame."""
        await websocket.accept()
        await websocket.send_text(scene_message(snapshot))
        self._connections.add(websocket)
        logger.info("Renderer connected. Total connections: %d", len(self._connections))

    def disconnect(self, websocket: WebSocket):
        self._connections.discard(websocket)
        logger.info("Renderer disconnected. Total connections: %d", len(self._connections))

    async def publish(self, snapshot: RenderSnapshot):
        """Send a snapshot to every renderer."""
        if not self._connections:
            return

        message = scene_message(snapshot)
        targets = list(self._connections)
        results = await asyncio.gather(
            *(websocket.send_text(message) for websocket in targets),
            return_exceptions=True
        )
        for websocket, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.debug("Dropping renderer after failed send: %s", result)
                self._connections.discard(websocket)

    @property
    def connection_count(self) -> int:
        return len(self._connections)


# Global instance
ws_manager = WebSocketManager()
