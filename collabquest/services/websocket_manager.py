import json
import logging
from typing import Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages active WebSocket connections keyed by session id."""

    def __init__(self):
        self.active_connections: dict[str, WebSocket] = {}

    async def connect(self, session_id: str, websocket: WebSocket):
        await websocket.accept()
        self.active_connections[session_id] = websocket

    def disconnect(self, session_id: str, websocket: Optional[WebSocket] = None):
        """Forget the session's socket. With a socket given, only if it is still the current one."""
        if websocket is not None and self.active_connections.get(session_id) is not websocket:
            return
        self.active_connections.pop(session_id, None)

    async def send(self, session_id: str, data: dict) -> bool:
        """Send JSON to a session's socket. Returns True if sent."""
        ws = self.active_connections.get(session_id)
        if ws is None:
            return False
        try:
            await ws.send_text(json.dumps(data))
            return True
        except Exception as e:
            logger.info("Dropping socket for session %s: %s", session_id, e)
            self.disconnect(session_id, ws)
            return False
