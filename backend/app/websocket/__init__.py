"""WebSocket module for interactive map sessions."""

from app.websocket.manager import ConnectionManager
from app.websocket.router import router as websocket_router

__all__ = ["ConnectionManager", "websocket_router"]
