"""WebSocket connection manager for map sessions."""

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import WebSocket
from pydantic import BaseModel

from app.services.pipeline import MapSession, MapSnapshot
from app.websocket.schemas import IncidentsMessage, StatusMessage, VisibleMessage

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Tracks one MapSession per WebSocket and pushes its updates.

    Designed for single-instance deployment.
    """

    def __init__(self):
        self._sessions: dict[WebSocket, MapSession] = {}
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        """Number of active connections."""
        return len(self._sessions)

    async def connect(self, websocket: WebSocket, session: MapSession) -> None:
        """Accept a new WebSocket connection and attach its session."""
        await websocket.accept()
        async with self._lock:
            self._sessions[websocket] = session
        logger.info(f"WebSocket connected. Total connections: {self.connection_count}")

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a disconnected WebSocket."""
        async with self._lock:
            self._sessions.pop(websocket, None)
        logger.info(f"WebSocket disconnected. Total connections: {self.connection_count}")

    async def send_update(
        self,
        websocket: WebSocket,
        session: MapSession,
        snapshot: MapSnapshot | None,
    ) -> None:
        """
        Send the result of one pipeline run.

        An applied snapshot goes out as incidents; a run that did not fetch
        (recenter) goes out as the new visible set. Status always follows.
        """
        if snapshot is not None:
            await self._send_safe(
                websocket, IncidentsMessage.from_snapshot(snapshot, datetime.now(UTC))
            )
        else:
            await self._send_safe(
                websocket,
                VisibleMessage(
                    viewport=session.viewport,
                    visible_neighborhoods=sorted(session.state.visible_neighborhood_ids),
                ),
            )
        await self._send_safe(websocket, StatusMessage(channels=session.status.as_dict()))

    async def refresh_all(self) -> None:
        """
        Re-run every session's pipeline after the incident store changed.

        Each session applies its own latest-wins guard.
        """
        async with self._lock:
            targets = list(self._sessions.items())

        if not targets:
            return

        async def refresh_one(websocket: WebSocket, session: MapSession) -> None:
            snapshot = await session.refresh()
            if snapshot is not None:
                await self.send_update(websocket, session, snapshot)

        results = await asyncio.gather(
            *(refresh_one(ws, session) for ws, session in targets),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                logger.error(f"Map session refresh failed: {result}", exc_info=result)
        logger.info(f"Refreshed {len(targets)} map sessions")

    async def _send_safe(self, websocket: WebSocket, message: BaseModel) -> None:
        """Send message to websocket, handling errors gracefully."""
        try:
            await websocket.send_json(message.model_dump(mode="json"))
        except Exception as e:
            logger.warning(f"Failed to send to websocket: {e}")
            # Schedule disconnect (don't do it here to avoid deadlock)
            asyncio.create_task(self.disconnect(websocket))


# Global singleton instance
manager = ConnectionManager()
