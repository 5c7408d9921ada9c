"""WebSocket router for interactive map sessions."""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.errors import CrimeBrowserError
from app.services.geocoder import get_geocoder
from app.services.pipeline import FilterChange, MapSession
from app.services.query_engine import ScopedIncidentStore
from app.services.viewport import ViewportChange
from app.websocket.manager import manager
from app.websocket.schemas import (
    ErrorMessage,
    FilterMessage,
    LocateMessage,
    PongMessage,
    StatusMessage,
    ViewportMessage,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def open_session() -> MapSession:
    """Build a map session over the local database."""
    return await MapSession.open(ScopedIncidentStore(), geocoder=get_geocoder())


@router.websocket("/ws/map")
async def websocket_map(websocket: WebSocket):
    """
    WebSocket endpoint for an interactive incident map.

    Protocol:
    - Client connects; server loads the catalog and sends the initial incidents
    - Client sends viewport and filter messages; server answers each with
      incidents (or the new visible set for recenters) followed by status
    - Incidents created or deleted through the REST API trigger a refresh

    Message formats:
    Client -> Server:
        {"type": "viewport", "viewport": {"min_lat": 44.9, "max_lat": 45.0, "min_lng": -93.2, "max_lng": -93.0}, "cause": "user_pan"}
        {"type": "filter", "types": ["Theft"], "neighborhoods": [11, 14], "start_date": "2023-01-01", "end_date": "2023-01-31", "limit": 500}
        {"type": "locate", "case_number": "23000123"}
        {"type": "ping"}

    Server -> Client:
        {"type": "incidents", "sequence": 3, "incidents": [...], "counts": {"11": 4}, "visible_neighborhoods": [11, 14], "timestamp": "..."}
        {"type": "visible", "viewport": {...}, "visible_neighborhoods": [11]}
        {"type": "status", "channels": {"fetch": null, "mutation": null, "geocode": "..."}}
        {"type": "pong"}
        {"type": "error", "message": "..."}
    """
    try:
        session = await open_session()
    except CrimeBrowserError as e:
        logger.error(f"Could not open map session: {e.message}")
        await websocket.accept()
        await websocket.send_json(ErrorMessage(message=e.message).model_dump())
        await websocket.close(code=1011)
        return

    await manager.connect(websocket, session)

    try:
        await manager.send_update(websocket, session, await session.refresh())

        while True:
            # Receive message from client
            raw_message = await websocket.receive_text()

            try:
                data = json.loads(raw_message)
                msg_type = data.get("type")

                if msg_type == "viewport":
                    msg = ViewportMessage.model_validate(data)
                    snapshot = await session.apply_viewport_change(
                        ViewportChange(viewport=msg.viewport, cause=msg.cause)
                    )
                    await manager.send_update(websocket, session, snapshot)

                elif msg_type == "filter":
                    msg = FilterMessage.model_validate(data)
                    snapshot = await session.apply_filter_change(
                        FilterChange(
                            selected_types=frozenset(msg.types),
                            selected_neighborhood_ids=frozenset(msg.neighborhoods),
                            start_date=msg.start_date,
                            end_date=msg.end_date,
                            limit=msg.limit,
                        )
                    )
                    if snapshot is not None:
                        await manager.send_update(websocket, session, snapshot)
                    else:
                        await websocket.send_json(
                            StatusMessage(channels=session.status.as_dict()).model_dump()
                        )

                elif msg_type == "locate":
                    msg = LocateMessage.model_validate(data)
                    listed = session.snapshot.incidents if session.snapshot else []
                    incident = next(
                        (row for row in listed if row.case_number == msg.case_number), None
                    )
                    if incident is None:
                        error = ErrorMessage(
                            message=f"Incident {msg.case_number} is not on the map"
                        )
                        await websocket.send_json(error.model_dump())
                        continue

                    await session.locate_incident(incident)
                    await manager.send_update(websocket, session, None)

                elif msg_type == "ping":
                    # Respond with pong for keep-alive
                    await websocket.send_json(PongMessage().model_dump())

                else:
                    # Unknown message type
                    error = ErrorMessage(message=f"Unknown message type: {msg_type}")
                    await websocket.send_json(error.model_dump())

            except json.JSONDecodeError:
                error = ErrorMessage(message="Invalid JSON")
                await websocket.send_json(error.model_dump())
            except Exception as e:
                logger.exception(f"Error processing message: {e}")
                error = ErrorMessage(message=str(e))
                await websocket.send_json(error.model_dump())

    except WebSocketDisconnect:
        await manager.disconnect(websocket)
    except Exception as e:
        logger.exception(f"WebSocket error: {e}")
        await manager.disconnect(websocket)
