"""WebSocket message schemas."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.incident import EnrichedIncident
from app.schemas.viewport import Viewport
from app.services.pipeline import MapSnapshot
from app.services.viewport import ViewportCause


class ViewportMessage(BaseModel):
    """Client message: the visible map region changed."""

    type: Literal["viewport"] = "viewport"
    viewport: Viewport
    cause: ViewportCause = ViewportCause.USER_PAN


class FilterMessage(BaseModel):
    """Client message: the complete set of filter selections."""

    type: Literal["filter"] = "filter"
    types: list[str] = Field(default_factory=list)
    neighborhoods: list[int] = Field(default_factory=list)
    start_date: date | None = None
    end_date: date | None = None
    limit: int | None = None


class LocateMessage(BaseModel):
    """Client message: recenter the map on a listed incident."""

    type: Literal["locate"] = "locate"
    case_number: str


class IncidentsMessage(BaseModel):
    """Server message with the incidents and marker counts to render."""

    type: Literal["incidents"] = "incidents"
    sequence: int
    incidents: list[EnrichedIncident]
    counts: dict[int, int]
    visible_neighborhoods: list[int]
    timestamp: datetime

    @classmethod
    def from_snapshot(cls, snapshot: MapSnapshot, timestamp: datetime) -> "IncidentsMessage":
        return cls(
            sequence=snapshot.sequence,
            incidents=snapshot.incidents,
            counts=snapshot.counts,
            visible_neighborhoods=sorted(snapshot.visible_neighborhood_ids),
            timestamp=timestamp,
        )


class VisibleMessage(BaseModel):
    """Server message after a recenter that did not re-fetch."""

    type: Literal["visible"] = "visible"
    viewport: Viewport
    visible_neighborhoods: list[int]


class StatusMessage(BaseModel):
    """Server message with the current status line of every channel."""

    type: Literal["status"] = "status"
    channels: dict[str, str | None]


class PongMessage(BaseModel):
    """Pong response for keep-alive."""

    type: Literal["pong"] = "pong"


class ErrorMessage(BaseModel):
    """Error message from server."""

    type: Literal["error"] = "error"
    message: str
