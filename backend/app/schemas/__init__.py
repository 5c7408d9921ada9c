"""Pydantic schemas for API request/response validation."""

from app.schemas.catalog import IncidentCodeOut, NeighborhoodOut
from app.schemas.geocode import GeocodeResult, ReverseGeocodeResult
from app.schemas.incident import (
    EnrichedIncident,
    IncidentCategory,
    IncidentIn,
    IncidentKey,
    IncidentRecord,
    MutationResult,
)
from app.schemas.viewport import Viewport

__all__ = [
    "EnrichedIncident",
    "GeocodeResult",
    "IncidentCategory",
    "IncidentCodeOut",
    "IncidentIn",
    "IncidentKey",
    "IncidentRecord",
    "MutationResult",
    "NeighborhoodOut",
    "ReverseGeocodeResult",
    "Viewport",
]
