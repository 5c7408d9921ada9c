"""Pydantic schemas for incidents."""

import datetime as dt
from enum import Enum

from pydantic import BaseModel


class IncidentCategory(str, Enum):
    """Coarse display category derived from type name and detail text."""

    VIOLENT = "violent"
    PROPERTY = "property"
    OTHER = "other"


class IncidentRecord(BaseModel):
    """Incident response schema."""

    case_number: str
    date: dt.date
    time: dt.time
    code: int
    incident: str
    police_grid: int
    neighborhood_number: int
    block: str


class EnrichedIncident(IncidentRecord):
    """Incident with resolved display names and category."""

    incident_type: str
    neighborhood_name: str
    category: IncidentCategory


class IncidentIn(BaseModel):
    """
    Body of a new-incident submission.

    Every field is required; presence and format are checked by the query
    engine so a missing field is reported as a validation failure rather
    than a schema error.
    """

    case_number: str | None = None
    date: str | None = None
    time: str | None = None
    code: int | None = None
    incident: str | None = None
    police_grid: int | None = None
    neighborhood_number: int | None = None
    block: str | None = None


class IncidentKey(BaseModel):
    """Body of a remove-incident request."""

    case_number: str | None = None


class MutationResult(BaseModel):
    """Result of a create or delete operation."""

    status: str = "OK"
    case_number: str
