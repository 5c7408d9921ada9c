"""Pydantic schemas for the reference catalog."""

from pydantic import BaseModel, ConfigDict


class IncidentCodeOut(BaseModel):
    """Incident code response schema."""

    model_config = ConfigDict(frozen=True)

    code: int
    type: str


class NeighborhoodOut(BaseModel):
    """Neighborhood response schema."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
