"""Database models."""

from app.models.incident import Incident
from app.models.incident_code import IncidentCode
from app.models.neighborhood import Neighborhood

__all__ = [
    "Incident",
    "IncidentCode",
    "Neighborhood",
]
