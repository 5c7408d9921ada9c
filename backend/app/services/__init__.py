"""Services for incident queries, map sessions and external collaborators."""

from app.services.api_client import CrimeAPIClient
from app.services.catalog import CatalogStore
from app.services.geocoder import NominatimGeocoder
from app.services.pipeline import MapSession
from app.services.query_engine import IncidentQueryEngine, ScopedIncidentStore

__all__ = [
    "CatalogStore",
    "CrimeAPIClient",
    "IncidentQueryEngine",
    "MapSession",
    "NominatimGeocoder",
    "ScopedIncidentStore",
]
