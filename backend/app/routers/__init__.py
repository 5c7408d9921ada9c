"""API routers."""

from app.routers.catalog import router as catalog_router
from app.routers.geocode import router as geocode_router
from app.routers.health import router as health_router
from app.routers.incidents import router as incidents_router

__all__ = ["catalog_router", "geocode_router", "health_router", "incidents_router"]
