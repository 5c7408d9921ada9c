"""API routes proxying the geocoder for the map search box."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.schemas.geocode import GeocodeResult, ReverseGeocodeResult
from app.schemas.viewport import Viewport
from app.services.geocoder import NominatimGeocoder, get_geocoder
from app.services.viewport import city_viewport

router = APIRouter(prefix="/geocode", tags=["geocode"])


@router.get("/search", response_model=GeocodeResult | None)
async def geocode_search(
    geocoder: Annotated[NominatimGeocoder, Depends(get_geocoder)],
    q: str = Query(..., min_length=1, description="Address or place name"),
    min_lat: float | None = Query(None, ge=-90, le=90),
    max_lat: float | None = Query(None, ge=-90, le=90),
    min_lng: float | None = Query(None, ge=-180, le=180),
    max_lng: float | None = Query(None, ge=-180, le=180),
) -> GeocodeResult | None:
    """
    Find a location within a region (the city when no region is given).

    Returns null when nothing matches.
    """
    bounds = (min_lat, max_lat, min_lng, max_lng)
    if all(value is not None for value in bounds):
        region = Viewport(min_lat=min_lat, max_lat=max_lat, min_lng=min_lng, max_lng=max_lng)
    else:
        region = city_viewport()
    return await geocoder.search(q, region)


@router.get("/reverse", response_model=ReverseGeocodeResult)
async def geocode_reverse(
    geocoder: Annotated[NominatimGeocoder, Depends(get_geocoder)],
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
) -> ReverseGeocodeResult:
    """Label for a point; label is null when nothing is there."""
    label = await geocoder.reverse(lat, lng)
    return ReverseGeocodeResult(lat=lat, lng=lng, label=label)
