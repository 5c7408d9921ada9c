"""Pydantic schemas for geocoding results."""

from pydantic import BaseModel


class GeocodeResult(BaseModel):
    """A single geocoder hit."""

    lat: float
    lng: float
    label: str


class ReverseGeocodeResult(BaseModel):
    """Reverse geocoder response; label is None when nothing was found."""

    lat: float
    lng: float
    label: str | None = None
