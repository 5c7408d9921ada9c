"""Pydantic schemas for map geometry."""

from pydantic import BaseModel, Field


class Viewport(BaseModel):
    """Rectangular visible map region."""

    min_lat: float = Field(..., ge=-90, le=90)
    max_lat: float = Field(..., ge=-90, le=90)
    min_lng: float = Field(..., ge=-180, le=180)
    max_lng: float = Field(..., ge=-180, le=180)

    def contains(self, lat: float, lng: float) -> bool:
        """Check if coordinates are within this viewport (edges included)."""
        return (
            self.min_lat <= lat <= self.max_lat
            and self.min_lng <= lng <= self.max_lng
        )

    @classmethod
    def around(cls, lat: float, lng: float, span: float) -> "Viewport":
        """Square region of `span` degrees centered on a point."""
        half = span / 2
        return cls(
            min_lat=max(lat - half, -90.0),
            max_lat=min(lat + half, 90.0),
            min_lng=max(lng - half, -180.0),
            max_lng=min(lng + half, 180.0),
        )
