"""Viewport sync: which neighborhoods are on screen for a given map region."""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from app.config import get_settings
from app.schemas.viewport import Viewport

settings = get_settings()


@dataclass(frozen=True)
class NeighborhoodAnchor:
    """Fixed map reference point of a neighborhood."""

    id: int
    latitude: float
    longitude: float


# District council anchor points for St. Paul, MN.
DEFAULT_ANCHORS: tuple[NeighborhoodAnchor, ...] = (
    NeighborhoodAnchor(1, 44.942068, -93.020521),  # Conway/Battlecreek/Highwood
    NeighborhoodAnchor(2, 44.977413, -93.025156),  # Greater East Side
    NeighborhoodAnchor(3, 44.931244, -93.079578),  # West Side
    NeighborhoodAnchor(4, 44.956192, -93.060189),  # Dayton's Bluff
    NeighborhoodAnchor(5, 44.978883, -93.068163),  # Payne/Phalen
    NeighborhoodAnchor(6, 44.975766, -93.113887),  # North End
    NeighborhoodAnchor(7, 44.959639, -93.121271),  # Thomas/Dale (Frogtown)
    NeighborhoodAnchor(8, 44.947700, -93.128505),  # Summit/University
    NeighborhoodAnchor(9, 44.930276, -93.119911),  # West Seventh
    NeighborhoodAnchor(10, 44.982752, -93.147910),  # Como
    NeighborhoodAnchor(11, 44.963631, -93.167548),  # Hamline/Midway
    NeighborhoodAnchor(12, 44.973971, -93.197965),  # St. Anthony
    NeighborhoodAnchor(13, 44.949043, -93.178261),  # Union Park
    NeighborhoodAnchor(14, 44.934848, -93.176736),  # Macalester-Groveland
    NeighborhoodAnchor(15, 44.913106, -93.170779),  # Highland
    NeighborhoodAnchor(16, 44.937705, -93.136997),  # Summit Hill
    NeighborhoodAnchor(17, 44.949203, -93.093739),  # Capitol River
)


class ViewportCause(str, Enum):
    """Why the visible region changed."""

    USER_PAN = "user_pan"
    PROGRAMMATIC_RECENTER = "programmatic_recenter"


@dataclass(frozen=True)
class ViewportChange:
    """
    A new visible region.

    Programmatic recenters (locating an incident) update the visible set
    but never re-fetch incidents.
    """

    viewport: Viewport
    cause: ViewportCause = ViewportCause.USER_PAN

    @property
    def refetches(self) -> bool:
        return self.cause is not ViewportCause.PROGRAMMATIC_RECENTER


def visible_neighborhoods(
    viewport: Viewport, anchors: Iterable[NeighborhoodAnchor] = DEFAULT_ANCHORS
) -> frozenset[int]:
    """Ids of neighborhoods whose anchor lies inside the viewport."""
    return frozenset(
        anchor.id
        for anchor in anchors
        if viewport.contains(anchor.latitude, anchor.longitude)
    )


def city_viewport() -> Viewport:
    """Configured default map region (the whole city)."""
    return Viewport(
        min_lat=settings.map_min_lat,
        max_lat=settings.map_max_lat,
        min_lng=settings.map_min_lng,
        max_lng=settings.map_max_lng,
    )
