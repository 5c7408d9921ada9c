"""
Map session pipeline.

Every triggering event runs the same explicit, ordered stages:

    viewport -> visible neighborhoods -> query descriptor -> incidents
             -> enriched incidents + counts

Each stage receives the previous stage's output as an argument. Fetches are
numbered; a response is applied only if no newer fetch has already completed,
successfully or not (latest wins).
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Protocol

from app.config import get_settings
from app.errors import CrimeBrowserError
from app.schemas.catalog import IncidentCodeOut, NeighborhoodOut
from app.schemas.geocode import GeocodeResult
from app.schemas.incident import EnrichedIncident, IncidentIn, IncidentRecord
from app.schemas.viewport import Viewport
from app.services.filters import FilterState, QueryDescriptor, resolve_filters
from app.services.geocoder import NominatimGeocoder, block_to_address
from app.services.projector import project
from app.services.viewport import (
    DEFAULT_ANCHORS,
    NeighborhoodAnchor,
    ViewportCause,
    ViewportChange,
    city_viewport,
    visible_neighborhoods,
)

logger = logging.getLogger(__name__)
settings = get_settings()


class IncidentSource(Protocol):
    """Where a map session reads and writes incidents (local engine or REST client)."""

    async def load_catalog(self) -> tuple[list[IncidentCodeOut], list[NeighborhoodOut]]: ...

    async def fetch_incidents(self, descriptor: QueryDescriptor) -> list[IncidentRecord]: ...

    async def create_incident(self, payload: IncidentIn | dict) -> Any: ...

    async def delete_incident(self, case_number: str | None) -> Any: ...


class StatusChannel(str, Enum):
    """Independent user-visible status lines."""

    FETCH = "fetch"
    MUTATION = "mutation"
    GEOCODE = "geocode"


class StatusBoard:
    """Last error per channel; a success on a channel clears only that channel."""

    def __init__(self):
        self._messages: dict[StatusChannel, str | None] = {
            channel: None for channel in StatusChannel
        }

    def fail(self, channel: StatusChannel, message: str) -> None:
        self._messages[channel] = message

    def succeed(self, channel: StatusChannel) -> None:
        self._messages[channel] = None

    def message(self, channel: StatusChannel) -> str | None:
        return self._messages[channel]

    def as_dict(self) -> dict[str, str | None]:
        return {channel.value: message for channel, message in self._messages.items()}


@dataclass(frozen=True)
class FilterChange:
    """The complete set of user-held selections; replaces the previous ones."""

    selected_types: frozenset[str] = frozenset()
    selected_neighborhood_ids: frozenset[int] = frozenset()
    start_date: date | None = None
    end_date: date | None = None
    limit: int | None = None


@dataclass
class MapSnapshot:
    """What the presentation layer renders after an applied fetch."""

    sequence: int
    descriptor: QueryDescriptor
    incidents: list[EnrichedIncident] = field(default_factory=list)
    counts: dict[int, int] = field(default_factory=dict)
    visible_neighborhood_ids: frozenset[int] = frozenset()


class MapSession:
    """Filter and viewport state of one map consumer, and the pipeline that keeps it consistent."""

    def __init__(
        self,
        source: IncidentSource,
        codes: Sequence[IncidentCodeOut],
        neighborhoods: Sequence[NeighborhoodOut],
        viewport: Viewport | None = None,
        anchors: Iterable[NeighborhoodAnchor] = DEFAULT_ANCHORS,
        geocoder: NominatimGeocoder | None = None,
    ):
        self.source = source
        self.codes = list(codes)
        self.neighborhoods = list(neighborhoods)
        self.anchors = tuple(anchors)
        self.geocoder = geocoder
        self.status = StatusBoard()
        self.snapshot: MapSnapshot | None = None

        self.viewport = viewport or city_viewport()
        self.state = FilterState(
            visible_neighborhood_ids=visible_neighborhoods(self.viewport, self.anchors)
        )

        self._issued_sequence = 0
        self._applied_sequence = 0
        self._completed_sequence = 0

    @classmethod
    async def open(cls, source: IncidentSource, **kwargs) -> "MapSession":
        """Load the catalog once and build a session around it."""
        codes, neighborhoods = await source.load_catalog()
        return cls(source, codes, neighborhoods, **kwargs)

    @property
    def last_applied_sequence(self) -> int:
        return self._applied_sequence

    async def apply_viewport_change(self, change: ViewportChange) -> MapSnapshot | None:
        """
        Update the visible set, then re-fetch unless the change was a programmatic recenter.

        Returns the new snapshot, or None when nothing was applied.
        """
        self.viewport = change.viewport
        self.state.visible_neighborhood_ids = visible_neighborhoods(
            change.viewport, self.anchors
        )
        if not change.refetches:
            logger.debug("Programmatic recenter, skipping re-fetch")
            return None
        return await self.refresh()

    async def apply_filter_change(self, change: FilterChange) -> MapSnapshot | None:
        """Replace the user selections and re-fetch."""
        self.state.selected_types = set(change.selected_types)
        self.state.selected_neighborhood_ids = set(change.selected_neighborhood_ids)
        self.state.start_date = change.start_date
        self.state.end_date = change.end_date
        self.state.limit = change.limit
        return await self.refresh()

    async def refresh(self) -> MapSnapshot | None:
        """Run resolve -> fetch -> project for the current state."""
        self._issued_sequence += 1
        sequence = self._issued_sequence

        descriptor = resolve_filters(self.state, self.codes)
        visible = self.state.visible_neighborhood_ids

        try:
            rows = await self.source.fetch_incidents(descriptor)
        except CrimeBrowserError as e:
            logger.warning(f"Fetch #{sequence} failed: {e.message}")
            if sequence > self._completed_sequence:
                self._completed_sequence = sequence
                self.status.fail(StatusChannel.FETCH, e.message)
            return None

        if sequence <= self._completed_sequence:
            logger.warning(
                f"Dropping stale fetch #{sequence}; #{self._completed_sequence} already completed"
            )
            return None

        return self._apply(sequence, descriptor, visible, rows)

    def _apply(
        self,
        sequence: int,
        descriptor: QueryDescriptor,
        visible: frozenset[int],
        rows: Sequence[IncidentRecord],
    ) -> MapSnapshot:
        projection = project(rows, self.codes, self.neighborhoods)
        self._applied_sequence = sequence
        self._completed_sequence = sequence
        self.snapshot = MapSnapshot(
            sequence=sequence,
            descriptor=descriptor,
            incidents=projection.incidents,
            counts=projection.counts,
            visible_neighborhood_ids=visible,
        )
        self.status.succeed(StatusChannel.FETCH)
        return self.snapshot

    async def submit_incident(self, payload: IncidentIn | dict) -> bool:
        """Create an incident, then re-fetch so it shows up if it matches the filters."""
        try:
            await self.source.create_incident(payload)
        except CrimeBrowserError as e:
            self.status.fail(StatusChannel.MUTATION, e.message)
            return False
        self.status.succeed(StatusChannel.MUTATION)
        await self.refresh()
        return True

    async def remove_incident(self, case_number: str | None) -> bool:
        """Delete an incident, then re-fetch."""
        try:
            await self.source.delete_incident(case_number)
        except CrimeBrowserError as e:
            self.status.fail(StatusChannel.MUTATION, e.message)
            return False
        self.status.succeed(StatusChannel.MUTATION)
        await self.refresh()
        return True

    async def locate_incident(
        self,
        incident: IncidentRecord,
        span: float = settings.recenter_span_degrees,
    ) -> GeocodeResult | None:
        """
        Recenter the map on an incident's block.

        The recenter updates the visible set but leaves the shown incidents
        and counts alone. Geocoder failures only touch the geocode channel.
        """
        if self.geocoder is None:
            raise RuntimeError("MapSession has no geocoder configured")

        address = block_to_address(incident.block)
        try:
            hit = await self.geocoder.search(address, city_viewport())
        except CrimeBrowserError as e:
            self.status.fail(StatusChannel.GEOCODE, e.message)
            return None

        if hit is None:
            self.status.fail(StatusChannel.GEOCODE, f"Could not locate {address}")
            return None

        self.status.succeed(StatusChannel.GEOCODE)
        await self.apply_viewport_change(
            ViewportChange(
                viewport=Viewport.around(hit.lat, hit.lng, span),
                cause=ViewportCause.PROGRAMMATIC_RECENTER,
            )
        )
        return hit
