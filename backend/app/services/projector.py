"""Result projector: display enrichment and per-neighborhood counts."""

import re
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from app.schemas.catalog import IncidentCodeOut, NeighborhoodOut
from app.schemas.incident import EnrichedIncident, IncidentCategory, IncidentRecord

# Matched case-insensitively at the start of a word in "<type> <detail>".
VIOLENT_KEYWORDS: tuple[str, ...] = (
    "murder",
    "homicide",
    "assault",
    "agg.",
    "aggravated",
    "robbery",
    "rape",
    "sexual",
    "shooting",
    "shots fired",
    "discharge",
    "weapon",
    "kidnap",
    "domestic",
)

PROPERTY_KEYWORDS: tuple[str, ...] = (
    "theft",
    "burglary",
    "vandalism",
    "graffiti",
    "damage",
    "arson",
    "stolen",
    "shoplift",
    "property",
)


def _keyword_pattern(keywords: Iterable[str]) -> re.Pattern:
    return re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + ")", re.IGNORECASE)


_VIOLENT = _keyword_pattern(VIOLENT_KEYWORDS)
_PROPERTY = _keyword_pattern(PROPERTY_KEYWORDS)


def classify_incident(incident_type: str | None, detail: str | None) -> IncidentCategory:
    """Violent keywords win over property keywords; anything else is other."""
    text = f"{incident_type or ''} {detail or ''}"
    if _VIOLENT.search(text):
        return IncidentCategory.VIOLENT
    if _PROPERTY.search(text):
        return IncidentCategory.PROPERTY
    return IncidentCategory.OTHER


@dataclass
class Projection:
    """Enriched rows plus the marker counts derived from them."""

    incidents: list[EnrichedIncident] = field(default_factory=list)
    counts: dict[int, int] = field(default_factory=dict)


def count_by_neighborhood(incidents: Iterable[IncidentRecord]) -> dict[int, int]:
    """Frequency of incidents per neighborhood id."""
    return dict(Counter(incident.neighborhood_number for incident in incidents))


def project(
    rows: Sequence[IncidentRecord],
    codes: Iterable[IncidentCodeOut],
    neighborhoods: Iterable[NeighborhoodOut],
) -> Projection:
    """
    Enrich raw incident rows for display.

    Resolution is best effort: an unknown code or neighborhood id is shown as
    its number rather than failing the projection. Row order is preserved.
    """
    type_by_code = {entry.code: entry.type for entry in codes}
    name_by_id = {entry.id: entry.name for entry in neighborhoods}

    enriched = []
    for row in rows:
        incident_type = type_by_code.get(row.code, str(row.code))
        enriched.append(
            EnrichedIncident(
                **row.model_dump(),
                incident_type=incident_type,
                neighborhood_name=name_by_id.get(
                    row.neighborhood_number, str(row.neighborhood_number)
                ),
                category=classify_incident(incident_type, row.incident),
            )
        )

    return Projection(incidents=enriched, counts=count_by_neighborhood(enriched))
