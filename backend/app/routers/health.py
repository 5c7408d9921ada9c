"""Health and readiness endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models import Incident, IncidentCode, Neighborhood

router = APIRouter(tags=["health"])


class IncidentStoreStatus(BaseModel):
    """Status of the incidents table."""

    record_count: int
    oldest_record: datetime | None = None
    newest_record: datetime | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    codes: int
    neighborhoods: int
    incidents: IncidentStoreStatus


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthResponse:
    """
    Health check endpoint with store status.

    Returns reference table sizes and the incident date range.
    """
    code_count = (await db.execute(select(func.count(IncidentCode.code)))).scalar() or 0
    neighborhood_count = (
        await db.execute(select(func.count(Neighborhood.neighborhood_number)))
    ).scalar() or 0

    incident_stats = await db.execute(
        select(
            func.count(Incident.case_number),
            func.min(Incident.date_time),
            func.max(Incident.date_time),
        )
    )
    incident_count, oldest, newest = incident_stats.one()

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        codes=code_count,
        neighborhoods=neighborhood_count,
        incidents=IncidentStoreStatus(
            record_count=incident_count or 0,
            oldest_record=oldest,
            newest_record=newest,
        ),
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Simple readiness probe for container orchestration."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict:
    """Simple liveness probe for container orchestration."""
    return {"status": "alive"}
