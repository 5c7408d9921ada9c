"""API routes for incident queries and single-incident create/delete."""

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.rate_limit import MUTATION_LIMIT, limiter
from app.schemas.incident import IncidentIn, IncidentKey, IncidentRecord, MutationResult
from app.services.filters import QueryDescriptor, parse_int_list
from app.services.query_engine import IncidentQueryEngine
from app.websocket.manager import manager as ws_manager

logger = logging.getLogger(__name__)
router = APIRouter(tags=["incidents"])


@router.get("/incidents", response_model=list[IncidentRecord])
async def fetch_incidents(
    db: Annotated[AsyncSession, Depends(get_db)],
    start_date: str | None = Query(None, description="First day, inclusive (YYYY-MM-DD)"),
    end_date: str | None = Query(None, description="Last day, inclusive (YYYY-MM-DD)"),
    code: str | None = Query(None, description="Comma separated incident codes"),
    grid: str | None = Query(None, description="Comma separated police grids"),
    neighborhood: str | None = Query(None, description="Comma separated neighborhood ids"),
    limit: str | None = Query(None, description="Maximum rows (default 1000)"),
) -> list[IncidentRecord]:
    """
    Query incidents, newest first.

    Each given filter restricts results to its listed values; filters are
    combined with AND. Missing or invalid limits fall back to the default.
    """
    descriptor = QueryDescriptor.from_params(
        codes=parse_int_list(code),
        grids=parse_int_list(grid),
        neighborhoods=parse_int_list(neighborhood),
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return await IncidentQueryEngine(db).fetch_incidents(descriptor)


@router.get("/incidents/{case_number}", response_model=IncidentRecord)
async def get_incident(
    case_number: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> IncidentRecord:
    """Get a specific incident by case number."""
    return await IncidentQueryEngine(db).get_incident(case_number)


@router.put("/new-incident", response_model=MutationResult)
@limiter.limit(MUTATION_LIMIT)
async def create_incident(
    request: Request,
    payload: IncidentIn,
    background_tasks: BackgroundTasks,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MutationResult:
    """Create an incident. Every field is required; the case number must be new."""
    record = await IncidentQueryEngine(db).create_incident(payload)
    background_tasks.add_task(ws_manager.refresh_all)
    return MutationResult(case_number=record.case_number)


@router.delete("/remove-incident", response_model=MutationResult)
@limiter.limit(MUTATION_LIMIT)
async def remove_incident(
    request: Request,
    payload: IncidentKey,
    background_tasks: BackgroundTasks,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MutationResult:
    """Delete an incident by case number."""
    await IncidentQueryEngine(db).delete_incident(payload.case_number)
    background_tasks.add_task(ws_manager.refresh_all)
    return MutationResult(case_number=payload.case_number.strip())
