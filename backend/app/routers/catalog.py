"""API routes for the reference catalog (incident codes and neighborhoods)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.catalog import IncidentCodeOut, NeighborhoodOut
from app.services.catalog import CatalogStore
from app.services.filters import parse_int_list

router = APIRouter(tags=["catalog"])


@router.get("/codes", response_model=list[IncidentCodeOut])
async def list_codes(
    db: Annotated[AsyncSession, Depends(get_db)],
    code: str | None = Query(None, description="Comma separated codes, e.g. 110,700"),
) -> list[IncidentCodeOut]:
    """List incident codes and their types, ascending by code."""
    return await CatalogStore(db).list_codes(parse_int_list(code))


@router.get("/neighborhoods", response_model=list[NeighborhoodOut])
async def list_neighborhoods(
    db: Annotated[AsyncSession, Depends(get_db)],
    id: str | None = Query(None, description="Comma separated neighborhood ids, e.g. 11,14"),
) -> list[NeighborhoodOut]:
    """List neighborhoods, ascending by id."""
    return await CatalogStore(db).list_neighborhoods(parse_int_list(id))
