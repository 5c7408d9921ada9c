"""Catalog store: read-only access to the incident code and neighborhood tables."""

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import StoreError
from app.models import IncidentCode, Neighborhood
from app.schemas.catalog import IncidentCodeOut, NeighborhoodOut

logger = logging.getLogger(__name__)


class CatalogStore:
    """Reads the fixed reference tables. Empty or missing filters return every row."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_codes(self, codes: Iterable[int] | None = None) -> list[IncidentCodeOut]:
        """List incident codes ascending by code, optionally restricted to `codes`."""
        query = select(IncidentCode).order_by(IncidentCode.code.asc())
        wanted = set(codes or ())
        if wanted:
            query = query.where(IncidentCode.code.in_(sorted(wanted)))

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list codes: {e}")
            raise StoreError("Failed to read incident codes") from e

        return [
            IncidentCodeOut(code=row.code, type=row.incident_type)
            for row in result.scalars().all()
        ]

    async def list_neighborhoods(
        self, ids: Iterable[int] | None = None
    ) -> list[NeighborhoodOut]:
        """List neighborhoods ascending by id, optionally restricted to `ids`."""
        query = select(Neighborhood).order_by(Neighborhood.neighborhood_number.asc())
        wanted = set(ids or ())
        if wanted:
            query = query.where(Neighborhood.neighborhood_number.in_(sorted(wanted)))

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Failed to list neighborhoods: {e}")
            raise StoreError("Failed to read neighborhoods") from e

        return [
            NeighborhoodOut(id=row.neighborhood_number, name=row.neighborhood_name)
            for row in result.scalars().all()
        ]
