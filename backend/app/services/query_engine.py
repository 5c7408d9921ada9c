"""Query engine: filtered incident reads plus create/delete of single incidents."""

import logging
from datetime import datetime, time, timedelta

import pydantic
from sqlalchemy import Select, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import async_session_maker
from app.errors import DuplicateKey, NotFound, StoreError, ValidationError
from app.models import Incident
from app.schemas.catalog import IncidentCodeOut, NeighborhoodOut
from app.schemas.incident import IncidentIn, IncidentRecord
from app.services.catalog import CatalogStore
from app.services.filters import QueryDescriptor, parse_date

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "case_number",
    "date",
    "time",
    "code",
    "incident",
    "police_grid",
    "neighborhood_number",
    "block",
)

TIME_FORMATS = ("%H:%M:%S", "%H:%M")


def _is_missing(value) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _parse_time(value: str) -> time:
    """Parse HH:MM:SS (or HH:MM) time of day."""
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Invalid time '{value}', expected HH:MM:SS")


def validate_new_incident(payload: IncidentIn | dict) -> dict:
    """
    Check a submission before anything touches the store.

    Returns column values for the incidents table. Raises ValidationError
    listing every missing field, or the first malformed one.
    """
    if isinstance(payload, dict):
        try:
            payload = IncidentIn.model_validate(payload)
        except pydantic.ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
            raise ValidationError(f"Malformed fields: {', '.join(fields)}") from e

    missing = [name for name in REQUIRED_FIELDS if _is_missing(getattr(payload, name))]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    incident_date = parse_date(payload.date, "date")
    incident_time = _parse_time(payload.time)

    return {
        "case_number": payload.case_number.strip(),
        "date_time": datetime.combine(incident_date, incident_time),
        "code": payload.code,
        "incident": payload.incident.strip(),
        "police_grid": payload.police_grid,
        "neighborhood_number": payload.neighborhood_number,
        "block": payload.block.strip(),
    }


def _to_record(incident: Incident) -> IncidentRecord:
    return IncidentRecord(
        case_number=incident.case_number,
        date=incident.date_time.date(),
        time=incident.date_time.time().replace(microsecond=0),
        code=incident.code,
        incident=incident.incident,
        police_grid=incident.police_grid,
        neighborhood_number=incident.neighborhood_number,
        block=incident.block,
    )


class IncidentQueryEngine:
    """
    Executes query descriptors against the incidents table.

    Results are always ordered newest first by the combined date and time;
    the store's own row order is never relied on.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def build_query(self, descriptor: QueryDescriptor) -> Select:
        """Translate a descriptor into a SELECT. Caller must check `matches_nothing` first."""
        query = select(Incident)

        # Date bounds compare the date component only.
        if descriptor.start_date:
            query = query.where(
                Incident.date_time >= datetime.combine(descriptor.start_date, time.min)
            )
        if descriptor.end_date:
            day_after = descriptor.end_date + timedelta(days=1)
            query = query.where(Incident.date_time < datetime.combine(day_after, time.min))

        if descriptor.codes:
            query = query.where(Incident.code.in_(sorted(descriptor.codes)))
        if descriptor.grids:
            query = query.where(Incident.police_grid.in_(sorted(descriptor.grids)))
        if descriptor.neighborhoods:
            query = query.where(
                Incident.neighborhood_number.in_(sorted(descriptor.neighborhoods))
            )

        return query.order_by(
            Incident.date_time.desc(),
            Incident.case_number.desc(),
        ).limit(descriptor.limit)

    async def fetch_incidents(self, descriptor: QueryDescriptor) -> list[IncidentRecord]:
        """Fetch incidents matching every restricted dimension, newest first, capped at the limit."""
        if descriptor.matches_nothing:
            return []

        try:
            result = await self.db.execute(self.build_query(descriptor))
        except SQLAlchemyError as e:
            logger.error(f"Incident query failed: {e}")
            raise StoreError("Failed to query incidents") from e

        return [_to_record(row) for row in result.scalars().all()]

    async def get_incident(self, case_number: str) -> IncidentRecord:
        """Look up a single incident by case number."""
        try:
            incident = await self.db.get(Incident, case_number)
        except SQLAlchemyError as e:
            logger.error(f"Incident lookup failed: {e}")
            raise StoreError("Failed to read incident") from e

        if incident is None:
            raise NotFound(f"case_number {case_number} does not exist")
        return _to_record(incident)

    async def create_incident(self, payload: IncidentIn | dict) -> IncidentRecord:
        """Insert a new incident. Fails with DuplicateKey if the case number is taken."""
        values = validate_new_incident(payload)
        case_number = values["case_number"]

        try:
            existing = await self.db.get(Incident, case_number)
            if existing is not None:
                raise DuplicateKey(f"case_number {case_number} already exists")

            incident = Incident(**values)
            self.db.add(incident)
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent insert of the same key.
            await self.db.rollback()
            raise DuplicateKey(f"case_number {case_number} already exists") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to insert incident {case_number}: {e}")
            raise StoreError("Failed to insert incident") from e

        logger.info(f"Created incident {case_number}")
        return _to_record(incident)

    async def delete_incident(self, case_number: str | None) -> None:
        """Remove exactly one incident. Fails with NotFound if it does not exist."""
        if _is_missing(case_number):
            raise ValidationError("Missing required fields: case_number")
        case_number = case_number.strip()

        try:
            existing = await self.db.get(Incident, case_number)
            if existing is None:
                raise NotFound(f"case_number {case_number} does not exist")

            result = await self.db.execute(
                delete(Incident).where(Incident.case_number == case_number)
            )
            if result.rowcount == 0:
                # Removed by someone else between the check and the delete.
                await self.db.rollback()
                raise NotFound(f"case_number {case_number} does not exist")
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to delete incident {case_number}: {e}")
            raise StoreError("Failed to delete incident") from e

        logger.info(f"Deleted incident {case_number}")


class ScopedIncidentStore:
    """
    Incident source for long-lived consumers such as map sessions.

    Opens a fresh database session for every operation so no session is held
    across WebSocket messages.
    """

    def __init__(self, session_maker: async_sessionmaker = async_session_maker):
        self.session_maker = session_maker

    async def load_catalog(self) -> tuple[list[IncidentCodeOut], list[NeighborhoodOut]]:
        """Load both reference tables."""
        async with self.session_maker() as db:
            store = CatalogStore(db)
            return await store.list_codes(), await store.list_neighborhoods()

    async def fetch_incidents(self, descriptor: QueryDescriptor) -> list[IncidentRecord]:
        async with self.session_maker() as db:
            return await IncidentQueryEngine(db).fetch_incidents(descriptor)

    async def get_incident(self, case_number: str) -> IncidentRecord:
        async with self.session_maker() as db:
            return await IncidentQueryEngine(db).get_incident(case_number)

    async def create_incident(self, payload: IncidentIn | dict) -> IncidentRecord:
        async with self.session_maker() as db:
            return await IncidentQueryEngine(db).create_incident(payload)

    async def delete_incident(self, case_number: str | None) -> None:
        async with self.session_maker() as db:
            await IncidentQueryEngine(db).delete_incident(case_number)
