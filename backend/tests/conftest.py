"""Pytest fixtures for crime browser backend tests."""

import os

# Settings are read at import time; keep tests off the real database and limiter.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from collections.abc import AsyncGenerator
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models import Incident, IncidentCode, Neighborhood
from app.schemas.catalog import IncidentCodeOut, NeighborhoodOut
from app.services.geocoder import get_geocoder

# Test database URL - in-memory SQLite shared through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def async_engine():
    """Create async engine with the full schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(async_engine) -> async_sessionmaker:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database override."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def code_catalog() -> list[IncidentCodeOut]:
    """Incident codes used across tests."""
    return [
        IncidentCodeOut(code=110, type="Theft"),
        IncidentCodeOut(code=120, type="Theft"),
        IncidentCodeOut(code=300, type="Robbery"),
        IncidentCodeOut(code=700, type="Auto Theft"),
        IncidentCodeOut(code=9954, type="Proactive Police Visit"),
    ]


@pytest.fixture
def neighborhood_catalog() -> list[NeighborhoodOut]:
    """Neighborhoods used across tests."""
    return [
        NeighborhoodOut(id=11, name="Hamline/Midway"),
        NeighborhoodOut(id=14, name="Macalester-Groveland"),
        NeighborhoodOut(id=16, name="Summit Hill"),
    ]


@pytest.fixture
def sample_incidents() -> list[dict]:
    """Incident rows spanning two months and three neighborhoods."""
    return [
        {
            "case_number": "22251234",
            "date_time": datetime(2022, 12, 31, 23, 59, 59),
            "code": 110,
            "incident": "Theft",
            "police_grid": 87,
            "neighborhood_number": 11,
            "block": "15XX UNIVERSITY AV W",
        },
        {
            "case_number": "23000001",
            "date_time": datetime(2023, 1, 1, 0, 0, 0),
            "code": 110,
            "incident": "Theft",
            "police_grid": 87,
            "neighborhood_number": 11,
            "block": "15XX UNIVERSITY AV W",
        },
        {
            "case_number": "23000002",
            "date_time": datetime(2023, 1, 15, 12, 30, 0),
            "code": 300,
            "incident": "Robbery, Street",
            "police_grid": 106,
            "neighborhood_number": 14,
            "block": "16X SNELLING AV S",
        },
        {
            "case_number": "23000003",
            "date_time": datetime(2023, 1, 15, 8, 5, 0),
            "code": 700,
            "incident": "Auto Theft",
            "police_grid": 126,
            "neighborhood_number": 16,
            "block": "4XX GRAND AV",
        },
        {
            "case_number": "23000004",
            "date_time": datetime(2023, 1, 31, 23, 0, 0),
            "code": 9954,
            "incident": "Proactive Police Visit",
            "police_grid": 106,
            "neighborhood_number": 14,
            "block": "20XX RANDOLPH AV",
        },
        {
            "case_number": "23000005",
            "date_time": datetime(2023, 2, 1, 0, 0, 1),
            "code": 110,
            "incident": "Theft",
            "police_grid": 87,
            "neighborhood_number": 11,
            "block": "15XX UNIVERSITY AV W",
        },
    ]


@pytest_asyncio.fixture
async def seeded_db(db_session, code_catalog, neighborhood_catalog, sample_incidents) -> AsyncSession:
    """Database session with catalog and sample incidents loaded."""
    db_session.add_all(
        IncidentCode(code=entry.code, incident_type=entry.type) for entry in code_catalog
    )
    db_session.add_all(
        Neighborhood(neighborhood_number=entry.id, neighborhood_name=entry.name)
        for entry in neighborhood_catalog
    )
    db_session.add_all(Incident(**row) for row in sample_incidents)
    await db_session.commit()
    return db_session


@pytest.fixture
def new_incident() -> dict:
    """Valid new-incident submission."""
    return {
        "case_number": "23009999",
        "date": "2023-01-20",
        "time": "14:45:00",
        "code": 110,
        "incident": "Theft",
        "police_grid": 87,
        "neighborhood_number": 11,
        "block": "15XX UNIVERSITY AV W",
    }


@pytest.fixture(autouse=True)
def fresh_geocoder():
    """Drop the process-wide geocoder between tests."""
    get_geocoder.cache_clear()
    yield
    get_geocoder.cache_clear()
