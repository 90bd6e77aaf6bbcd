"""Shared fixtures: a throwaway SQLite database, an API client and seeded accounts."""

import os

# Settings are read once at import; point them at SQLite with vendors in dev mode
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["ADMIN_ALERT_PHONES"] = ""
os.environ["DEBUG"] = "true"

from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import app.models  # noqa: F401
from app.api.deps import create_access_token
from app.database import Base, get_db
from app.main import app
from app.models.agent import AgentProfile, AgentStatus, AgentTier
from app.models.catalog import ServiceCatalogEntry
from app.models.schedule import AvailableSlot
from app.models.user import Profile, UserRole

JOB_LAT = 30.2672
JOB_LNG = -97.7431


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(profile: Profile) -> dict:
    token = create_access_token(subject=str(profile.id), role=profile.role.value)
    return {"Authorization": f"Bearer {token}"}


async def _add(db: AsyncSession, *objects):
    db.add_all(objects)
    await db.commit()
    for obj in objects:
        await db.refresh(obj)
    # Tests read state written by the API through fresh loads
    db.expunge_all()
    return objects[0]


@pytest.fixture
async def client_user(db):
    return await _add(db, Profile(
        email="client@example.com",
        phone="+14155552671",
        first_name="Casey",
        last_name="Client",
        role=UserRole.CLIENT,
        street="100 Congress Ave",
        city="Austin",
        state="TX",
        postal_code="78701",
        location_latitude=JOB_LAT,
        location_longitude=JOB_LNG,
    ))


@pytest.fixture
async def agent_user(db):
    profile = Profile(
        email="agent@example.com",
        phone="+14155552672",
        first_name="Alex",
        last_name="Agent",
        role=UserRole.AGENT,
    )
    await _add(db, profile)
    await _add(db, AgentProfile(
        id=profile.id,
        status=AgentStatus.APPROVED,
        tier=AgentTier.BRONZE,
        service_types=["tv_mounting"],
        approved_at=datetime.utcnow(),
    ))
    return profile


@pytest.fixture
async def pending_agent_user(db):
    profile = Profile(email="new-agent@example.com", role=UserRole.AGENT)
    await _add(db, profile)
    await _add(db, AgentProfile(id=profile.id, status=AgentStatus.PENDING))
    return profile


@pytest.fixture
async def admin_user(db):
    return await _add(db, Profile(
        email="admin@example.com",
        phone="+14155552673",
        first_name="Ada",
        role=UserRole.ADMIN,
    ))


@pytest.fixture
async def catalog(db):
    return await _add(
        db,
        ServiceCatalogEntry(
            id="tv_mounting",
            name="TV Mounting",
            category="installation",
            icon="📺",
            base_minutes=60,
            price_cents=9900,
            display_order=1,
        ),
        ServiceCatalogEntry(
            id="furniture_assembly",
            name="Furniture Assembly",
            category="assembly",
            base_minutes=90,
            price_cents=12900,
            display_order=2,
        ),
    )


def slot_time(days: int = 3, hour: int = 15) -> datetime:
    base = datetime.utcnow().replace(minute=0, second=0, microsecond=0)
    return base.replace(hour=hour) + timedelta(days=days)


@pytest.fixture
async def slots(db):
    start = slot_time()
    created = [
        AvailableSlot(slot_start=start + timedelta(hours=i), slot_end=start + timedelta(hours=i + 1))
        for i in range(3)
    ]
    db.add_all(created)
    await db.commit()
    db.expunge_all()
    return [slot.slot_start for slot in created]
