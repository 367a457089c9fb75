import os

# config fails fast without a URL; tests build their own engines below
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./unused-test.db")

from datetime import date

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

import academies
from database import get_session, init_db
from main import app
from schemas import AcademyCreate, CourtPricingIn, PriceIn, SportConfig

BOOKING_DATE = date(2025, 11, 21)

PRICES = [
    PriceIn(time="09:00", price=10),
    PriceIn(time="10:00", price=20),
    PriceIn(time="11:00", price=20),
    PriceIn(time="21:00", price=30),
]


def badminton_config():
    # Court 3 has no pricing entry at all
    return SportConfig(
        sport_name="badminton",
        start_time="06:00",
        end_time="22:00",
        number_of_courts=3,
        pricing=[
            CourtPricingIn(court_number=1, prices=PRICES),
            CourtPricingIn(court_number=2, prices=PRICES),
        ],
    )


@pytest_asyncio.fixture
async def engine(tmp_path):
    # A file database: concurrent sessions need their own connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'booking.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def academy(session):
    academy = await academies.create_academy(
        session, AcademyCreate(name="Smash Point", email="desk@smashpoint.test", city="Pune")
    )
    await academies.replace_sports(session, academy.id, [badminton_config()])
    return academy


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
