"""
Shared test fixtures.

Each test gets its own SQLite database file (via aiosqlite) so tests run
without Docker / PostgreSQL / Redis, and so concurrency tests can open
several independent connections against the same store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from carpool.infrastructure.database import Base
from carpool.infrastructure.publisher import NotificationPublisher
from carpool.services.catalog import RideCatalog
from carpool.services.ledger import RequestLedger
from carpool.services.notifications import NotificationEmitter
from carpool.services.profiles import ProfileCache, ProfileDirectory

DRIVER = "driver-voltaire"
RIDER_A = "rider-andrea"
RIDER_B = "rider-bea"


def hours_from_now(hours: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=hours)


@dataclass
class Services:
    session: AsyncSession
    notifier: NotificationEmitter
    catalog: RideCatalog
    ledger: RequestLedger
    profiles: ProfileDirectory


def build_services(
    session: AsyncSession,
    publisher: Optional[NotificationPublisher] = None,
    cache: Optional[ProfileCache] = None,
) -> Services:
    notifier = NotificationEmitter(session, publisher)
    catalog = RideCatalog(session, notifier)
    profiles = ProfileDirectory(session, cache)
    ledger = RequestLedger(session, catalog, notifier, profiles)
    return Services(session, notifier, catalog, ledger, profiles)


async def make_ride(
    services: Services,
    *,
    driver_id: str = DRIVER,
    seats: int = 1,
    price: int = 20,
    hours: float = 2,
    origin: str = "SM Lucena City",
    destination: str = "MSEUF College",
) -> str:
    ride = await services.catalog.create_ride(
        driver_id, origin, destination, hours_from_now(hours), seats, price
    )
    return ride.id


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Create tables in a fresh database file, then dispose of the engine."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'carpool.db'}",
        echo=False,
        connect_args={"timeout": 30},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def services(db_session) -> Services:
    return build_services(db_session)
