"""FastAPI dependency injection helpers."""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.infrastructure.database import async_session_factory
from carpool.infrastructure.publisher import NotificationPublisher
from carpool.infrastructure.redis_client import get_redis
from carpool.services.catalog import RideCatalog
from carpool.services.ledger import RequestLedger
from carpool.services.notifications import NotificationEmitter
from carpool.services.profiles import ProfileCache, ProfileDirectory

logger = logging.getLogger(__name__)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """Caller identity as asserted by the upstream identity provider."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


async def get_publisher() -> Optional[NotificationPublisher]:
    """Publisher on the shared pool, or ``None`` while Redis is unreachable."""
    redis = await get_redis()
    try:
        await redis.ping()
    except RedisError:
        logger.warning("Redis unavailable; live notifications disabled")
        return None
    return NotificationPublisher(redis)


def get_profile_cache(request: Request) -> ProfileCache:
    return request.app.state.profile_cache


def get_profiles(
    db: AsyncSession = Depends(get_db),
    cache: ProfileCache = Depends(get_profile_cache),
) -> ProfileDirectory:
    return ProfileDirectory(db, cache)


def get_notifier(
    db: AsyncSession = Depends(get_db),
    publisher: Optional[NotificationPublisher] = Depends(get_publisher),
) -> NotificationEmitter:
    return NotificationEmitter(db, publisher)


def get_catalog(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationEmitter = Depends(get_notifier),
) -> RideCatalog:
    return RideCatalog(db, notifier)


def get_ledger(
    db: AsyncSession = Depends(get_db),
    catalog: RideCatalog = Depends(get_catalog),
    notifier: NotificationEmitter = Depends(get_notifier),
    profiles: ProfileDirectory = Depends(get_profiles),
) -> RequestLedger:
    return RequestLedger(db, catalog, notifier, profiles)
