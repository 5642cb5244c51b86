"""
Profile Directory
=================

Joins display data (name, image) onto rides and requests.  Lookups are
batched: cached entries are served locally and every miss is fetched in a
single ``IN`` query.  Users without a profile get the ``"Unknown"``
placeholder.

``ProfileCache`` is the non-authoritative local copy of profile fields.
Entries are written whenever a profile is fetched or saved.  After
``profile_cache_ttl_seconds`` an entry counts as a miss, so names changed by
another worker are picked up on the next lookup.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from carpool.config import settings
from carpool.domain.entities import ProfileSummary
from carpool.domain.errors import NotFoundError, ValidationError
from carpool.infrastructure.database import unit_of_work
from carpool.infrastructure.models import ProfileModel
from carpool.infrastructure.repositories import ProfileRepository

logger = logging.getLogger(__name__)


@dataclass
class CachedProfile:
    user_id: str
    display_name: str
    profile_image_url: Optional[str] = None
    license_image_url: Optional[str] = None

    @classmethod
    def from_model(cls, profile: ProfileModel) -> "CachedProfile":
        return cls(
            user_id=profile.user_id,
            display_name=profile.full_name,
            profile_image_url=profile.profile_image_url,
            license_image_url=profile.license_image_url,
        )

    def summary(self) -> ProfileSummary:
        return ProfileSummary(
            user_id=self.user_id,
            display_name=self.display_name,
            profile_image_url=self.profile_image_url,
        )


class ProfileCache:
    """Process-local profile copies.  Stale entries read as misses and are
    overwritten on the next fetch; nothing is ever removed."""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = (
            settings.profile_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        )
        self._clock = clock
        self._entries: dict[str, tuple[CachedProfile, float]] = {}

    def get(self, user_id: str) -> Optional[CachedProfile]:
        hit = self._entries.get(user_id)
        if hit is None:
            return None
        entry, stored_at = hit
        if self.ttl_seconds and self._clock() - stored_at >= self.ttl_seconds:
            return None
        return entry

    def put(self, entry: CachedProfile) -> None:
        self._entries[entry.user_id] = (entry, self._clock())

    def __contains__(self, user_id: str) -> bool:
        return self.get(user_id) is not None

    def __len__(self) -> int:
        return len(self._entries)


class ProfileDirectory:
    def __init__(self, session: AsyncSession, cache: Optional[ProfileCache] = None):
        self.session = session
        self.repo = ProfileRepository(session)
        self.cache = cache if cache is not None else ProfileCache()

    async def lookup(self, user_ids: Iterable[str]) -> dict[str, ProfileSummary]:
        wanted = list(dict.fromkeys(user_ids))
        misses = [uid for uid in wanted if uid not in self.cache]
        if misses:
            for profile in await self.repo.get_many(misses):
                self.cache.put(CachedProfile.from_model(profile))

        result: dict[str, ProfileSummary] = {}
        for uid in wanted:
            entry = self.cache.get(uid)
            result[uid] = entry.summary() if entry else ProfileSummary.unknown(uid)
        return result

    async def display_name(self, user_id: str) -> str:
        return (await self.lookup([user_id]))[user_id].display_name

    async def get_profile(self, user_id: str) -> ProfileModel:
        profile = await self.repo.get_by_id(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        self.cache.put(CachedProfile.from_model(profile))
        return profile

    async def upsert_profile(
        self,
        user_id: str,
        *,
        full_name: str,
        phone_number: str | None = None,
        is_driver: bool = False,
        is_rider: bool = True,
        driver_license: str | None = None,
        profile_image_url: str | None = None,
        license_image_url: str | None = None,
    ) -> ProfileModel:
        """Merge-write the caller's profile (onboarding)."""
        if not full_name.strip():
            raise ValidationError("full_name is required")
        if is_driver and not (driver_license or "").strip():
            raise ValidationError("driver_license is required for drivers")

        async with unit_of_work(self.session):
            profile = await self.repo.get_by_id(user_id)
            if profile is None:
                profile = ProfileModel(user_id=user_id)
            profile.full_name = full_name.strip()
            profile.phone_number = phone_number
            profile.is_driver = is_driver
            profile.is_rider = is_rider
            profile.driver_license = driver_license if is_driver else None
            if profile_image_url is not None:
                profile.profile_image_url = profile_image_url
            if license_image_url is not None:
                profile.license_image_url = license_image_url
            profile.updated_at = datetime.now(timezone.utc)
            await self.repo.save(profile)

        self.cache.put(CachedProfile.from_model(profile))
        logger.info("Profile %s saved (driver=%s)", user_id, is_driver)
        return profile
