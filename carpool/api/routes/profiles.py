"""
Profile endpoints
=================

PUT /api/v1/profiles/me          -- onboarding: create or update own profile
GET /api/v1/profiles/{user_id}   -- read a profile
"""

from fastapi import APIRouter, Depends, Request

from carpool.api.dependencies import get_current_user_id, get_profiles
from carpool.api.middleware import limiter
from carpool.api.schemas import ProfileResponse, ProfileUpdateRequest
from carpool.config import settings
from carpool.services.profiles import ProfileDirectory

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.put("/me", response_model=ProfileResponse, summary="Create or update own profile")
@limiter.limit(settings.rate_limit)
async def upsert_my_profile(
    request: Request,
    body: ProfileUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    profiles: ProfileDirectory = Depends(get_profiles),
):
    return await profiles.upsert_profile(user_id, **body.model_dump())


@router.get("/{user_id}", response_model=ProfileResponse, summary="Get a profile")
@limiter.limit(settings.rate_limit)
async def get_profile(
    request: Request,
    user_id: str,
    profiles: ProfileDirectory = Depends(get_profiles),
):
    return await profiles.get_profile(user_id)
