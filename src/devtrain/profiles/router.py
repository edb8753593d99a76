"""Profile API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devtrain.auth.dependencies import get_current_user
from devtrain.database import get_session
from devtrain.db.models import User
from devtrain.profiles import service
from devtrain.profiles.schemas import ProfileCommand, ProfileResponse

router = APIRouter(prefix="/api/profile", tags=["Profile"])


@router.get("", response_model=ProfileResponse)
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Return the caller's profile."""
    profile = await service.get_profile(db, user.id)
    return ProfileResponse.model_validate(profile)


@router.post("", response_model=ProfileResponse, status_code=201)
async def create_profile(
    body: ProfileCommand,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Create the caller's profile. Fails with 409 if one already exists."""
    profile = await service.create_profile(db, user.id, body)
    return ProfileResponse.model_validate(profile)


@router.post("/setup", response_model=ProfileResponse)
async def setup_profile(
    body: ProfileCommand,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Create or update the caller's profile (onboarding form)."""
    profile = await service.upsert_profile(db, user.id, body)
    return ProfileResponse.model_validate(profile)
