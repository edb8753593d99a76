"""Profile persistence: one profile row per user, keyed by the user's id."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from devtrain.db.models import Profile
from devtrain.errors import ConflictError, InternalError, NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from devtrain.profiles.schemas import ProfileCommand

logger = structlog.get_logger()


async def get_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile:
    """Return the caller's profile or raise NotFoundError."""
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    return profile


async def create_profile(db: AsyncSession, user_id: uuid.UUID, command: ProfileCommand) -> Profile:
    """Create the caller's profile. A second call raises ConflictError."""
    if await db.get(Profile, user_id) is not None:
        raise ConflictError("Profile already exists for this user")

    now = datetime.now(timezone.utc)
    profile = Profile(
        id=user_id,
        experience_level=command.experience_level,
        years_away=command.years_away,
        activity_streak=0,
        created_at=now,
        updated_at=now,
    )
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent create for the same user.
        await db.rollback()
        raise ConflictError("Profile already exists for this user") from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("profile_create_failed", user_id=str(user_id), error=str(e))
        raise InternalError("Failed to create profile") from e

    logger.info("profile_created", user_id=str(user_id), experience_level=command.experience_level.value)
    return profile


async def upsert_profile(db: AsyncSession, user_id: uuid.UUID, command: ProfileCommand) -> Profile:
    """Create the profile or overwrite experience level and years away."""
    profile = await db.get(Profile, user_id)
    if profile is None:
        now = datetime.now(timezone.utc)
        profile = Profile(id=user_id, activity_streak=0, created_at=now, updated_at=now)
        db.add(profile)

    profile.experience_level = command.experience_level
    profile.years_away = command.years_away

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("profile_setup_failed", user_id=str(user_id), error=str(e))
        raise InternalError("Failed to save profile") from e

    await db.refresh(profile)
    logger.info("profile_saved", user_id=str(user_id))
    return profile
