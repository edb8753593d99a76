"""Pydantic schemas for profile endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from devtrain.db.models import ExperienceLevel


class ProfileCommand(BaseModel):
    """Body of POST /api/profile and POST /api/profile/setup."""

    experience_level: ExperienceLevel
    years_away: int = Field(..., ge=0, le=60, strict=True)


class ProfileResponse(BaseModel):
    id: uuid.UUID
    experience_level: ExperienceLevel
    years_away: int
    activity_streak: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
