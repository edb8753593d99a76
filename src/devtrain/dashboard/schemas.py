"""Pydantic schemas for the dashboard API."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from devtrain.db.models import ExperienceLevel


class DashboardProfile(BaseModel):
    experience_level: ExperienceLevel
    years_away: int
    activity_streak: int


class TopicStats(BaseModel):
    """Topic counts by status."""

    total: int = 0
    to_do: int = 0
    in_progress: int = 0
    completed: int = 0


class TechnologyStats(BaseModel):
    name: str
    total: int
    completed: int


class RecentActivity(BaseModel):
    topic_id: uuid.UUID
    topic_title: str
    action: Literal["created", "updated", "completed"]
    timestamp: datetime


class DashboardStatsResponse(BaseModel):
    """Response for GET /api/dashboard/stats."""

    profile: DashboardProfile
    topics: TopicStats
    technologies: list[TechnologyStats]
    recent_activity: list[RecentActivity]
