"""Dashboard stats aggregation.

Combines the caller's profile with topic counts by status, per-technology
progress and the most recently touched topics.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError

from devtrain.dashboard.schemas import (
    DashboardProfile,
    DashboardStatsResponse,
    RecentActivity,
    TechnologyStats,
    TopicStats,
)
from devtrain.db.models import Profile, Topic, TopicStatus
from devtrain.errors import InternalError, NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

RECENT_ACTIVITY_LIMIT = 10


def _activity_action(topic: Topic) -> str:
    if topic.status == TopicStatus.COMPLETED:
        return "completed"
    if topic.updated_at == topic.created_at:
        return "created"
    return "updated"


async def _status_counts(session: AsyncSession, user_id: uuid.UUID) -> TopicStats:
    result = await session.execute(
        select(Topic.status, func.count()).where(Topic.user_id == user_id).group_by(Topic.status)
    )
    counts = {status.value: count for status, count in result.all()}
    return TopicStats(total=sum(counts.values()), **counts)


async def _technology_stats(session: AsyncSession, user_id: uuid.UUID) -> list[TechnologyStats]:
    completed = func.sum(case((Topic.status == TopicStatus.COMPLETED, 1), else_=0))
    result = await session.execute(
        select(Topic.technology, func.count(), completed)
        .where(Topic.user_id == user_id)
        .group_by(Topic.technology)
        .order_by(Topic.technology)
    )
    return [
        TechnologyStats(name=name, total=total, completed=int(done or 0))
        for name, total, done in result.all()
    ]


async def _recent_activity(session: AsyncSession, user_id: uuid.UUID) -> list[RecentActivity]:
    result = await session.execute(
        select(Topic)
        .where(Topic.user_id == user_id)
        .order_by(Topic.updated_at.desc(), Topic.id.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
    )
    return [
        RecentActivity(
            topic_id=topic.id,
            topic_title=topic.title,
            action=_activity_action(topic),
            timestamp=topic.updated_at,
        )
        for topic in result.scalars().all()
    ]


async def get_dashboard_stats(session: AsyncSession, user_id: uuid.UUID) -> DashboardStatsResponse:
    """Aggregated dashboard stats. Requires a profile."""
    profile = await session.get(Profile, user_id)
    if profile is None:
        raise NotFoundError("Profile not found")

    try:
        topics = await _status_counts(session, user_id)
        technologies = await _technology_stats(session, user_id)
        recent = await _recent_activity(session, user_id)
    except SQLAlchemyError as e:
        logger.error("dashboard_stats_failed", user_id=str(user_id), error=str(e))
        raise InternalError("Failed to load dashboard statistics") from e

    return DashboardStatsResponse(
        profile=DashboardProfile(
            experience_level=profile.experience_level,
            years_away=profile.years_away,
            activity_streak=profile.activity_streak,
        ),
        topics=topics,
        technologies=technologies,
        recent_activity=recent,
    )
