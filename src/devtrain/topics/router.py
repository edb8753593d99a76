"""Topic API endpoints: CRUD, children and AI generation."""

from __future__ import annotations

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from devtrain.ai.client import OpenRouterClient, get_ai_client
from devtrain.auth.dependencies import get_current_user
from devtrain.database import get_session
from devtrain.db.models import TopicStatus, User
from devtrain.ratelimit import RateLimiter, get_rate_limiter
from devtrain.topics.schemas import (
    MAX_PAGE,
    CreateTopicCommand,
    GenerateTopicsCommand,
    GenerateTopicsResponse,
    ListTopicsQuery,
    SortOrder,
    TopicChildrenResponse,
    TopicListResponse,
    TopicResponse,
    TopicSort,
    UpdateTopicCommand,
)
from devtrain.topics.service import TopicService

router = APIRouter(prefix="/api/topics", tags=["Topics"])


def get_topic_service(db: AsyncSession = Depends(get_session)) -> TopicService:
    return TopicService(db)


def list_topics_query(
    status: TopicStatus | None = Query(None),
    technology: str | None = Query(None, min_length=1),
    parent_id: uuid.UUID | Literal["null"] | None = Query(None),
    sort: TopicSort = Query("created_at"),
    order: SortOrder = Query("desc"),
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(50, ge=1, le=100),
) -> ListTopicsQuery:
    """Collect the list filters from the query string."""
    return ListTopicsQuery(
        status=status,
        technology=technology,
        parent_id=parent_id,
        sort=sort,
        order=order,
        page=page,
        limit=limit,
    )


@router.get("", response_model=TopicListResponse)
async def list_topics(
    query: ListTopicsQuery = Depends(list_topics_query),
    user: User = Depends(get_current_user),
    svc: TopicService = Depends(get_topic_service),
) -> TopicListResponse:
    """List the caller's topics with filtering, sorting and pagination."""
    return await svc.list_topics(user.id, query)


@router.post("", response_model=TopicResponse, status_code=201)
async def create_topic(
    body: CreateTopicCommand,
    user: User = Depends(get_current_user),
    svc: TopicService = Depends(get_topic_service),
) -> TopicResponse:
    return await svc.create_topic(user.id, body)


@router.post("/generate", response_model=GenerateTopicsResponse, status_code=201)
async def generate_topics(
    body: GenerateTopicsCommand,
    user: User = Depends(get_current_user),
    svc: TopicService = Depends(get_topic_service),
    ai_client: OpenRouterClient = Depends(get_ai_client),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> GenerateTopicsResponse:
    """Generate topics with AI. Limited per user (5 per hour by default)."""
    await limiter.check(str(user.id))
    topics = await svc.generate_topics(user.id, body, ai_client)
    return GenerateTopicsResponse(data=topics, count=len(topics))


@router.get("/{topic_id}", response_model=TopicResponse)
async def get_topic(
    topic_id: uuid.UUID,
    user: User = Depends(get_current_user),
    svc: TopicService = Depends(get_topic_service),
) -> TopicResponse:
    return await svc.get_topic(user.id, topic_id)


@router.patch("/{topic_id}", response_model=TopicResponse)
async def update_topic(
    topic_id: uuid.UUID,
    body: UpdateTopicCommand,
    user: User = Depends(get_current_user),
    svc: TopicService = Depends(get_topic_service),
) -> TopicResponse:
    """Partially update a topic. Unknown fields are rejected."""
    return await svc.update_topic(user.id, topic_id, body)


@router.delete("/{topic_id}", status_code=204)
async def delete_topic(
    topic_id: uuid.UUID,
    user: User = Depends(get_current_user),
    svc: TopicService = Depends(get_topic_service),
) -> Response:
    """Delete a topic and all of its descendants."""
    await svc.delete_topic(user.id, topic_id)
    return Response(status_code=204)


@router.get("/{topic_id}/children", response_model=TopicChildrenResponse)
async def get_children(
    topic_id: uuid.UUID,
    user: User = Depends(get_current_user),
    svc: TopicService = Depends(get_topic_service),
) -> TopicChildrenResponse:
    """Direct children of a topic, oldest first."""
    return await svc.get_children(user.id, topic_id)
