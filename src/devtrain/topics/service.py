"""Topic service: hierarchical topic CRUD and AI-backed generation.

Every statement is scoped by ``user_id``. A topic that exists but belongs
to someone else is reported exactly like a missing one.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import Select, asc, delete, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import aliased

from devtrain.ai.prompts import GenerationContext, ParentTopic
from devtrain.db.models import Profile, Topic, TopicStatus
from devtrain.errors import InternalError, NotFoundError
from devtrain.topics.schemas import (
    CreateTopicCommand,
    GenerateTopicsCommand,
    ListTopicsQuery,
    PaginationInfo,
    TopicChildrenResponse,
    TopicListItem,
    TopicListResponse,
    TopicResponse,
    UpdateTopicCommand,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from devtrain.ai.client import OpenRouterClient

logger = structlog.get_logger()

_SORT_COLUMNS = {
    "created_at": Topic.created_at,
    "updated_at": Topic.updated_at,
    "title": Topic.title,
    "status": Topic.status,
}


def _children_count() -> Any:  # noqa: ANN401
    child = aliased(Topic)
    return (
        select(func.count(child.id))
        .where(child.parent_id == Topic.id)
        .correlate(Topic)
        .scalar_subquery()
        .label("children_count")
    )


def _list_item(topic: Topic, children_count: int) -> TopicListItem:
    return TopicListItem.model_validate(topic).model_copy(update={"children_count": children_count})


class TopicService:
    """Topic CRUD, children listing and AI generation for one request session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # --- Queries ---

    async def _get_owned(self, user_id: uuid.UUID, topic_id: uuid.UUID) -> Topic | None:
        try:
            result = await self.db.execute(
                select(Topic).where(Topic.id == topic_id, Topic.user_id == user_id)
            )
        except SQLAlchemyError as e:
            logger.error("topic_lookup_failed", topic_id=str(topic_id), error=str(e))
            raise InternalError("Failed to retrieve topic") from e
        return result.scalar_one_or_none()

    async def _commit(self, failure_message: str, **log_fields: object) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("topic_write_failed", error=str(e), **log_fields)
            raise InternalError(failure_message) from e

    async def list_topics(self, user_id: uuid.UUID, query: ListTopicsQuery) -> TopicListResponse:
        """Filter, sort and page the caller's topics."""
        filters = [Topic.user_id == user_id]
        if query.status is not None:
            filters.append(Topic.status == query.status)
        if query.technology is not None:
            filters.append(Topic.technology == query.technology)
        if query.parent_id == "null":
            filters.append(Topic.parent_id.is_(None))
        elif query.parent_id is not None:
            filters.append(Topic.parent_id == query.parent_id)

        direction = asc if query.order == "asc" else desc
        stmt: Select[Any] = (
            select(Topic, _children_count())
            .where(*filters)
            .order_by(direction(_SORT_COLUMNS[query.sort]), direction(Topic.id))
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )

        try:
            total = (await self.db.execute(select(func.count()).select_from(Topic).where(*filters))).scalar_one()
            rows = (await self.db.execute(stmt)).all()
        except SQLAlchemyError as e:
            logger.error("topic_list_failed", user_id=str(user_id), error=str(e))
            raise InternalError("Failed to retrieve topics") from e

        return TopicListResponse(
            data=[_list_item(topic, count) for topic, count in rows],
            pagination=PaginationInfo(
                page=query.page,
                limit=query.limit,
                total=total,
                total_pages=math.ceil(total / query.limit),
            ),
        )

    async def get_topic(self, user_id: uuid.UUID, topic_id: uuid.UUID) -> TopicResponse:
        topic = await self._get_owned(user_id, topic_id)
        if topic is None:
            raise NotFoundError("Topic not found")
        return TopicResponse.model_validate(topic)

    async def get_children(self, user_id: uuid.UUID, topic_id: uuid.UUID) -> TopicChildrenResponse:
        """Direct children of an owned topic, oldest first."""
        if await self._get_owned(user_id, topic_id) is None:
            raise NotFoundError("Topic not found")

        try:
            rows = (
                await self.db.execute(
                    select(Topic, _children_count())
                    .where(Topic.user_id == user_id, Topic.parent_id == topic_id)
                    .order_by(Topic.created_at.asc(), Topic.id.asc())
                )
            ).all()
        except SQLAlchemyError as e:
            logger.error("topic_children_failed", topic_id=str(topic_id), error=str(e))
            raise InternalError("Failed to retrieve child topics") from e

        return TopicChildrenResponse(data=[_list_item(topic, count) for topic, count in rows])

    # --- Commands ---

    async def create_topic(self, user_id: uuid.UUID, command: CreateTopicCommand) -> TopicResponse:
        if command.parent_id is not None and await self._get_owned(user_id, command.parent_id) is None:
            raise NotFoundError("Parent topic not found or does not belong to user")

        now = datetime.now(timezone.utc)
        topic = Topic(
            user_id=user_id,
            parent_id=command.parent_id,
            title=command.title,
            description=command.description,
            status=command.status,
            technology=command.technology,
            leetcode_links=[link.to_json() for link in command.leetcode_links],
            created_at=now,
            updated_at=now,
        )
        self.db.add(topic)
        await self._commit("Failed to create topic", user_id=str(user_id))

        logger.info("topic_created", topic_id=str(topic.id), user_id=str(user_id))
        return TopicResponse.model_validate(topic)

    async def update_topic(
        self,
        user_id: uuid.UUID,
        topic_id: uuid.UUID,
        command: UpdateTopicCommand,
    ) -> TopicResponse:
        """Write only the sent fields in a single ownership-scoped UPDATE."""
        values = command.to_values()
        values["updated_at"] = datetime.now(timezone.utc)

        stmt = (
            update(Topic)
            .where(Topic.id == topic_id, Topic.user_id == user_id)
            .values(**values)
            .returning(Topic)
            .execution_options(populate_existing=True)
        )
        try:
            topic = (await self.db.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("topic_update_failed", topic_id=str(topic_id), error=str(e))
            raise InternalError("Failed to update topic") from e

        if topic is None:
            raise NotFoundError("Topic not found")

        response = TopicResponse.model_validate(topic)
        await self._commit("Failed to update topic", topic_id=str(topic_id))
        logger.info("topic_updated", topic_id=str(topic_id), fields=sorted(command.model_fields_set))
        return response

    async def delete_topic(self, user_id: uuid.UUID, topic_id: uuid.UUID) -> None:
        """Delete an owned topic. Descendants go with it through the foreign key."""
        try:
            result = await self.db.execute(
                delete(Topic)
                .where(Topic.id == topic_id, Topic.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("topic_delete_failed", topic_id=str(topic_id), error=str(e))
            raise InternalError("Failed to delete topic") from e

        if result.rowcount == 0:
            raise NotFoundError("Topic not found")

        await self._commit("Failed to delete topic", topic_id=str(topic_id))
        logger.info("topic_deleted", topic_id=str(topic_id), user_id=str(user_id))

    async def generate_topics(
        self,
        user_id: uuid.UUID,
        command: GenerateTopicsCommand,
        ai_client: OpenRouterClient,
    ) -> list[TopicResponse]:
        """
        Generate topics with the AI client and store them under the caller.

        The profile supplies experience level and years away. With
        ``parent_id`` the new topics become children of that topic.
        """
        profile = await self.db.get(Profile, user_id)
        if profile is None:
            raise NotFoundError("Profile not found")

        parent: ParentTopic | None = None
        if command.parent_id is not None:
            parent_topic = await self._get_owned(user_id, command.parent_id)
            if parent_topic is None:
                raise NotFoundError("Parent topic not found or does not belong to user")
            parent = ParentTopic(
                id=parent_topic.id,
                title=parent_topic.title,
                description=parent_topic.description,
            )

        context = GenerationContext(
            technology=command.technology,
            experience_level=profile.experience_level,
            years_away=profile.years_away,
            parent=parent,
        )
        generated = await ai_client.generate_topics(context)

        now = datetime.now(timezone.utc)
        topics = [
            Topic(
                user_id=user_id,
                parent_id=command.parent_id,
                title=item.title,
                description=item.description,
                status=TopicStatus.TO_DO,
                technology=command.technology,
                leetcode_links=[link.to_json() for link in item.leetcode_links],
                created_at=now,
                updated_at=now,
            )
            for item in generated
        ]
        self.db.add_all(topics)
        await self._commit("Failed to save generated topics", user_id=str(user_id))

        logger.info(
            "topics_generated",
            user_id=str(user_id),
            technology=command.technology,
            parent_id=str(command.parent_id) if command.parent_id else None,
            count=len(topics),
        )
        return [TopicResponse.model_validate(topic) for topic in topics]
