"""Pydantic schemas for topic endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from devtrain.ai.schemas import Difficulty, LeetCodeLink
from devtrain.db.models import TopicStatus

TECHNOLOGY_PATTERN = r"^[a-zA-Z0-9\s.\-_]+$"

MAX_PAGE = 1_000_000

TopicSort = Literal["created_at", "updated_at", "title", "status"]
SortOrder = Literal["asc", "desc"]


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class LeetCodeLinkResponse(BaseModel):
    title: str
    url: str
    difficulty: Difficulty


class TopicResponse(BaseModel):
    """A single topic as stored."""

    id: uuid.UUID
    user_id: uuid.UUID
    parent_id: uuid.UUID | None
    title: str
    description: str | None
    status: TopicStatus
    technology: str
    leetcode_links: list[LeetCodeLinkResponse]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TopicListItem(TopicResponse):
    """Topic plus the number of its direct children."""

    children_count: int = 0


class PaginationInfo(BaseModel):
    """Offset pagination metadata."""

    page: int
    limit: int
    total: int
    total_pages: int


class TopicListResponse(BaseModel):
    """Response for GET /api/topics."""

    data: list[TopicListItem]
    pagination: PaginationInfo


class TopicChildrenResponse(BaseModel):
    """Response for GET /api/topics/{id}/children."""

    data: list[TopicListItem]


class GenerateTopicsResponse(BaseModel):
    """Response for POST /api/topics/generate."""

    data: list[TopicResponse]
    count: int


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class ListTopicsQuery(BaseModel):
    """Validated filters, sort and page for GET /api/topics.

    ``parent_id="null"`` selects root topics only.
    """

    status: TopicStatus | None = None
    technology: str | None = None
    parent_id: uuid.UUID | Literal["null"] | None = None
    sort: TopicSort = "created_at"
    order: SortOrder = "desc"
    page: int = Field(1, ge=1, le=MAX_PAGE)
    limit: int = Field(50, ge=1, le=100)


class CreateTopicCommand(BaseModel):
    parent_id: uuid.UUID | None = None
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    status: TopicStatus = TopicStatus.TO_DO
    technology: str = Field(..., min_length=1, max_length=100, pattern=TECHNOLOGY_PATTERN)
    leetcode_links: list[LeetCodeLink] = Field(default_factory=list, max_length=5)


class UpdateTopicCommand(BaseModel):
    """Partial update. Only the fields present in the body are written."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)
    status: TopicStatus | None = None
    technology: str | None = Field(None, min_length=1, max_length=100, pattern=TECHNOLOGY_PATTERN)
    leetcode_links: list[LeetCodeLink] | None = Field(None, max_length=5)

    @model_validator(mode="after")
    def check_fields(self) -> UpdateTopicCommand:
        if not self.model_fields_set:
            msg = "At least one field must be provided for update"
            raise ValueError(msg)
        # description is the only nullable column
        for name in self.model_fields_set - {"description"}:
            if getattr(self, name) is None:
                msg = f"{name} must not be null"
                raise ValueError(msg)
        return self

    def to_values(self) -> dict[str, object]:
        """Column values for the fields that were sent."""
        values = self.model_dump(include=self.model_fields_set, exclude={"leetcode_links"})
        if "leetcode_links" in self.model_fields_set and self.leetcode_links is not None:
            values["leetcode_links"] = [link.to_json() for link in self.leetcode_links]
        return values


class GenerateTopicsCommand(BaseModel):
    technology: str = Field(..., min_length=1, max_length=100, pattern=TECHNOLOGY_PATTERN)
    parent_id: uuid.UUID | None = None
