"""Shapes of AI-generated topics and the validator applied to every response."""

from __future__ import annotations

from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from devtrain.errors import InternalError

logger = structlog.get_logger()

Difficulty = Literal["Easy", "Medium", "Hard"]

MAX_LEETCODE_LINKS = 5
MAX_GENERATED_TOPICS = 10

_http_url = TypeAdapter(HttpUrl)


class LeetCodeLink(BaseModel):
    """A practice problem attached to a topic."""

    title: str = Field(..., min_length=1)
    url: str
    difficulty: Difficulty

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        """Require an http(s) URL but keep the text exactly as given."""
        try:
            _http_url.validate_python(v)
        except PydanticValidationError:
            msg = "LeetCode URL must be a valid http(s) URL"
            raise ValueError(msg) from None
        return v

    def to_json(self) -> dict[str, str]:
        """Plain dict for the JSON column."""
        return {"title": self.title, "url": self.url, "difficulty": self.difficulty}


class AIGeneratedTopic(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    leetcode_links: list[LeetCodeLink] = Field(..., max_length=MAX_LEETCODE_LINKS)


_topics_adapter = TypeAdapter(list[AIGeneratedTopic])


def validate_generated_topics(payload: Any) -> list[AIGeneratedTopic]:  # noqa: ANN401
    """
    Validate the decoded model output.

    Accepts a list of 1-10 topics. Anything else is logged and reported
    as an internal error so nothing partial is persisted.
    """
    try:
        topics = _topics_adapter.validate_python(payload)
    except PydanticValidationError as e:
        logger.error("ai_response_validation_failed", errors=e.errors(include_url=False))
        raise InternalError("AI service returned invalid data structure") from e

    if not 1 <= len(topics) <= MAX_GENERATED_TOPICS:
        logger.error("ai_response_validation_failed", topic_count=len(topics))
        raise InternalError("AI service returned invalid data structure")

    return topics
