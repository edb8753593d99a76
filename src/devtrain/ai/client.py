"""OpenRouter chat-completions client for topic generation.

One request per call, no retries. Upstream failures are translated into
typed application errors:

* 429 and 5xx from OpenRouter, timeouts and network errors become
  ``ServiceUnavailableError`` (503).
* A missing API key, other non-2xx responses and malformed output become
  ``InternalError`` (500).
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog

from devtrain.ai.prompts import GenerationContext, build_system_prompt, build_user_prompt
from devtrain.ai.schemas import AIGeneratedTopic, validate_generated_topics
from devtrain.config import Settings, get_settings
from devtrain.errors import InternalError, ServiceUnavailableError

logger = structlog.get_logger()


class OpenRouterClient:
    """Generates learning topics through OpenRouter."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self._transport = transport

    def _request_body(self, context: GenerationContext) -> dict[str, Any]:
        return {
            "model": self.settings.openrouter_model,
            "messages": [
                {"role": "system", "content": build_system_prompt(context)},
                {"role": "user", "content": build_user_prompt(context)},
            ],
            "response_format": {"type": "json_object"},
            "max_tokens": self.settings.ai_max_tokens,
            "temperature": self.settings.ai_temperature,
        }

    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.settings.openrouter_api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.settings.openrouter_referer,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.settings.openrouter_base_url,
                timeout=self.settings.ai_generation_timeout_seconds,
                transport=self._transport,
            ) as client:
                return await client.post("/chat/completions", headers=headers, json=body)
        except httpx.TimeoutException as e:
            logger.warning("ai_request_timed_out", timeout=self.settings.ai_generation_timeout_seconds)
            raise ServiceUnavailableError("AI service request timed out. Please try again.") from e
        except httpx.HTTPError as e:
            logger.error("ai_request_failed", error=str(e))
            raise ServiceUnavailableError(
                "AI service is temporarily unavailable. Please try again later."
            ) from e

    async def generate_topics(self, context: GenerationContext) -> list[AIGeneratedTopic]:
        """
        Ask the model for topics matching ``context`` and validate the reply.

        Raises:
            InternalError: Not configured, rejected request, or unusable output.
            ServiceUnavailableError: Upstream overloaded, down, or unreachable.
        """
        if not self.settings.openrouter_api_key:
            logger.error("ai_not_configured")
            raise InternalError("AI service not configured")

        response = await self._post(self._request_body(context))

        if response.status_code == 429:
            logger.warning("ai_upstream_rate_limited")
            raise ServiceUnavailableError("AI service rate limit exceeded. Please try again later.")
        if response.status_code >= 500:
            logger.warning("ai_upstream_unavailable", status=response.status_code)
            raise ServiceUnavailableError("AI service is temporarily unavailable. Please try again later.")
        if not response.is_success:
            logger.error("ai_request_rejected", status=response.status_code)
            raise InternalError("AI service request failed")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            content = None
        if not content:
            logger.error("ai_response_missing_content")
            raise InternalError("AI service returned invalid response")

        try:
            parsed = json.loads(content)
        except (TypeError, ValueError) as e:
            logger.error("ai_response_invalid_json", content=str(content)[:500])
            raise InternalError("AI service returned invalid JSON") from e

        payload = parsed.get("topics", parsed) if isinstance(parsed, dict) else parsed
        topics = validate_generated_topics(payload)
        logger.info("ai_topics_received", count=len(topics), technology=context.technology)
        return topics


def get_ai_client() -> OpenRouterClient:
    """FastAPI dependency. Tests override it with a fake client."""
    return OpenRouterClient(get_settings())
