"""Shared test fixtures.

Every test gets a fresh in-memory SQLite database and a fresh in-memory
rate limiter. The AI client is replaced with ``FakeAIClient`` wherever a
test needs generation.
"""

from __future__ import annotations

import os

os.environ["DEVTRAIN_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEVTRAIN_REDIS_URL"] = ""
os.environ["DEVTRAIN_RATE_LIMIT_BACKEND"] = "memory"
os.environ["DEVTRAIN_JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["DEVTRAIN_OPENROUTER_API_KEY"] = ""
os.environ["DEVTRAIN_LOG_FORMAT"] = "console"

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from devtrain.ai.client import get_ai_client  # noqa: E402
from devtrain.ai.prompts import GenerationContext  # noqa: E402
from devtrain.ai.schemas import AIGeneratedTopic  # noqa: E402
from devtrain.config import get_settings  # noqa: E402
from devtrain.database import close_db, get_engine, init_db  # noqa: E402
from devtrain.db import models  # noqa: E402, F401
from devtrain.db.base import Base  # noqa: E402
from devtrain.errors import AppError  # noqa: E402
from devtrain.main import create_app  # noqa: E402
from devtrain.ratelimit import init_rate_limiter, reset_rate_limiter  # noqa: E402

get_settings.cache_clear()

DEFAULT_PASSWORD = "secret123"


class FakeAIClient:
    """Stands in for OpenRouterClient. Records every context it was asked for."""

    def __init__(self) -> None:
        self.calls: list[GenerationContext] = []
        self.error: AppError | None = None
        self.topics = [
            AIGeneratedTopic.model_validate(
                {
                    "title": "Closures and scope",
                    "description": "How functions capture variables from enclosing scopes.",
                    "leetcode_links": [
                        {
                            "title": "Two Sum",
                            "url": "https://leetcode.com/problems/two-sum/",
                            "difficulty": "Easy",
                        }
                    ],
                }
            ),
            AIGeneratedTopic.model_validate(
                {
                    "title": "Async and await",
                    "description": "Coroutines, event loops and structured concurrency.",
                    "leetcode_links": [],
                }
            ),
            AIGeneratedTopic.model_validate(
                {
                    "title": "Type hints",
                    "description": "Annotating code and checking it statically.",
                    "leetcode_links": [],
                }
            ),
        ]

    async def generate_topics(self, context: GenerationContext) -> list[AIGeneratedTopic]:
        self.calls.append(context)
        if self.error is not None:
            raise self.error
        return self.topics


@pytest_asyncio.fixture
async def app() -> AsyncGenerator[FastAPI, None]:
    """App wired to a fresh in-memory database and rate limiter."""
    settings = get_settings()
    await init_db(settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    init_rate_limiter(settings)

    application = create_app()
    yield application

    application.dependency_overrides.clear()
    reset_rate_limiter()
    await close_db()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def signup(client: AsyncClient, email: str, password: str = DEFAULT_PASSWORD) -> dict:
    """Register a user and return the token response body."""
    response = await client.post("/api/auth/signup", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient) -> AsyncClient:
    """Client authenticated as alice@example.com."""
    tokens = await signup(client, "alice@example.com")
    client.headers["Authorization"] = f"Bearer {tokens['access_token']}"
    return client


@pytest_asyncio.fixture
async def second_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """A second, independent user (bob@example.com) on the same app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        tokens = await signup(ac, "bob@example.com")
        ac.headers["Authorization"] = f"Bearer {tokens['access_token']}"
        yield ac


@pytest_asyncio.fixture
async def profiled_client(authed_client: AsyncClient) -> AsyncClient:
    """Authenticated client whose user has an intermediate profile, 3 years away."""
    response = await authed_client.post(
        "/api/profile", json={"experience_level": "intermediate", "years_away": 3}
    )
    assert response.status_code == 201, response.text
    return authed_client


@pytest.fixture
def fake_ai(app: FastAPI) -> FakeAIClient:
    """Replace the OpenRouter client with a canned one."""
    fake = FakeAIClient()
    app.dependency_overrides[get_ai_client] = lambda: fake
    return fake


async def create_topic(client: AsyncClient, **fields: object) -> dict:
    """Create a topic through the API and return its body."""
    payload = {"title": "Generators", "technology": "Python", **fields}
    response = await client.post("/api/topics", json=payload)
    assert response.status_code == 201, response.text
    return response.json()
