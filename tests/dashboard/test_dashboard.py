"""Dashboard stats endpoint tests."""

from httpx import AsyncClient

from conftest import create_topic


async def test_requires_profile(authed_client: AsyncClient):
    response = await authed_client.get("/api/dashboard/stats")
    assert response.status_code == 404


async def test_empty_dashboard(profiled_client: AsyncClient):
    response = await profiled_client.get("/api/dashboard/stats")
    assert response.status_code == 200
    assert response.json() == {
        "profile": {"experience_level": "intermediate", "years_away": 3, "activity_streak": 0},
        "topics": {"total": 0, "to_do": 0, "in_progress": 0, "completed": 0},
        "technologies": [],
        "recent_activity": [],
    }


async def test_counts_and_technologies(profiled_client: AsyncClient):
    await create_topic(profiled_client, title="A", technology="Python", status="completed")
    await create_topic(profiled_client, title="B", technology="Python", status="in_progress")
    await create_topic(profiled_client, title="C", technology="Go")
    await create_topic(profiled_client, title="D", technology="Go", status="completed")
    await create_topic(profiled_client, title="E", technology="Elixir")

    data = (await profiled_client.get("/api/dashboard/stats")).json()
    assert data["topics"] == {"total": 5, "to_do": 2, "in_progress": 1, "completed": 2}
    assert data["technologies"] == [
        {"name": "Elixir", "total": 1, "completed": 0},
        {"name": "Go", "total": 2, "completed": 1},
        {"name": "Python", "total": 2, "completed": 1},
    ]


async def test_recent_activity_actions(profiled_client: AsyncClient):
    created = await create_topic(profiled_client, title="Created")
    updated = await create_topic(profiled_client, title="Updated")
    completed = await create_topic(profiled_client, title="Completed")

    await profiled_client.patch(f"/api/topics/{updated['id']}", json={"description": "Edited"})
    await profiled_client.patch(f"/api/topics/{completed['id']}", json={"status": "completed"})

    activity = (await profiled_client.get("/api/dashboard/stats")).json()["recent_activity"]
    assert [(a["topic_title"], a["action"]) for a in activity] == [
        ("Completed", "completed"),
        ("Updated", "updated"),
        ("Created", "created"),
    ]
    assert activity[2]["topic_id"] == created["id"]


async def test_recent_activity_limited_to_ten(profiled_client: AsyncClient):
    for i in range(12):
        await create_topic(profiled_client, title=f"Topic {i}")

    activity = (await profiled_client.get("/api/dashboard/stats")).json()["recent_activity"]
    assert len(activity) == 10
    assert activity[0]["topic_title"] == "Topic 11"


async def test_only_own_topics_counted(profiled_client: AsyncClient, second_client: AsyncClient):
    await create_topic(second_client, title="Not mine")
    data = (await profiled_client.get("/api/dashboard/stats")).json()
    assert data["topics"]["total"] == 0
