"""Tests for /api/users profile, activity and insights endpoints."""
import pytest
from httpx import AsyncClient

from tests.conftest import LEARNER_ID, days_ago, make_conversation, make_user


@pytest.mark.asyncio
async def test_register_and_fetch_user(client: AsyncClient):
    resp = await client.post(
        "/api/users",
        json={"id": "auth-123", "name": "Tsion Bekele", "email": "tsion@example.com", "role": "creator"},
    )
    assert resp.status_code == 201
    created = resp.json()
    assert created["id"] == "auth-123"
    assert created["role"] == "creator"
    assert created["learning_interests"] == []
    assert created["language_preference"] == "english"

    resp = await client.get("/api/users/auth-123")
    assert resp.status_code == 200
    assert resp.json()["email"] == "tsion@example.com"


@pytest.mark.asyncio
async def test_register_duplicate_email_is_409(client: AsyncClient, db_session):
    await make_user(db_session, LEARNER_ID, email="dup@example.com")
    resp = await client.post("/api/users", json={"name": "Other", "email": "dup@example.com"})
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_get_missing_user_is_404(client: AsyncClient):
    resp = await client.get("/api/users/nobody")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "User not found"


@pytest.mark.asyncio
async def test_update_preferences_resets_omitted_fields(client: AsyncClient, db_session):
    await make_user(
        db_session,
        LEARNER_ID,
        learning_interests=["python"],
        language_preference="amharic",
    )

    resp = await client.post(
        f"/api/users/{LEARNER_ID}/preferences",
        json={"preferences": {"difficulty_level": "beginner"}},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["preferences"] == {"difficulty_level": "beginner"}
    assert data["learning_interests"] == []
    assert data["language_preference"] == "english"


@pytest.mark.asyncio
async def test_log_interaction(client: AsyncClient, db_session):
    await make_user(db_session, LEARNER_ID)
    resp = await client.post(
        f"/api/users/{LEARNER_ID}/interactions",
        json={
            "interaction_type": "view",
            "entity_type": "book",
            "entity_id": "book-1",
            "metadata": {"tags": ["python"]},
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["interaction_id"]


@pytest.mark.asyncio
async def test_log_interaction_for_unknown_user_is_404(client: AsyncClient):
    resp = await client.post(
        "/api/users/nobody/interactions",
        json={"interaction_type": "view", "entity_type": "book"},
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_conversations_newest_first_with_limit(client: AsyncClient, db_session):
    await make_user(db_session, LEARNER_ID)
    for i in range(3):
        await make_conversation(db_session, LEARNER_ID, message=f"msg {i}", created_at=days_ago(3 - i))

    resp = await client.get(f"/api/users/{LEARNER_ID}/conversations", params={"limit": 2})
    assert resp.status_code == 200
    assert [c["message"] for c in resp.json()] == ["msg 2", "msg 1"]


@pytest.mark.asyncio
async def test_insights_for_new_user(client: AsyncClient, db_session):
    await make_user(db_session, LEARNER_ID)
    resp = await client.get(f"/api/users/{LEARNER_ID}/insights")
    assert resp.status_code == 200
    assert resp.json() == {
        "most_discussed_topics": [],
        "learning_frequency": "new_user",
        "preferred_challenge_types": [],
        "satisfaction_trend": "insufficient_data",
    }
