"""Tests for authentication boundaries.

Verifies that caller-scoped endpoints require X-User-Id and that only
registered creators can publish books and challenges.
"""
import pytest
from httpx import AsyncClient

from app.models.database_models import UserRole
from tests.conftest import AUTH_HEADERS, CREATOR_HEADERS, CREATOR_ID, LEARNER_ID, make_user

BOOK = {"title": "Clean Code", "author": "Robert C. Martin", "tags": ["programming"]}


@pytest.mark.asyncio
async def test_joined_challenges_requires_auth_header(client: AsyncClient):
    """GET /api/challenges/joined without X-User-Id should return 401."""
    resp = await client.get("/api/challenges/joined")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_book_requires_auth_header(client: AsyncClient):
    resp = await client.post("/api/books", json=BOOK)
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_learner_cannot_create_book(client: AsyncClient, db_session):
    await make_user(db_session, LEARNER_ID)

    resp = await client.post("/api/books", json=BOOK, headers=AUTH_HEADERS)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_unregistered_user_cannot_create_challenge(client: AsyncClient):
    """A header for a user without a profile is not enough."""
    resp = await client.post(
        "/api/challenges",
        json={"title": "30 days of Python", "type": "coding"},
        headers={"X-User-Id": "ghost"},
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_creator_can_create_book(client: AsyncClient, db_session):
    await make_user(db_session, CREATOR_ID, role=UserRole.CREATOR)

    resp = await client.post("/api/books", json=BOOK, headers=CREATOR_HEADERS)
    assert resp.status_code == 201
    assert resp.json()["created_by"] == CREATOR_ID


@pytest.mark.asyncio
async def test_join_requires_registered_user(client: AsyncClient, db_session):
    resp = await client.post("/api/challenges/anything/join", headers={"X-User-Id": "ghost"})
    assert resp.status_code == 404
