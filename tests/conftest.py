"""
Shared fixtures for LifelongLearners backend integration tests.

The app engine is pointed at a throwaway SQLite file (through aiosqlite)
unless TEST_DATABASE_URL names another database.  Each test function gets
its own session; tables are created before and emptied after every test.
The LLM key is blanked so the Tortoise answers from its templates.
"""
from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest_asyncio
from fastapi import HTTPException
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# Override settings *before* any app module is imported, so that
# settings.DATABASE_URL and the global engine point at the test DB.
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///" + os.path.join(tempfile.gettempdir(), "lifelong_learners_test.db"),
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["OPENAI_API_KEY"] = ""
os.environ["ENVIRONMENT"] = "test"

from app.database import AsyncSessionLocal, Base, engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.database_models import (  # noqa: E402
    AIConversation,
    Book,
    BookFormat,
    Challenge,
    ChallengeStatus,
    ChallengeType,
    DifficultyLevel,
    User,
    UserChallenge,
    UserRole,
    Visibility,
)


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test. After the test, every table is
    emptied so each test starts with a clean slate.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # Children first
    async with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB dependency
    overridden to use the per-test session.  Each request commits, so rows
    written through the API are visible to sessions the app opens itself.
    """

    async def _override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except HTTPException:
            # Error responses leave the shared session (and the test's objects) intact
            raise
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

LEARNER_ID = "learner-1"
CREATOR_ID = "creator-1"

AUTH_HEADERS = {"X-User-Id": LEARNER_ID}
CREATOR_HEADERS = {"X-User-Id": CREATOR_ID}


def days_ago(days: float) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


async def make_user(
    db: AsyncSession,
    user_id: str = LEARNER_ID,
    role: UserRole = UserRole.LEARNER,
    **fields,
) -> User:
    user = User(
        id=user_id,
        name=fields.pop("name", "Ada Lovelace"),
        email=fields.pop("email", f"{user_id}@example.com"),
        role=role,
        **fields,
    )
    db.add(user)
    await db.commit()
    return user


async def make_book(db: AsyncSession, title: str, author: str = "Unknown", **fields) -> Book:
    book = Book(
        title=title,
        author=author,
        description=fields.pop("description", None),
        tags=fields.pop("tags", []),
        language=fields.pop("language", "english"),
        format=fields.pop("format", BookFormat.PDF),
        **fields,
    )
    db.add(book)
    await db.commit()
    return book


async def make_challenge(
    db: AsyncSession,
    title: str,
    created_by: str = CREATOR_ID,
    **fields,
) -> Challenge:
    challenge = Challenge(
        title=title,
        description=fields.pop("description", None),
        type=fields.pop("type", ChallengeType.READING),
        created_by=created_by,
        visibility=fields.pop("visibility", Visibility.PUBLIC),
        tags=fields.pop("tags", []),
        difficulty_level=fields.pop("difficulty_level", DifficultyLevel.BEGINNER),
        status=fields.pop("status", ChallengeStatus.ACTIVE),
        **fields,
    )
    db.add(challenge)
    await db.commit()
    return challenge


async def join(db: AsyncSession, user_id: str, challenge_id: str) -> UserChallenge:
    membership = UserChallenge(user_id=user_id, challenge_id=challenge_id, progress={})
    db.add(membership)
    await db.commit()
    return membership


async def make_conversation(
    db: AsyncSession,
    user_id: Optional[str],
    intent: str = "general",
    created_at: Optional[datetime] = None,
    rating: Optional[int] = None,
    **fields,
) -> AIConversation:
    conversation = AIConversation(
        user_id=user_id,
        message=fields.pop("message", "hello"),
        intent=intent,
        ai_response=fields.pop("ai_response", "Hi!"),
        satisfaction_rating=rating,
        **fields,
    )
    if created_at is not None:
        conversation.created_at = created_at
    db.add(conversation)
    await db.commit()
    return conversation
