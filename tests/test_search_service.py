"""Tests for fuzzy search and history-based recommendations."""
import pytest

from app.models.database_models import ChallengeStatus, DifficultyLevel, UserInteraction
from app.services import search_service
from app.services.search_service import (
    BOOK_KEYS,
    extract_interests_from_history,
    fuzzy_rank,
    fuzzy_score,
)
from tests.conftest import CREATOR_ID, LEARNER_ID, days_ago, make_book, make_challenge, make_conversation, make_user

PYTHON_BOOK = {
    "title": "Python Crash Course",
    "author": "Eric Matthes",
    "description": "A hands-on introduction to programming with Python",
    "tags": ["python", "programming"],
}
NOVEL = {
    "title": "Pride and Prejudice",
    "author": "Jane Austen",
    "description": "A romance of manners",
    "tags": ["classic"],
}


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

def test_exact_title_scores_near_zero():
    assert fuzzy_score("Python Crash Course", PYTHON_BOOK, BOOK_KEYS) < 0.2


def test_item_without_searchable_text_scores_one():
    assert fuzzy_score("python", {"title": "", "tags": []}, BOOK_KEYS) == 1.0


def test_rank_puts_best_match_first():
    ranked = fuzzy_rank("python programming", [NOVEL, PYTHON_BOOK], BOOK_KEYS, threshold=1.0)
    assert ranked[0]["title"] == "Python Crash Course"
    assert ranked[0]["score"] <= ranked[-1]["score"]


def test_rank_threshold_zero_drops_everything_imperfect():
    assert fuzzy_rank("quantum chromodynamics", [NOVEL], BOOK_KEYS, threshold=0.0) == []


def test_extract_interests_from_history():
    interactions = [
        {"metadata": {"tags": ["python", "web"]}},
        {"metadata": {}},
        {"metadata": None},
    ]
    conversations = [
        {"recommendations_given": [{"title": "x", "tags": ["web", "design"]}, "junk"]},
        {"recommendations_given": None},
    ]
    assert extract_interests_from_history(interactions, conversations) == ["python", "web", "design"]


# ---------------------------------------------------------------------------
# Database-backed search
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_search_books_ranks_and_limits(db_session):
    await make_book(db_session, **PYTHON_BOOK)
    await make_book(db_session, **NOVEL)
    for i in range(4):
        await make_book(db_session, f"Python Tricks volume {i}", "Dan Bader", tags=["python"])

    results = await search_service.search_books(db_session, "python crash course")
    assert 1 <= len(results) <= 3
    assert results[0]["title"] == "Python Crash Course"
    assert "score" in results[0]


@pytest.mark.asyncio
async def test_search_books_empty_query_returns_newest_five(db_session):
    for i in range(7):
        await make_book(db_session, f"Book {i}", created_at=days_ago(10 - i))

    results = await search_service.search_books(db_session, "   ")
    assert [b["title"] for b in results] == ["Book 6", "Book 5", "Book 4", "Book 3", "Book 2"]


@pytest.mark.asyncio
async def test_search_books_respects_language_preference(db_session):
    await make_book(db_session, "Python for Beginners", language="english", tags=["python"])
    await make_book(db_session, "Python for Beginners", language="amharic", tags=["python"])

    results = await search_service.search_books(
        db_session, "python beginners", {"language_preference": "amharic"}
    )
    assert results and all(b["language"] == "amharic" for b in results)

    everything = await search_service.search_books(
        db_session, "python beginners", {"language_preference": "any"}
    )
    assert len(everything) == 2


@pytest.mark.asyncio
async def test_search_challenges_only_open_ones(db_session):
    await make_user(db_session, CREATOR_ID)
    await make_challenge(db_session, "Python sprint", status=ChallengeStatus.ACTIVE)
    await make_challenge(db_session, "Python marathon", status=ChallengeStatus.UPCOMING)
    await make_challenge(db_session, "Python retro", status=ChallengeStatus.COMPLETED)

    results = await search_service.search_challenges(db_session, "")
    titles = {c["title"] for c in results}
    assert titles == {"Python sprint", "Python marathon"}


@pytest.mark.asyncio
async def test_search_books_respects_difficulty_preference(db_session):
    await make_book(db_session, "Python for Beginners", difficulty_level="beginner", tags=["python"])
    await make_book(db_session, "Python for Beginners", difficulty_level="advanced", tags=["python"])

    results = await search_service.search_books(
        db_session, "python beginners", {"difficulty_level": "beginner"}
    )
    assert [b["difficulty_level"] for b in results] == ["beginner"]

    unfiltered = await search_service.search_books(db_session, "python beginners", {})
    assert len(unfiltered) == 2


@pytest.mark.asyncio
async def test_search_challenges_respects_difficulty_preference(db_session):
    await make_user(db_session, CREATOR_ID)
    await make_challenge(db_session, "Python sprint", difficulty_level=DifficultyLevel.BEGINNER)
    await make_challenge(db_session, "Python sprint", difficulty_level=DifficultyLevel.ADVANCED)

    results = await search_service.search_challenges(
        db_session, "python sprint", {"difficulty_level": "advanced"}
    )
    assert [c["difficulty_level"] for c in results] == ["advanced"]


@pytest.mark.asyncio
async def test_browse_books_filters_and_lists_newest_first(db_session):
    await make_book(db_session, "Old", difficulty_level="beginner", created_at=days_ago(3))
    await make_book(db_session, "New", difficulty_level="beginner", created_at=days_ago(1))
    await make_book(db_session, "Hard", difficulty_level="advanced", created_at=days_ago(2))

    books = await search_service.browse_books(db_session, difficulty="beginner")
    assert [b["title"] for b in books] == ["New", "Old"]

    books = await search_service.browse_books(db_session, difficulty="all", limit=2)
    assert [b["title"] for b in books] == ["New", "Hard"]


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_recommendations_from_interaction_and_conversation_tags(db_session):
    await make_user(db_session, LEARNER_ID)
    await make_user(db_session, CREATOR_ID)
    await make_book(db_session, "Fluent Python", tags=["python"])
    await make_book(db_session, "Design of Everyday Things", tags=["design"])
    await make_book(db_session, "Cooking basics", tags=["cooking"])
    await make_challenge(db_session, "Design week", tags=["design"])
    await make_challenge(db_session, "Old design jam", tags=["design"], status=ChallengeStatus.COMPLETED)

    db_session.add(
        UserInteraction(
            user_id=LEARNER_ID,
            interaction_type="view",
            entity_type="book",
            metadata_json={"tags": ["python"]},
        )
    )
    await db_session.commit()
    await make_conversation(
        db_session, LEARNER_ID, recommendations_given=[{"title": "x", "tags": ["design"]}]
    )

    result = await search_service.get_recommendations_based_on_history(db_session, LEARNER_ID)

    assert result["interests"] == ["python", "design"]
    assert {b["title"] for b in result["books"]} == {"Fluent Python", "Design of Everyday Things"}
    assert [c["title"] for c in result["challenges"]] == ["Design week"]


@pytest.mark.asyncio
async def test_recommendations_for_user_without_history(db_session):
    result = await search_service.get_recommendations_based_on_history(db_session, "nobody")
    assert result == {"books": [], "challenges": [], "interests": []}
