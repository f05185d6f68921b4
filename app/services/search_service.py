"""
Fuzzy search and history-based recommendations over books and challenges.

Both tables are small, so rows are loaded and scored in-process with
fuzzywuzzy.  Scores follow the "distance" convention: 0 is a perfect match,
1 is no match.  Per-field distances are combined as a weighted geometric
product, so one strongly matching field is enough to surface an item.

Public API
----------
search_books(db, query, preferences)               -> List[Dict]
search_challenges(db, query, preferences)          -> List[Dict]
get_recommendations_based_on_history(db, user_id)  -> Dict
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from fuzzywuzzy import fuzz
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database_models import (
    AIConversation,
    Book,
    Challenge,
    ChallengeStatus,
    UserInteraction,
    Visibility,
)
from app.utils.helpers import as_list, tags_overlap, unique_preserving_order

logger = logging.getLogger(__name__)

# (field, weight) pairs; weights are normalised when scoring
BOOK_KEYS: Sequence[Tuple[str, float]] = (
    ("title", 0.4),
    ("author", 0.3),
    ("description", 0.2),
    ("tags", 0.1),
)
CHALLENGE_KEYS: Sequence[Tuple[str, float]] = (
    ("title", 0.4),
    ("description", 0.3),
    ("type", 0.2),
    ("tags", 0.1),
)

OPEN_CHALLENGE_STATUSES = (ChallengeStatus.ACTIVE, ChallengeStatus.UPCOMING)

_EPSILON = 1e-3


# ---------------------------------------------------------------------------
# Row serialisers (plain dicts are what the prompts and JSON columns store)
# ---------------------------------------------------------------------------

def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _iso(value: Any) -> Optional[str]:
    return value.isoformat() if value is not None else None


def book_to_dict(book: Book) -> Dict[str, Any]:
    return {
        "id": book.id,
        "title": book.title,
        "author": book.author,
        "description": book.description,
        "tags": as_list(book.tags),
        "language": book.language,
        "format": _enum_value(book.format),
        "difficulty_level": book.difficulty_level,
        "created_by": book.created_by,
        "created_at": _iso(book.created_at),
    }


def challenge_to_dict(challenge: Challenge) -> Dict[str, Any]:
    return {
        "id": challenge.id,
        "title": challenge.title,
        "description": challenge.description,
        "type": _enum_value(challenge.type),
        "created_by": challenge.created_by,
        "start_date": _iso(challenge.start_date),
        "end_date": _iso(challenge.end_date),
        "visibility": _enum_value(challenge.visibility),
        "tags": as_list(challenge.tags),
        "difficulty_level": _enum_value(challenge.difficulty_level),
        "status": _enum_value(challenge.status),
        "created_at": _iso(challenge.created_at),
    }


# ---------------------------------------------------------------------------
# Fuzzy scoring
# ---------------------------------------------------------------------------

def _field_text(item: Dict[str, Any], field: str) -> str:
    value = item.get(field)
    if isinstance(value, list):
        return " ".join(str(v) for v in value)
    return str(value) if value else ""


def fuzzy_score(query: str, item: Dict[str, Any], keys: Sequence[Tuple[str, float]]) -> float:
    """
    Distance between *query* and *item* over the weighted *keys*.

    Empty fields are skipped; an item with no searchable text scores 1.0.
    """
    present = [(f, w) for f, w in keys if _field_text(item, f)]
    if not present:
        return 1.0
    total_weight = sum(w for _, w in present)

    score = 1.0
    for field, weight in present:
        similarity = fuzz.WRatio(query, _field_text(item, field)) / 100.0
        distance = max(1.0 - similarity, _EPSILON)
        score *= distance ** (weight / total_weight)
    return round(score, 4)


def fuzzy_rank(
    query: str,
    items: Iterable[Dict[str, Any]],
    keys: Sequence[Tuple[str, float]],
    threshold: Optional[float] = None,
) -> List[Dict[str, Any]]:
    """Items within *threshold*, best first, each copied with a ``score``."""
    limit = settings.SEARCH_THRESHOLD if threshold is None else threshold
    scored = []
    for item in items:
        score = fuzzy_score(query, item, keys)
        if score <= limit:
            scored.append({**item, "score": score})
    scored.sort(key=lambda i: i["score"])
    return scored


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

async def search_books(
    db: AsyncSession,
    query: Optional[str],
    preferences: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """Fuzzy book search filtered by language and difficulty preferences."""
    preferences = preferences or {}
    try:
        result = await db.execute(select(Book).order_by(Book.created_at.desc()))
        books = [book_to_dict(b) for b in result.scalars().all()]
    except SQLAlchemyError as exc:
        logger.error("Error fetching books: %s", exc)
        return []

    if not query or not query.strip():
        return books[: settings.SEARCH_EMPTY_QUERY_LIMIT]

    matches = fuzzy_rank(query, books, BOOK_KEYS)

    language = preferences.get("language_preference")
    if language and language != "any":
        matches = [b for b in matches if b["language"] == language]

    difficulty = preferences.get("difficulty_level")
    if difficulty:
        matches = [b for b in matches if b["difficulty_level"] == difficulty]

    logger.debug("search_books: query=%r → %d matches", query[:80], len(matches))
    return matches[: settings.SEARCH_RESULT_LIMIT]


async def search_challenges(
    db: AsyncSession,
    query: Optional[str],
    preferences: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """Fuzzy search over active/upcoming challenges, filtered by difficulty."""
    preferences = preferences or {}
    try:
        result = await db.execute(
            select(Challenge)
            .where(Challenge.status.in_(OPEN_CHALLENGE_STATUSES))
            .order_by(Challenge.created_at.desc())
        )
        challenges = [challenge_to_dict(c) for c in result.scalars().all()]
    except SQLAlchemyError as exc:
        logger.error("Error fetching challenges: %s", exc)
        return []

    if not query or not query.strip():
        return challenges[: settings.SEARCH_EMPTY_QUERY_LIMIT]

    matches = fuzzy_rank(query, challenges, CHALLENGE_KEYS)

    difficulty = preferences.get("difficulty_level")
    if difficulty:
        matches = [c for c in matches if c["difficulty_level"] == difficulty]

    logger.debug("search_challenges: query=%r → %d matches", query[:80], len(matches))
    return matches[: settings.SEARCH_RESULT_LIMIT]


def _wanted(value: Optional[str]) -> bool:
    return bool(value) and value != "all"


async def browse_books(
    db: AsyncSession,
    q: Optional[str] = None,
    language: Optional[str] = None,
    difficulty: Optional[str] = None,
    book_format: Optional[str] = None,
    limit: int = 10,
) -> List[Dict[str, Any]]:
    """
    Books for the search page: column filters first, then fuzzy ranking when
    *q* is given, otherwise newest first.  ``"all"`` disables a filter.
    """
    stmt = select(Book).order_by(Book.created_at.desc())
    if _wanted(language):
        stmt = stmt.where(Book.language == language)
    if _wanted(difficulty):
        stmt = stmt.where(Book.difficulty_level == difficulty)
    if _wanted(book_format):
        stmt = stmt.where(Book.format == book_format)

    books = [book_to_dict(b) for b in (await db.execute(stmt)).scalars().all()]
    if q and q.strip():
        books = fuzzy_rank(q, books, BOOK_KEYS)
    return books[:limit]


async def browse_challenges(
    db: AsyncSession,
    q: Optional[str] = None,
    challenge_type: Optional[str] = None,
    difficulty: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 10,
) -> List[Dict[str, Any]]:
    """Public challenges for the search page, filtered like :func:`browse_books`."""
    stmt = (
        select(Challenge)
        .where(Challenge.visibility == Visibility.PUBLIC)
        .order_by(Challenge.created_at.desc())
    )
    if _wanted(challenge_type):
        stmt = stmt.where(Challenge.type == challenge_type)
    if _wanted(difficulty):
        stmt = stmt.where(Challenge.difficulty_level == difficulty)
    if _wanted(status):
        stmt = stmt.where(Challenge.status == status)

    challenges = [challenge_to_dict(c) for c in (await db.execute(stmt)).scalars().all()]
    if q and q.strip():
        challenges = fuzzy_rank(q, challenges, CHALLENGE_KEYS)
    return challenges[:limit]


# ---------------------------------------------------------------------------
# History-based recommendations
# ---------------------------------------------------------------------------

def extract_interests_from_history(
    interactions: Iterable[Dict[str, Any]],
    conversations: Iterable[Dict[str, Any]],
) -> List[str]:
    """Tags from interaction metadata and from previously recommended items."""
    tags: List[str] = []

    for interaction in interactions:
        metadata = interaction.get("metadata") or {}
        if isinstance(metadata, dict):
            tags.extend(t for t in as_list(metadata.get("tags")) if isinstance(t, str))

    for conversation in conversations:
        for rec in as_list(conversation.get("recommendations_given")):
            if isinstance(rec, dict):
                tags.extend(t for t in as_list(rec.get("tags")) if isinstance(t, str))

    return unique_preserving_order(tags)


async def get_books_by_interests(db: AsyncSession, interests: List[str]) -> List[Dict[str, Any]]:
    if not interests:
        return []
    try:
        result = await db.execute(select(Book).order_by(Book.created_at.desc()))
    except SQLAlchemyError as exc:
        logger.error("Error fetching books by interests: %s", exc)
        return []
    books = [b for b in result.scalars().all() if tags_overlap(b.tags, interests)]
    return [book_to_dict(b) for b in books[: settings.RECOMMENDATION_LIMIT]]


async def get_challenges_by_interests(
    db: AsyncSession, interests: List[str]
) -> List[Dict[str, Any]]:
    if not interests:
        return []
    try:
        result = await db.execute(
            select(Challenge)
            .where(Challenge.status.in_(OPEN_CHALLENGE_STATUSES))
            .order_by(Challenge.created_at.desc())
        )
    except SQLAlchemyError as exc:
        logger.error("Error fetching challenges by interests: %s", exc)
        return []
    challenges = [c for c in result.scalars().all() if tags_overlap(c.tags, interests)]
    return [challenge_to_dict(c) for c in challenges[: settings.RECOMMENDATION_LIMIT]]


async def get_recommendations_based_on_history(
    db: AsyncSession, user_id: str
) -> Dict[str, List[Any]]:
    """Books and challenges sharing tags with what the user touched before."""
    empty: Dict[str, List[Any]] = {"books": [], "challenges": [], "interests": []}
    try:
        interaction_result = await db.execute(
            select(UserInteraction)
            .where(UserInteraction.user_id == user_id)
            .order_by(UserInteraction.created_at.desc())
            .limit(20)
        )
        interactions = [
            {"entity_type": i.entity_type, "entity_id": i.entity_id, "metadata": i.metadata_json}
            for i in interaction_result.scalars().all()
        ]

        conversation_result = await db.execute(
            select(AIConversation)
            .where(AIConversation.user_id == user_id)
            .order_by(AIConversation.created_at.desc())
            .limit(10)
        )
        conversations = [
            {"intent": c.intent, "recommendations_given": c.recommendations_given}
            for c in conversation_result.scalars().all()
        ]
    except SQLAlchemyError as exc:
        logger.error("Recommendation history lookup failed for user=%s: %s", user_id, exc)
        return empty

    interests = extract_interests_from_history(interactions, conversations)
    books = await get_books_by_interests(db, interests)
    challenges = await get_challenges_by_interests(db, interests)

    logger.info(
        "Recommendations for user=%s: %d interests → %d books, %d challenges",
        user_id,
        len(interests),
        len(books),
        len(challenges),
    )
    return {"books": books, "challenges": challenges, "interests": interests}
