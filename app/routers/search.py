"""
Book and challenge discovery endpoints.

GET /api/search/books                      - filtered / fuzzy book search
GET /api/search/challenges                 - filtered / fuzzy challenge search
GET /api/search/recommendations/{user_id}  - recommendations from user history
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Type

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.schemas import (
    BookFormatSchema,
    BookResponse,
    BookSearchResponse,
    ChallengeResponse,
    ChallengeSearchResponse,
    ChallengeStatusSchema,
    ChallengeTypeSchema,
    DifficultySchema,
    RecommendationsResponse,
)
from app.services import search_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_filter(name: str, value: Optional[str], choices: Type[Enum]) -> Optional[str]:
    """Accept ``None``, ``"all"`` or a member value of *choices*; 400 otherwise."""
    if value is None or value == "all":
        return value
    allowed = [c.value for c in choices]
    if value not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} '{value}'. Accepted: all, {', '.join(allowed)}",
        )
    return value


@router.get("/books", response_model=BookSearchResponse)
async def search_books(
    q: Optional[str] = Query(None, description="Fuzzy match on title, author, description, tags"),
    language: Optional[str] = Query(None, description="Language, or 'all'"),
    difficulty: Optional[str] = Query(None, description="beginner | intermediate | advanced | all"),
    format: Optional[str] = Query(None, description="pdf | audio | print | ebook | all"),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> BookSearchResponse:
    """
    With *q*: best fuzzy matches first.  Without: newest books first.
    Filters apply in both cases.
    """
    _check_filter("difficulty", difficulty, DifficultySchema)
    _check_filter("format", format, BookFormatSchema)
    try:
        books = await search_service.browse_books(
            db, q=q, language=language, difficulty=difficulty, book_format=format, limit=limit
        )
    except SQLAlchemyError as exc:
        logger.error("search_books error: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search books",
        )
    return BookSearchResponse(books=[BookResponse(**b) for b in books], total=len(books))


@router.get("/challenges", response_model=ChallengeSearchResponse)
async def search_challenges(
    q: Optional[str] = Query(None, description="Fuzzy match on title, description, type, tags"),
    type: Optional[str] = Query(None, description="reading | coding | speaking | custom | all"),
    difficulty: Optional[str] = Query(None, description="beginner | intermediate | advanced | all"),
    status_filter: Optional[str] = Query(None, alias="status", description="upcoming | active | completed | all"),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> ChallengeSearchResponse:
    """Public challenges, filtered, fuzzy-ranked when *q* is given."""
    _check_filter("type", type, ChallengeTypeSchema)
    _check_filter("difficulty", difficulty, DifficultySchema)
    _check_filter("status", status_filter, ChallengeStatusSchema)
    try:
        challenges = await search_service.browse_challenges(
            db,
            q=q,
            challenge_type=type,
            difficulty=difficulty,
            status=status_filter,
            limit=limit,
        )
    except SQLAlchemyError as exc:
        logger.error("search_challenges error: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search challenges",
        )
    return ChallengeSearchResponse(
        challenges=[ChallengeResponse(**c) for c in challenges], total=len(challenges)
    )


@router.get("/recommendations/{user_id}", response_model=RecommendationsResponse)
async def recommendations(
    user_id: str,
    db: AsyncSession = Depends(get_db),
) -> RecommendationsResponse:
    """Books and challenges sharing tags with the user's past interactions and chats."""
    result = await search_service.get_recommendations_based_on_history(db, user_id)
    return RecommendationsResponse(
        books=[BookResponse(**b) for b in result["books"]],
        challenges=[ChallengeResponse(**c) for c in result["challenges"]],
        interests=result["interests"],
    )
