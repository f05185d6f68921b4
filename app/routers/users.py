"""
User profile endpoints.

Route summary
-------------
POST   /api/users                          - register a profile
GET    /api/users/{user_id}                - profile
POST   /api/users/{user_id}/preferences    - replace preferences / interests / language
POST   /api/users/{user_id}/interactions   - log an interaction event
GET    /api/users/{user_id}/conversations  - Tortoise chat history, newest first
GET    /api/users/{user_id}/insights       - learning insights from the chat history
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.database_models import AIConversation, User, UserInteraction, UserRole
from app.models.schemas import (
    ConversationResponse,
    InteractionCreate,
    InteractionLogged,
    LearningInsightsResponse,
    PreferencesUpdate,
    UserCreate,
    UserResponse,
)
from app.services.insights import get_learning_insights

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_user_or_404(user_id: str, db: AsyncSession) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreate, db: AsyncSession = Depends(get_db)) -> UserResponse:
    """Register the profile for an account created with the auth service."""
    existing = await db.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    if body.id and await db.get(User, body.id) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    user = User(name=body.name, email=body.email, role=UserRole(body.role.value))
    if body.id:
        user.id = body.id
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("Registered user id=%s role=%s", user.id, body.role.value)
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, db: AsyncSession = Depends(get_db)) -> UserResponse:
    user = await _get_user_or_404(user_id, db)
    return UserResponse.model_validate(user)


@router.post("/{user_id}/preferences", response_model=UserResponse)
async def update_preferences(
    user_id: str,
    body: PreferencesUpdate,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Replace all three preference fields; omitted ones reset to their defaults."""
    user = await _get_user_or_404(user_id, db)
    user.preferences = body.preferences or {}
    user.learning_interests = body.learning_interests or []
    user.language_preference = body.language_preference or "english"
    await db.flush()
    await db.refresh(user)

    logger.info(
        "Updated preferences for user=%s (%d interests)", user_id, len(user.learning_interests)
    )
    return UserResponse.model_validate(user)


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------

@router.post(
    "/{user_id}/interactions",
    response_model=InteractionLogged,
    status_code=status.HTTP_201_CREATED,
)
async def log_interaction(
    user_id: str,
    body: InteractionCreate,
    db: AsyncSession = Depends(get_db),
) -> InteractionLogged:
    """Record a view / join / chat event; tags in ``metadata`` feed recommendations."""
    await _get_user_or_404(user_id, db)
    interaction = UserInteraction(
        user_id=user_id,
        interaction_type=body.interaction_type,
        entity_type=body.entity_type,
        entity_id=body.entity_id,
        metadata_json=body.metadata,
    )
    db.add(interaction)
    await db.flush()
    return InteractionLogged(interaction_id=interaction.id)


@router.get("/{user_id}/conversations", response_model=List[ConversationResponse])
async def list_conversations(
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> List[ConversationResponse]:
    result = await db.execute(
        select(AIConversation)
        .where(AIConversation.user_id == user_id)
        .order_by(AIConversation.created_at.desc())
        .limit(limit)
    )
    return [ConversationResponse.model_validate(c) for c in result.scalars().all()]


@router.get("/{user_id}/insights", response_model=LearningInsightsResponse)
async def learning_insights(
    user_id: str,
    db: AsyncSession = Depends(get_db),
) -> LearningInsightsResponse:
    """Most discussed topics, activity level, favourite challenge types and satisfaction trend."""
    try:
        insights = await get_learning_insights(db, user_id)
    except Exception as exc:
        logger.error("insights error for user=%s: %s", user_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get learning insights",
        )
    return LearningInsightsResponse(**insights)
