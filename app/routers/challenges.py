"""
Challenge endpoints.

Route summary
-------------
GET    /api/challenges                              - public challenges with filters
GET    /api/challenges/joined                       - challenges the caller joined
GET    /api/challenges/created-by/{user_id}         - challenges a creator published
GET    /api/challenges/{challenge_id}               - one challenge
POST   /api/challenges                              - publish a challenge (creators only)
POST   /api/challenges/{challenge_id}/join          - join (409 when already joined)
GET    /api/challenges/{challenge_id}/membership    - has the caller joined?
"""
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_current_user, get_current_user_id, require_creator
from app.models.database_models import (
    Challenge,
    ChallengeStatus,
    ChallengeType,
    DifficultyLevel,
    User,
    UserChallenge,
    Visibility,
)
from app.models.schemas import (
    ChallengeCreate,
    ChallengeResponse,
    MembershipCheckResponse,
    MembershipResponse,
)
from app.services.search_service import challenge_to_dict

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── Helpers ──────────────────────────────────────────────────────────────────

async def _participant_counts(db: AsyncSession, challenge_ids: List[str]) -> Dict[str, int]:
    if not challenge_ids:
        return {}
    result = await db.execute(
        select(UserChallenge.challenge_id, func.count(UserChallenge.id).label("cnt"))
        .where(UserChallenge.challenge_id.in_(challenge_ids))
        .group_by(UserChallenge.challenge_id)
    )
    return {row.challenge_id: row.cnt for row in result}


async def _with_counts(db: AsyncSession, challenges: List[Challenge]) -> List[ChallengeResponse]:
    counts = await _participant_counts(db, [c.id for c in challenges])
    return [
        ChallengeResponse(**challenge_to_dict(c), participant_count=counts.get(c.id, 0))
        for c in challenges
    ]


def _enum_filter(enum_cls, value: Optional[str], name: str):
    if not value or value == "all":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name} '{value}'")


async def _get_challenge_or_404(challenge_id: str, db: AsyncSession) -> Challenge:
    challenge = await db.get(Challenge, challenge_id)
    if challenge is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Challenge not found")
    return challenge


# ═══════════════════════════════════════════════════════════════════════════════
# LISTINGS
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("", response_model=List[ChallengeResponse])
async def list_challenges(
    type: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    difficulty: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Substring of title or description"),
    db: AsyncSession = Depends(get_db),
) -> List[ChallengeResponse]:
    """Public challenges, newest first, with participant counts."""
    stmt = (
        select(Challenge)
        .where(Challenge.visibility == Visibility.PUBLIC)
        .order_by(Challenge.created_at.desc())
    )
    challenge_type = _enum_filter(ChallengeType, type, "type")
    if challenge_type is not None:
        stmt = stmt.where(Challenge.type == challenge_type)
    challenge_status = _enum_filter(ChallengeStatus, status_filter, "status")
    if challenge_status is not None:
        stmt = stmt.where(Challenge.status == challenge_status)
    level = _enum_filter(DifficultyLevel, difficulty, "difficulty")
    if level is not None:
        stmt = stmt.where(Challenge.difficulty_level == level)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(Challenge.title.ilike(pattern), Challenge.description.ilike(pattern)))

    challenges = list((await db.execute(stmt)).scalars().all())
    return await _with_counts(db, challenges)


@router.get("/joined", response_model=List[MembershipResponse])
async def list_joined(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[MembershipResponse]:
    """The caller's memberships, most recently joined first."""
    result = await db.execute(
        select(UserChallenge, Challenge)
        .join(Challenge, UserChallenge.challenge_id == Challenge.id)
        .where(UserChallenge.user_id == user_id)
        .order_by(UserChallenge.joined_at.desc())
    )
    return [
        MembershipResponse(
            id=membership.id,
            user_id=membership.user_id,
            challenge_id=membership.challenge_id,
            joined_at=membership.joined_at,
            completed_at=membership.completed_at,
            progress=membership.progress or {},
            challenge=ChallengeResponse(**challenge_to_dict(challenge)),
        )
        for membership, challenge in result.all()
    ]


@router.get("/created-by/{user_id}", response_model=List[ChallengeResponse])
async def list_created_by(user_id: str, db: AsyncSession = Depends(get_db)) -> List[ChallengeResponse]:
    """Every challenge the user published, private ones included."""
    result = await db.execute(
        select(Challenge)
        .where(Challenge.created_by == user_id)
        .order_by(Challenge.created_at.desc())
    )
    return await _with_counts(db, list(result.scalars().all()))


@router.get("/{challenge_id}", response_model=ChallengeResponse)
async def get_challenge(challenge_id: str, db: AsyncSession = Depends(get_db)) -> ChallengeResponse:
    challenge = await _get_challenge_or_404(challenge_id, db)
    return (await _with_counts(db, [challenge]))[0]


# ═══════════════════════════════════════════════════════════════════════════════
# WRITES
# ═══════════════════════════════════════════════════════════════════════════════

@router.post("", response_model=ChallengeResponse, status_code=status.HTTP_201_CREATED)
async def create_challenge(
    body: ChallengeCreate,
    creator: User = Depends(require_creator),
    db: AsyncSession = Depends(get_db),
) -> ChallengeResponse:
    if body.start_date and body.end_date and body.end_date < body.start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")

    challenge = Challenge(
        title=body.title,
        description=body.description,
        type=ChallengeType(body.type.value),
        created_by=creator.id,
        start_date=body.start_date,
        end_date=body.end_date,
        visibility=Visibility(body.visibility.value),
        tags=body.tags,
        difficulty_level=DifficultyLevel(body.difficulty_level.value),
        status=ChallengeStatus(body.status.value),
    )
    db.add(challenge)
    await db.flush()
    await db.refresh(challenge)

    logger.info("Created challenge id=%s title=%r by user=%s", challenge.id, challenge.title, creator.id)
    return ChallengeResponse(**challenge_to_dict(challenge), participant_count=0)


@router.post(
    "/{challenge_id}/join",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
async def join_challenge(
    challenge_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MembershipResponse:
    challenge = await _get_challenge_or_404(challenge_id, db)

    existing = await db.execute(
        select(UserChallenge.id).where(
            UserChallenge.challenge_id == challenge.id,
            UserChallenge.user_id == user.id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Already joined this challenge")

    membership = UserChallenge(user_id=user.id, challenge_id=challenge.id, progress={})
    db.add(membership)
    await db.flush()
    await db.refresh(membership)

    logger.info("User %s joined challenge %s", user.id, challenge.id)
    return MembershipResponse(
        id=membership.id,
        user_id=membership.user_id,
        challenge_id=membership.challenge_id,
        joined_at=membership.joined_at,
        completed_at=membership.completed_at,
        progress=membership.progress or {},
        challenge=ChallengeResponse(**challenge_to_dict(challenge)),
    )


@router.get("/{challenge_id}/membership", response_model=MembershipCheckResponse)
async def check_membership(
    challenge_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MembershipCheckResponse:
    result = await db.execute(
        select(UserChallenge.id).where(
            UserChallenge.challenge_id == challenge_id,
            UserChallenge.user_id == user_id,
        )
    )
    return MembershipCheckResponse(
        challenge_id=challenge_id,
        user_id=user_id,
        joined=result.scalar_one_or_none() is not None,
    )
