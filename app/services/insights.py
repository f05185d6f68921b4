"""
Learning insights derived from a user's Tortoise conversations and challenges.
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.database_models import AIConversation, Challenge, UserChallenge
from app.utils.helpers import ensure_utc

logger = logging.getLogger(__name__)


def analyze_most_discussed_topics(conversations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Top three intents by conversation count."""
    counts = Counter(c["intent"] for c in conversations if c.get("intent"))
    return [{"topic": topic, "count": count} for topic, count in counts.most_common(3)]


def calculate_learning_frequency(conversations: List[Dict[str, Any]]) -> str:
    """
    Conversations per day across the span between newest and oldest.

    *conversations* must be ordered newest first.
    """
    if len(conversations) < 2:
        return "new_user"

    newest: datetime = ensure_utc(conversations[0]["created_at"])
    oldest: datetime = ensure_utc(conversations[-1]["created_at"])
    days_between = (newest - oldest).total_seconds() / 86400
    frequency = len(conversations) / max(days_between, 1)

    if frequency > 1:
        return "very_active"
    if frequency > 0.5:
        return "active"
    if frequency > 0.2:
        return "moderate"
    return "occasional"


def analyze_preferred_challenge_types(memberships: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Top two challenge types the user has joined."""
    counts = Counter(m["type"] for m in memberships if m.get("type"))
    return [{"type": t, "count": count} for t, count in counts.most_common(2)]


def calculate_satisfaction_trend(conversations: List[Dict[str, Any]]) -> str:
    """Compare the mean of the three latest ratings with the earlier ones."""
    rated = sorted(
        (
            (ensure_utc(c["created_at"]), c["satisfaction_rating"])
            for c in conversations
            if c.get("satisfaction_rating")
        ),
        key=lambda pair: pair[0],
    )
    if len(rated) < 2:
        return "insufficient_data"

    recent = [r for _, r in rated[-3:]]
    older = [r for _, r in rated[:-3]]
    if not older:
        return "new_feedback"

    recent_avg = sum(recent) / len(recent)
    older_avg = sum(older) / len(older)
    if recent_avg > older_avg + 0.5:
        return "improving"
    if recent_avg < older_avg - 0.5:
        return "declining"
    return "stable"


async def get_learning_insights(db: AsyncSession, user_id: str) -> Dict[str, Any]:
    conv_result = await db.execute(
        select(AIConversation)
        .where(AIConversation.user_id == user_id)
        .order_by(AIConversation.created_at.desc())
        .limit(50)
    )
    conversations = [
        {
            "intent": c.intent,
            "created_at": c.created_at,
            "satisfaction_rating": c.satisfaction_rating,
        }
        for c in conv_result.scalars().all()
    ]

    membership_result = await db.execute(
        select(Challenge.type)
        .join(UserChallenge, UserChallenge.challenge_id == Challenge.id)
        .where(UserChallenge.user_id == user_id)
    )
    memberships = [
        {"type": getattr(row[0], "value", row[0])} for row in membership_result.all()
    ]

    logger.debug(
        "Insights for user=%s: %d conversations, %d memberships",
        user_id,
        len(conversations),
        len(memberships),
    )
    return {
        "most_discussed_topics": analyze_most_discussed_topics(conversations),
        "learning_frequency": calculate_learning_frequency(conversations),
        "preferred_challenge_types": analyze_preferred_challenge_types(memberships),
        "satisfaction_trend": calculate_satisfaction_trend(conversations),
    }
