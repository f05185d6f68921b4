"""Tests for learning insights."""
import pytest

from app.models.database_models import ChallengeType
from app.services.insights import (
    analyze_most_discussed_topics,
    analyze_preferred_challenge_types,
    calculate_learning_frequency,
    calculate_satisfaction_trend,
    get_learning_insights,
)
from tests.conftest import CREATOR_ID, LEARNER_ID, days_ago, join, make_challenge, make_conversation, make_user


def _convs(*days, intent="general"):
    """Conversations newest first, one per entry in *days* (days ago)."""
    return [{"intent": intent, "created_at": days_ago(d)} for d in sorted(days)]


def _rated(*ratings):
    """Ratings oldest first."""
    n = len(ratings)
    return [
        {"created_at": days_ago(n - i), "satisfaction_rating": r}
        for i, r in enumerate(ratings)
    ]


def test_most_discussed_topics_top_three():
    conversations = (
        _convs(1, 2, 3, intent="book_request")
        + _convs(4, 5, intent="plan_request")
        + _convs(6, intent="general")
        + _convs(7, intent="motivation_request")
        + [{"intent": None, "created_at": days_ago(8)}]
    )
    topics = analyze_most_discussed_topics(conversations)
    assert topics[:2] == [
        {"topic": "book_request", "count": 3},
        {"topic": "plan_request", "count": 2},
    ]
    assert len(topics) == 3


@pytest.mark.parametrize(
    "days, expected",
    [
        ((0,), "new_user"),
        ((0, 0.1, 0.2), "very_active"),  # span < 1 day counts as one day
        ((0, 2, 4, 6), "active"),  # 4 in 6 days
        ((0, 5, 10), "moderate"),  # 3 in 10 days
        ((0, 30), "occasional"),
    ],
)
def test_learning_frequency(days, expected):
    assert calculate_learning_frequency(_convs(*days)) == expected


def test_preferred_challenge_types_top_two():
    memberships = [{"type": "coding"}] * 3 + [{"type": "reading"}] * 2 + [{"type": "speaking"}]
    assert analyze_preferred_challenge_types(memberships) == [
        {"type": "coding", "count": 3},
        {"type": "reading", "count": 2},
    ]


@pytest.mark.parametrize(
    "ratings, expected",
    [
        ((5,), "insufficient_data"),
        ((4, 5, 3), "new_feedback"),
        ((2, 2, 4, 5, 5), "improving"),
        ((5, 5, 2, 3, 2), "declining"),
        ((4, 4, 4, 4, 5), "stable"),
    ],
)
def test_satisfaction_trend(ratings, expected):
    assert calculate_satisfaction_trend(_rated(*ratings)) == expected


def test_unrated_conversations_are_ignored_for_trend():
    conversations = _rated(3, 4) + [{"created_at": days_ago(0), "satisfaction_rating": None}]
    assert calculate_satisfaction_trend(conversations) == "new_feedback"


@pytest.mark.asyncio
async def test_get_learning_insights_from_database(db_session):
    await make_user(db_session, LEARNER_ID)
    await make_user(db_session, CREATOR_ID)
    for d in (0, 0.2, 0.4):
        await make_conversation(db_session, LEARNER_ID, intent="book_request", created_at=days_ago(d))
    coding = await make_challenge(db_session, "Advent of Code", type=ChallengeType.CODING)
    reading = await make_challenge(db_session, "Read 12 books", type=ChallengeType.READING)
    await join(db_session, LEARNER_ID, coding.id)
    await join(db_session, LEARNER_ID, reading.id)

    insights = await get_learning_insights(db_session, LEARNER_ID)

    assert insights["most_discussed_topics"] == [{"topic": "book_request", "count": 3}]
    assert insights["learning_frequency"] == "very_active"
    assert {t["type"] for t in insights["preferred_challenge_types"]} == {"coding", "reading"}
    assert insights["satisfaction_trend"] == "insufficient_data"
