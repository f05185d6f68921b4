"""Tests for the template replies used without an LLM."""
import random
from datetime import datetime, timedelta, timezone

from app.services.tortoise_responses import (
    MOTIVATIONAL_QUOTES,
    compose_reply,
    greeting_reply,
    learning_plan_reply,
    motivational_reply,
    offline_learning_plan,
    progress_reply,
)

NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)
PROFILE = {"name": "Abebe Bikila", "role": "learner", "learning_interests": ["python"]}
BOOK = {
    "title": "Fluent Python",
    "author": "Luciano Ramalho",
    "description": "Clear, concise, and effective programming",
    "tags": ["Python", "programming"],
    "format": "ebook",
    "language": "english",
    "difficulty_level": "intermediate",
}


def _activity(joined=0, recent_interactions=0):
    return {
        "joined_challenges": [
            {
                "joined_at": NOW - timedelta(days=3),
                "challenge": {"title": f"Challenge {i}", "type": "reading", "status": "active"},
            }
            for i in range(joined)
        ],
        "interactions": [
            {"interaction_type": "view", "created_at": NOW - timedelta(days=1)}
            for _ in range(recent_interactions)
        ]
        + [{"interaction_type": "view", "created_at": NOW - timedelta(days=30)}],
        "recent_conversations": [],
    }


def test_book_reply_lists_books_and_matching_interest():
    reply = compose_reply("book_request", "books?", PROFILE, [BOOK], [], None)
    assert reply.startswith("Hello Abebe!")
    assert "**Fluent Python** by Luciano Ramalho" in reply
    assert "Perfect for your interest in python" in reply
    assert "Slow and steady wins the race" in reply


def test_book_reply_without_results_asks_for_topics():
    reply = compose_reply("book_request", "books?", None, [], [], None)
    assert reply.startswith("Hi friend!")
    assert "curious about" in reply


def test_challenge_reply_hints_creators_to_publish():
    reply = compose_reply("challenge_request", "challenge", {"name": "Sara", "role": "creator"}, [], [], None)
    assert "As a creator" in reply


def test_challenge_reply_encouragement_depends_on_joined_count():
    challenge = {"title": "Read daily", "status": "active", "difficulty_level": "beginner", "type": "reading"}
    first = compose_reply("challenge_request", "", PROFILE, [], [challenge], _activity(joined=0))
    veteran = compose_reply("challenge_request", "", PROFILE, [], [challenge], _activity(joined=4))
    assert "perfect first challenge" in first
    assert "Currently Active" in first
    assert "challenge champion" in veteran


def test_motivational_reply_uses_a_known_quote():
    reply = motivational_reply(PROFILE, _activity(joined=1), rng=random.Random(7))
    assert "You've joined 1 challenge," in reply
    assert any(q in reply for q in MOTIVATIONAL_QUOTES)


def test_learning_plan_reply_seeds_phases_from_results():
    challenge = {"title": "Python basics sprint", "difficulty_level": "advanced"}
    reply = learning_plan_reply("I want to learn python", PROFILE, [BOOK], [challenge])
    # the "programming" tag matches the goal area; the advanced challenge matches nothing
    assert 'Start with "Fluent Python"' in reply
    assert "Join \"" not in reply
    assert "Phase 3: Skill Mastery" in reply


def test_progress_reply_counts_this_weeks_activity():
    reply = progress_reply(PROFILE, _activity(joined=2, recent_interactions=6), now=NOW)
    assert "You've joined 2 challenges!" in reply
    assert "Challenge 0 (3 days ago)" in reply
    assert "Good momentum!" in reply


def test_progress_reply_for_a_newcomer():
    reply = progress_reply(None, None, now=NOW)
    assert "Ready to join your first challenge?" in reply
    assert "Let's get you more engaged!" in reply


def test_greeting_depends_on_time_of_day():
    assert greeting_reply(PROFILE, None, now=NOW).startswith("Good morning, Abebe!")
    assert greeting_reply(PROFILE, None, now=NOW.replace(hour=20)).startswith("Good evening")
    assert "never stop learning" in greeting_reply(PROFILE, None, now=NOW)


def test_offline_learning_plan_mentions_goal_areas():
    plan = offline_learning_plan("Get better at Python and public speaking", "beginner", "1 hour daily")
    assert "Level: beginner | Time commitment: 1 hour daily" in plan
    assert "programming, communication" in plan
    assert plan.endswith("Life is teaching, never stop learning!")
