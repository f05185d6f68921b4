"""
Template replies used when no LLM is configured.

Each composer takes plain dicts (user profile, books, challenges, recent
activity) so it can be exercised without a database.
"""
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from app.services.intent_classifier import extract_learning_goals
from app.utils.helpers import ensure_utc, first_name

MOTIVATIONAL_QUOTES = [
    "The journey of a thousand miles begins with a single step.",
    "Learning never exhausts the mind.",
    "The beautiful thing about learning is that no one can take it away from you.",
    "Every expert was once a beginner.",
    "The capacity to learn is a gift; the ability to learn is a skill; the willingness to learn is a choice.",
]

MOTTO = "Life is teaching, never stop learning!"


def _joined(activity: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return (activity or {}).get("joined_challenges") or []


def _parse_dt(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, str):
        try:
            return ensure_utc(datetime.fromisoformat(value))
        except ValueError:
            return None
    return None


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n != 1 else ''}"


def book_recommendation_reply(
    books: List[Dict[str, Any]],
    profile: Optional[Dict[str, Any]],
    activity: Optional[Dict[str, Any]],
) -> str:
    profile = profile or {}
    name = first_name(profile.get("name"))
    interests = profile.get("learning_interests") or []

    if not books:
        about = f" in {', '.join(interests)}" if interests else ""
        return (
            f"Hi {name}! 🐢 I'd love to help you find some great books! Based on your "
            f"interests{about}, let me search our curated library for perfect matches. "
            "Could you tell me more about what specific topics you're curious about right now?"
        )

    parts = [
        f"Hello {name}! 🐢 Based on your learning journey and interests, I've found some "
        "excellent books that align with your goals:\n"
    ]
    for book in books:
        parts.append(f"📚 **{book.get('title')}** by {book.get('author')}")
        if book.get("description"):
            parts.append(book["description"])
        tags = [t.lower() for t in book.get("tags") or []]
        matching = [i for i in interests if any(i.lower() in t for t in tags)]
        if matching:
            parts.append(f"✨ *Perfect for your interest in {' and '.join(matching)}*")
        parts.append(f"📖 Format: {book.get('format')} | 🌍 Language: {book.get('language')}\n")

    if _joined(activity):
        parts.append(
            "I noticed you're actively participating in challenges - these books will "
            "complement your current learning path beautifully! 🌱"
        )
    else:
        parts.append(
            "These books are perfect starting points for your learning journey. Remember, "
            "as we tortoises say: \"Slow and steady wins the race!\" 🏆"
        )
    return "\n".join(parts)


def challenge_recommendation_reply(
    challenges: List[Dict[str, Any]],
    profile: Optional[Dict[str, Any]],
    activity: Optional[Dict[str, Any]],
) -> str:
    profile = profile or {}
    name = first_name(profile.get("name"))

    if not challenges:
        reply = f"Hi {name}! 🐢 I'd love to help you find engaging challenges! "
        if profile.get("role") == "creator":
            reply += (
                "As a creator, you might want to consider creating a new challenge "
                "that matches your expertise. "
            )
        return reply + (
            "What type of skills are you looking to develop? I can help you find or suggest "
            "challenges in reading, coding, speaking, or custom learning paths."
        )

    parts = [f"Wonderful, {name}! 🎯 I've found some exciting challenges that match your learning style:\n"]
    interests = profile.get("learning_interests") or []
    for challenge in challenges:
        when = "Currently Active" if challenge.get("status") == "active" else "Starting Soon"
        parts.append(f"🎯 **{challenge.get('title')}**")
        if challenge.get("description"):
            parts.append(challenge["description"])
        parts.append(f"📅 {when} | 🎚️ {challenge.get('difficulty_level')}")
        if challenge.get("type") == "reading" and "reading" in interests:
            parts.append("✨ *Perfect match for your love of reading!*")
        parts.append("")

    joined = len(_joined(activity))
    if joined == 0:
        parts.append("This would be a perfect first challenge for you! Remember, every expert was once a beginner. 🌱")
    elif joined < 3:
        parts.append("Building on your previous challenge experience - you're developing great learning momentum! 🚀")
    else:
        parts.append(
            "Wow! You're becoming quite the challenge champion! Your dedication to "
            "continuous learning is inspiring. 🏆"
        )
    return "\n".join(parts)


def motivational_reply(
    profile: Optional[Dict[str, Any]],
    activity: Optional[Dict[str, Any]],
    rng: Optional[random.Random] = None,
) -> str:
    name = first_name((profile or {}).get("name"))
    quote = (rng or random).choice(MOTIVATIONAL_QUOTES)
    joined = len(_joined(activity))

    reply = f"Hello {name}! 🐢 As your wise learning companion, I want to remind you that "
    if joined > 0:
        reply += (
            f"you're already on an amazing learning journey! You've joined "
            f"{_plural(joined, 'challenge')}, which shows your commitment to growth.\n\n"
        )
    else:
        reply += "every learning journey starts with curiosity - and you're here, which means you're ready to grow!\n\n"

    reply += f"💭 *\"{quote}\"*\n\n"
    reply += (
        "Remember, as a tortoise, I believe in the power of consistent, steady progress. "
        "You don't need to rush - just keep moving forward, one step at a time. 🌱\n\n"
    )
    reply += "What would you like to learn or improve today? I'm here to guide you! 🎯"
    return reply


def learning_plan_reply(
    message: str,
    profile: Optional[Dict[str, Any]],
    books: List[Dict[str, Any]],
    challenges: List[Dict[str, Any]],
) -> str:
    """Three-phase plan seeded with whatever books and challenges were found."""
    name = first_name((profile or {}).get("name"))
    goals = extract_learning_goals(message)

    lines = [
        f"Excellent question, {name}! 🐢 Let me create a personalized learning plan for you.\n",
        "🎯 **Your Personalized Learning Path**\n",
        "**Phase 1: Foundation Building (Weeks 1-2)**",
    ]
    foundation = next(
        (
            b for b in books
            if b.get("difficulty_level") == "beginner"
            or any(t.lower() in goals for t in b.get("tags") or [])
        ),
        None,
    )
    if foundation:
        lines.append(f"📚 Start with \"{foundation['title']}\" - perfect for building your foundation")
    lines.append("⏰ Dedicate 30 minutes daily to reading and note-taking\n")

    lines.append("**Phase 2: Active Practice (Weeks 3-4)**")
    practice = next(
        (
            c for c in challenges
            if c.get("difficulty_level") == "beginner"
            or any(g in (c.get("title") or "").lower() for g in goals)
        ),
        None,
    )
    if practice:
        lines.append(f"🎯 Join \"{practice['title']}\" to apply what you've learned")
    lines.append("💪 Practice daily with small, consistent actions\n")

    lines.append("**Phase 3: Skill Mastery (Weeks 5-8)**")
    lines.append("🚀 Take on more advanced challenges")
    lines.append("👥 Share your knowledge with the community")
    lines.append("📈 Track your progress and celebrate milestones\n")

    lines.append(
        f"Remember, {name}, learning is like being a tortoise - slow, steady, and "
        "persistent wins the race! 🏆\n"
    )
    lines.append("Would you like me to help you get started with any specific part of this plan?")
    return "\n".join(lines)


def progress_reply(
    profile: Optional[Dict[str, Any]],
    activity: Optional[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> str:
    now = now or datetime.now(timezone.utc)
    name = first_name((profile or {}).get("name"))
    joined = _joined(activity)
    interactions = (activity or {}).get("interactions") or []

    lines = [
        f"Great question, {name}! 🐢 Let me give you a personalized progress update:\n",
        "📊 **Your Learning Journey So Far**\n",
    ]

    if joined:
        lines.append(f"🎯 **Challenges**: You've joined {_plural(len(joined), 'challenge')}!")
        for membership in joined:
            joined_at = _parse_dt(membership.get("joined_at"))
            days = (now - joined_at).days if joined_at else 0
            title = (membership.get("challenge") or {}).get("title", "Untitled challenge")
            lines.append(f"   • {title} ({days} days ago)")
        lines.append("")
    else:
        lines.append("🎯 **Challenges**: Ready to join your first challenge? I can help you find the perfect one!\n")

    week_ago = now - timedelta(days=7)
    recent = 0
    for interaction in interactions:
        created = _parse_dt(interaction.get("created_at"))
        if created and created > week_ago:
            recent += 1

    if recent > 10:
        level = "Highly Active! You're really engaged with your learning. 🔥"
    elif recent > 5:
        level = "Good momentum! You're building consistent learning habits. 📈"
    elif recent > 0:
        level = "Getting started! Every step counts in your learning journey. 🌱"
    else:
        level = "Let's get you more engaged! I can help you find interesting content. 💪"
    lines.append(f"📈 **Activity Level**: {level}\n")

    lines.append("🌟 **What's Next?**")
    if not joined:
        lines.append("Consider joining a beginner-friendly challenge to kickstart your learning!")
    else:
        lines.append(
            "You're doing great! Consider exploring new topics or taking on a slightly "
            "more challenging goal."
        )
    lines.append(
        "\nRemember, progress isn't always about speed - it's about consistency and growth. "
        "Keep up the wonderful work! 🐢💚"
    )
    return "\n".join(lines)


def greeting_reply(
    profile: Optional[Dict[str, Any]],
    activity: Optional[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> str:
    hour = (now or datetime.now()).hour
    if hour < 12:
        greeting = "Good morning"
    elif hour < 17:
        greeting = "Good afternoon"
    else:
        greeting = "Good evening"

    name = first_name((profile or {}).get("name"))
    reply = f"{greeting}, {name}! 🐢 "
    if _joined(activity):
        reply += "I see you're actively working on your learning challenges - that's the spirit! "

    reply += (
        "I'm your wise learning companion, here to help you discover amazing books, find "
        "perfect challenges, and create personalized learning plans.\n\n"
        "✨ I can help you with:\n"
        "📚 Finding books that match your interests\n"
        "🎯 Discovering challenges to grow your skills\n"
        "🗺️ Creating personalized learning roadmaps\n"
        "💪 Staying motivated on your journey\n"
        "📊 Tracking your learning progress\n\n"
        f"What would you like to explore today? Remember, {MOTTO.lower()} 🌱"
    )
    return reply


def compose_reply(
    intent: str,
    message: str,
    profile: Optional[Dict[str, Any]],
    books: List[Dict[str, Any]],
    challenges: List[Dict[str, Any]],
    activity: Optional[Dict[str, Any]],
) -> str:
    """Dispatch to the composer for *intent*; unknown intents get a greeting."""
    if intent == "book_request":
        return book_recommendation_reply(books, profile, activity)
    if intent == "challenge_request":
        return challenge_recommendation_reply(challenges, profile, activity)
    if intent == "motivation_request":
        return motivational_reply(profile, activity)
    if intent == "plan_request":
        return learning_plan_reply(message, profile, books, challenges)
    if intent == "progress_inquiry":
        return progress_reply(profile, activity)
    return greeting_reply(profile, activity)


def offline_learning_plan(goals: str, level: str, time_commitment: str) -> str:
    """Structured plan for /generate-plan when no LLM is available."""
    areas = extract_learning_goals(goals) or ["your chosen topic"]
    focus = ", ".join(areas)
    return "\n".join([
        f"🐢 **Learning Plan: {goals}**",
        f"Level: {level} | Time commitment: {time_commitment}\n",
        "**Phase 1: Foundation (Weeks 1-2)**",
        f"- Daily: read an introductory resource on {focus}",
        "- Milestone: summarise the core ideas in your own words\n",
        "**Phase 2: Practice (Weeks 3-4)**",
        "- Daily: one small exercise applying what you read",
        "- Milestone: join a beginner challenge and complete its first task\n",
        "**Phase 3: Mastery (Weeks 5-8)**",
        "- Daily: tackle a harder problem or teach one idea to someone else",
        "- Milestone: finish a project that uses everything you've learned\n",
        f"Slow and steady wins the race. {MOTTO}",
    ])
