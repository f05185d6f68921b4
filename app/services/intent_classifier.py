"""
Keyword-first intent classification for Tortoise chat messages.

Keyword scoring is cheap and deterministic; only when it is not confident
enough is the LLM classifier consulted.  Without an API key (or when the
LLM call fails) the keyword verdict stands.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from app.config import settings
from app.services.tortoise_llm import LLMServiceError, TortoiseLLMService
from app.utils.helpers import strip_punctuation

logger = logging.getLogger(__name__)


# Evaluated in order; an earlier intent wins a tie
INTENT_PATTERNS: Dict[str, Dict] = {
    "book_request": {
        "keywords": ["book", "read", "reading", "recommend", "suggestion", "literature", "author", "novel"],
        "weight": 1,
    },
    "challenge_request": {
        "keywords": ["challenge", "practice", "exercise", "learn", "skill", "improve", "training", "bootcamp"],
        "weight": 1,
    },
    "plan_request": {
        "keywords": ["plan", "roadmap", "path", "journey", "guide", "how to", "steps", "strategy"],
        "weight": 1,
    },
    "motivation_request": {
        "keywords": ["motivation", "inspire", "encourage", "quote", "wisdom", "advice", "support"],
        "weight": 1,
    },
    "progress_inquiry": {
        "keywords": ["progress", "how am i doing", "my stats", "achievements", "completed", "status"],
        "weight": 1,
    },
}

STOP_WORDS = frozenset([
    "the", "and", "for", "are", "but", "not", "you", "all", "can", "had", "her",
    "was", "one", "our", "out", "day", "get", "has", "him", "his", "how", "its",
    "may", "new", "now", "old", "see", "two", "who", "boy", "did", "she", "use",
    "way", "what", "when", "with",
])

LEARNING_GOALS: Dict[str, List[str]] = {
    "programming": ["programming", "coding", "development", "javascript", "python", "web"],
    "productivity": ["productivity", "efficiency", "time management", "organization"],
    "communication": ["communication", "speaking", "presentation", "writing"],
    "leadership": ["leadership", "management", "team", "leading"],
    "mindfulness": ["mindfulness", "meditation", "wellness", "mental health"],
    "reading": ["reading", "books", "literature"],
    "learning": ["learning", "study", "education", "knowledge"],
}


def classify_by_keywords(message: str) -> Dict[str, object]:
    """
    Score every intent by the share of its keywords present in *message*.

    Returns ``{"intent": str, "confidence": float}``; ``general``/0 when no
    keyword matches.
    """
    lower = message.lower()
    best = {"intent": "general", "confidence": 0.0}

    for intent, pattern in INTENT_PATTERNS.items():
        keywords = pattern["keywords"]
        score = sum(pattern["weight"] for kw in keywords if kw in lower)
        confidence = min(score / len(keywords), 1.0)
        if confidence > best["confidence"]:
            best = {"intent": intent, "confidence": confidence}

    return best


async def classify_intent(
    message: str,
    llm: Optional[TortoiseLLMService] = None,
) -> Dict[str, object]:
    """
    Keyword classification with an LLM fallback for uncertain messages.

    Without an LLM the keyword result stands; a failed LLM call gives
    ``general`` with confidence 0.3.
    """
    keyword_intent = classify_by_keywords(message)
    if keyword_intent["confidence"] > settings.INTENT_KEYWORD_CONFIDENCE:
        return keyword_intent

    llm = llm or TortoiseLLMService()
    if not llm.enabled:
        return keyword_intent

    try:
        return await llm.classify_intent(message)
    except LLMServiceError as exc:
        logger.warning("LLM intent classification failed: %s", exc)
        return {"intent": "general", "confidence": 0.3}


def extract_keywords(message: str) -> List[str]:
    """Lowercased content words (>2 chars, no stop words) in message order."""
    words = strip_punctuation(message.lower()).split()
    return [w for w in words if len(w) > 2 and w not in STOP_WORDS]


def extract_learning_goals(message: str) -> List[str]:
    """Goal areas whose trigger words appear in *message*."""
    lower = message.lower()
    return [
        goal
        for goal, keywords in LEARNING_GOALS.items()
        if any(kw in lower for kw in keywords)
    ]
