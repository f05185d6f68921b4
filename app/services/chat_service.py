"""
Tortoise chat orchestration: intent → profile → search → reply → log.

Public API
----------
ChatService.prepare(message, user_id, db)           -> ChatTurn
ChatService.open_reply(turn, db)                    -> AsyncIterator[str]
ChatService.record(turn, full_response, db)         -> None
ChatService.generate_plan(goals, level, time, user_id, db) -> str
ChatService.submit_feedback(conversation_id, rating, feedback, db) -> bool
"""
from __future__ import annotations

import dataclasses
import logging
import time
import uuid
from typing import Any, AsyncIterator, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database_models import (
    AIConversation,
    Challenge,
    User,
    UserChallenge,
    UserInteraction,
)
from app.services import search_service
from app.services.intent_classifier import classify_intent, extract_keywords
from app.services.tortoise_llm import TortoiseLLMService
from app.services.tortoise_responses import compose_reply, offline_learning_plan
from app.utils.helpers import unique_preserving_order

logger = logging.getLogger(__name__)

BOOK_INTENTS = ("book_request", "general")
CHALLENGE_INTENTS = ("challenge_request", "general")


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class ChatTurn:
    """Everything gathered for one message before the reply is generated."""

    conversation_id: str
    message: str
    user_id: Optional[str]          # only set when the user exists
    intent: str
    confidence: float
    keywords: List[str]
    profile: Optional[Dict[str, Any]]
    preferences: Dict[str, Any]
    search_results: Dict[str, List[Dict[str, Any]]]
    started_at: float = dataclasses.field(default_factory=time.monotonic)

    @property
    def ai_context(self) -> Dict[str, Any]:
        return {
            "intent": self.intent,
            "userPreferences": self.preferences,
            "searchResults": self.search_results,
            "userInterests": self.preferences.get("learning_interests") or [],
        }

    @property
    def recommendations(self) -> List[Dict[str, Any]]:
        return [*self.search_results.get("books", []), *self.search_results.get("challenges", [])]

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)


def user_profile(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "role": getattr(user.role, "value", user.role),
        "learning_interests": list(user.learning_interests or []),
        "language_preference": user.language_preference,
    }


def user_preferences(user: Optional[User]) -> Dict[str, Any]:
    """Stored preferences merged with interests and language."""
    if user is None:
        return {}
    return {
        **(user.preferences or {}),
        "learning_interests": list(user.learning_interests or []),
        "language_preference": user.language_preference,
    }


# ---------------------------------------------------------------------------
# ChatService
# ---------------------------------------------------------------------------

class ChatService:
    """Runs one Tortoise exchange end to end."""

    def __init__(self, llm: Optional[TortoiseLLMService] = None) -> None:
        self._llm = llm or TortoiseLLMService()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def prepare(
        self,
        message: str,
        user_id: Optional[str],
        db: AsyncSession,
    ) -> ChatTurn:
        """
        Steps before the reply:

        1. Classify the intent.
        2. Load the user's preferences.
        3. Search books/challenges with the message keywords.
        4. Fall back to history-based recommendations when nothing matched.
        """
        t0 = time.monotonic()
        intent_result = await classify_intent(message, self._llm)
        intent = str(intent_result["intent"])
        logger.info(
            "Intent classified: %s (confidence: %.2f)", intent, intent_result["confidence"]
        )

        user = await self._load_user(user_id, db) if user_id else None
        preferences = user_preferences(user)

        keywords = extract_keywords(message)
        query = " ".join(keywords)

        results: Dict[str, List[Dict[str, Any]]] = {"books": [], "challenges": []}
        if intent in BOOK_INTENTS:
            results["books"] = await search_service.search_books(db, query, preferences)
        if intent in CHALLENGE_INTENTS:
            results["challenges"] = await search_service.search_challenges(db, query, preferences)

        if not results["books"] and not results["challenges"] and user is not None:
            history = await search_service.get_recommendations_based_on_history(db, user.id)
            results = {"books": history["books"], "challenges": history["challenges"]}

        return ChatTurn(
            conversation_id=str(uuid.uuid4()),
            message=message,
            user_id=user.id if user else None,
            intent=intent,
            confidence=float(intent_result["confidence"]),
            keywords=keywords,
            profile=user_profile(user) if user else None,
            preferences=preferences,
            search_results=results,
            started_at=t0,
        )

    async def open_reply(self, turn: ChatTurn, db: AsyncSession) -> AsyncIterator[str]:
        """
        Start the reply and return an iterator over its text chunks.

        The first chunk is fetched eagerly so LLM failures surface before any
        response headers are sent.
        """
        stream = self._reply_chunks(turn, db)
        try:
            first = await stream.__anext__()
        except StopAsyncIteration:
            first = ""
        return self._chain(first, stream)

    async def record(self, turn: ChatTurn, full_response: str, db: AsyncSession) -> None:
        """Persist the exchange and fold keywords into the user's interests."""
        try:
            db.add(
                AIConversation(
                    id=turn.conversation_id,
                    user_id=turn.user_id,
                    message=turn.message,
                    intent=turn.intent,
                    ai_response=full_response,
                    recommendations_given=turn.recommendations,
                    context_used=turn.ai_context,
                    response_time_ms=turn.elapsed_ms,
                )
            )
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Error logging conversation %s: %s", turn.conversation_id, exc)
            return

        if turn.user_id and turn.keywords:
            await self.update_user_interests(turn.user_id, turn.keywords, db)

    async def update_user_interests(
        self, user_id: str, keywords: List[str], db: AsyncSession
    ) -> None:
        """Existing interests first, then new keywords; unique and capped."""
        try:
            user = await self._load_user(user_id, db)
            if user is None:
                return
            merged = unique_preserving_order([*(user.learning_interests or []), *keywords])
            user.learning_interests = merged[: settings.MAX_LEARNING_INTERESTS]
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Error updating user interests for %s: %s", user_id, exc)

    async def generate_plan(
        self,
        goals: str,
        level: str,
        time_commitment: str,
        user_id: Optional[str],
        db: AsyncSession,
    ) -> str:
        """Learning plan from the LLM (or templates) and a ``plan_request`` log row."""
        t0 = time.monotonic()
        if self._llm.enabled:
            plan = await self._llm.generate_learning_plan(goals, level, time_commitment)
        else:
            plan = offline_learning_plan(goals, level, time_commitment)

        if user_id:
            user = await self._load_user(user_id, db)
            try:
                db.add(
                    AIConversation(
                        user_id=user.id if user else None,
                        message=f"Generate learning plan: {goals}",
                        intent="plan_request",
                        ai_response=plan,
                        response_time_ms=int((time.monotonic() - t0) * 1000),
                    )
                )
                await db.commit()
            except SQLAlchemyError as exc:
                await db.rollback()
                logger.error("Error logging plan generation: %s", exc)
        return plan

    async def submit_feedback(
        self,
        conversation_id: str,
        rating: int,
        feedback: Optional[str],
        db: AsyncSession,
    ) -> bool:
        """Attach a rating to a logged conversation. False when it does not exist."""
        conversation = await db.get(AIConversation, conversation_id)
        if conversation is None:
            return False
        conversation.satisfaction_rating = rating
        if feedback is not None:
            conversation.feedback = feedback
        await db.flush()
        return True

    async def get_user_recent_activity(
        self, user_id: Optional[str], db: AsyncSession
    ) -> Optional[Dict[str, Any]]:
        """Recent interactions, joined challenges and conversations for templates."""
        if not user_id:
            return None
        try:
            interactions = (
                await db.execute(
                    select(UserInteraction)
                    .where(UserInteraction.user_id == user_id)
                    .order_by(UserInteraction.created_at.desc())
                    .limit(10)
                )
            ).scalars().all()
            memberships = (
                await db.execute(
                    select(UserChallenge, Challenge)
                    .join(Challenge, UserChallenge.challenge_id == Challenge.id)
                    .where(UserChallenge.user_id == user_id)
                    .order_by(UserChallenge.joined_at.desc())
                    .limit(5)
                )
            ).all()
            conversations = (
                await db.execute(
                    select(AIConversation)
                    .where(AIConversation.user_id == user_id)
                    .order_by(AIConversation.created_at.desc())
                    .limit(5)
                )
            ).scalars().all()
        except SQLAlchemyError as exc:
            logger.error("Error fetching user activity for %s: %s", user_id, exc)
            return None

        return {
            "interactions": [
                {"interaction_type": i.interaction_type, "created_at": i.created_at}
                for i in interactions
            ],
            "joined_challenges": [
                {
                    "joined_at": membership.joined_at,
                    "challenge": {
                        "title": challenge.title,
                        "type": getattr(challenge.type, "value", challenge.type),
                        "status": getattr(challenge.status, "value", challenge.status),
                    },
                }
                for membership, challenge in memberships
            ],
            "recent_conversations": [
                {"message": c.message, "intent": c.intent, "created_at": c.created_at}
                for c in conversations
            ],
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _reply_chunks(self, turn: ChatTurn, db: AsyncSession) -> AsyncIterator[str]:
        if self._llm.enabled:
            async for chunk in self._llm.generate_ai_response(turn.message, turn.ai_context):
                yield chunk
            return

        activity = await self.get_user_recent_activity(turn.user_id, db)
        yield compose_reply(
            turn.intent,
            turn.message,
            turn.profile,
            turn.search_results.get("books", []),
            turn.search_results.get("challenges", []),
            activity,
        )

    @staticmethod
    async def _chain(first: str, rest: AsyncIterator[str]) -> AsyncIterator[str]:
        if first:
            yield first
        async for chunk in rest:
            yield chunk

    @staticmethod
    async def _load_user(user_id: str, db: AsyncSession) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()
