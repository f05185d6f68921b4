"""
OpenAI-compatible chat-completions client for the Tortoise.

All prompts are module-level constants so they can be tuned without touching
logic code.  Requests go straight over httpx; any OpenAI-compatible endpoint
(OpenAI, Groq, a local gateway) works by changing OPENAI_BASE_URL.

Public API
----------
TortoiseLLMService.classify_intent(message)                     -> Dict
TortoiseLLMService.generate_ai_response(message, context)       -> AsyncIterator[str]
TortoiseLLMService.generate_learning_plan(goals, level, time)   -> str
TortoiseLLMService.check_health()                               -> bool
build_system_prompt(context) / build_user_prompt(message, context)
"""
from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


class LLMServiceError(Exception):
    """Raised when the LLM endpoint cannot produce a usable answer."""


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_CLASSIFIER_SYSTEM_PROMPT = """\
You are an intent classifier for a learning platform. Classify the user's \
message into one of these categories:
- book_request: User wants book recommendations
- challenge_request: User wants learning challenges or practice exercises
- plan_request: User wants a learning plan, roadmap, or guidance
- motivation_request: User wants motivation, quotes, or encouragement
- progress_inquiry: User asks about their own progress or achievements
- general: General conversation or unclear intent

Respond with only the category name and confidence (0-1) in JSON format: \
{"intent": "category", "confidence": 0.95}"""

_TORTOISE_SYSTEM_PROMPT = """\
You are the Tortoise, a wise AI learning companion for the LifelongLearners \
platform. Your motto is "Life is teaching, never stop learning."

Your personality:
- Wise, patient, and encouraging like a tortoise
- Passionate about lifelong learning
- Supportive and motivational
- Practical and actionable in advice
- Culturally aware (support both English and Amharic learners)

Your capabilities:
- Recommend books from our curated library
- Suggest learning challenges
- Create personalized learning plans
- Provide motivation and wisdom
- Support multiple languages (especially English and Amharic)

Guidelines:
- Always be encouraging and positive
- Provide specific, actionable advice
- Reference the platform's resources when relevant
- Keep responses concise but helpful
- End responses with motivational elements
- Use the tortoise wisdom: slow and steady wins the race

Context about the user:
{preferences}
{interests}
{resources}"""

_USER_PROMPT_CLOSING = (
    "Please provide a helpful response as the Tortoise. If you found relevant "
    "resources above, incorporate them naturally into your response. Always end "
    "with encouragement and remind them that \"life is teaching, never stop learning.\""
)

_PLAN_SYSTEM_PROMPT = (
    "You are the Tortoise, creating personalized learning plans. Create a "
    "structured, practical learning plan that follows the \"slow and steady "
    "wins the race\" philosophy."
)

_PLAN_USER_PROMPT = """\
Create a learning plan for:
Goals: {goals}
Current level: {level}
Time commitment: {time_commitment}

Format as a structured plan with weeks/phases, daily activities, and milestones."""

VALID_INTENTS = (
    "book_request",
    "challenge_request",
    "plan_request",
    "motivation_request",
    "progress_inquiry",
    "general",
)


# ---------------------------------------------------------------------------
# Prompt builders
# ---------------------------------------------------------------------------

def _dumps(value: Any) -> str:
    return json.dumps(value, default=str, ensure_ascii=False)


def build_system_prompt(context: Dict[str, Any]) -> str:
    """Tortoise persona followed by whatever user context is available."""
    preferences = context.get("userPreferences")
    interests = context.get("userInterests")
    resources = context.get("searchResults")
    return _TORTOISE_SYSTEM_PROMPT.format(
        preferences=(
            f"User preferences: {_dumps(preferences)}"
            if preferences
            else "No user preferences available"
        ),
        interests=(
            f"User interests: {', '.join(interests)}"
            if interests
            else "No user interests available"
        ),
        resources=(
            f"Available resources found: {_dumps(resources)}"
            if resources
            else "No specific resources found"
        ),
    )


def build_user_prompt(message: str, context: Dict[str, Any]) -> str:
    """User message plus the intent and numbered resource listings."""
    lines = [f'User message: "{message}"']

    if context.get("intent"):
        lines.append(f"Detected intent: {context['intent']}")

    results = context.get("searchResults") or {}
    books = results.get("books") or []
    challenges = results.get("challenges") or []

    if books:
        lines.append("\nRelevant books found:")
        for i, book in enumerate(books, 1):
            lines.append(
                f'{i}. "{book.get("title")}" by {book.get("author")} '
                f'({book.get("language")}, {book.get("format")})'
            )
            lines.append(f"   Description: {book.get('description') or ''}")
            lines.append(f"   Tags: {', '.join(book.get('tags') or [])}")

    if challenges:
        lines.append("\nRelevant challenges found:")
        for i, challenge in enumerate(challenges, 1):
            lines.append(f'{i}. "{challenge.get("title")}" ({challenge.get("type")})')
            lines.append(f"   Description: {challenge.get('description') or ''}")
            lines.append(f"   Tags: {', '.join(challenge.get('tags') or [])}")

    preferences = context.get("userPreferences") or {}
    if preferences:
        lines.append("\nUser context:")
        if preferences.get("language_preference"):
            lines.append(f"Preferred language: {preferences['language_preference']}")
        if preferences.get("difficulty_level"):
            lines.append(f"Preferred difficulty: {preferences['difficulty_level']}")

    lines.append("\n" + _USER_PROMPT_CLOSING)
    return "\n".join(lines)


def parse_intent_reply(raw: str) -> Dict[str, Any]:
    """
    Parse the classifier's JSON reply.

    Unknown labels collapse to ``general``; a missing confidence becomes 0.5.
    Anything unparsable yields ``general`` with confidence 0.3.
    """
    text = (raw or "").strip()
    # Some models wrap JSON in a markdown fence
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        logger.warning("parse_intent_reply: unparsable reply %r", raw[:100] if raw else raw)
        return {"intent": "general", "confidence": 0.3}
    if not isinstance(data, dict):
        return {"intent": "general", "confidence": 0.3}

    intent = data.get("intent")
    if intent not in VALID_INTENTS:
        intent = "general"
    try:
        confidence = float(data.get("confidence") or 0.5)
    except (TypeError, ValueError):
        confidence = 0.5
    return {"intent": intent, "confidence": max(0.0, min(confidence, 1.0))}


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class TortoiseLLMService:
    """
    Thin wrapper over ``POST {OPENAI_BASE_URL}/chat/completions``.

    *transport* lets callers swap the network layer (tests pass an
    ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = settings.OPENAI_API_KEY if api_key is None else api_key
        self._base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def classify_intent(self, message: str) -> Dict[str, Any]:
        """Ask the classifier model for ``{"intent", "confidence"}``."""
        raw = await self._complete(
            [
                {"role": "system", "content": _CLASSIFIER_SYSTEM_PROMPT},
                {"role": "user", "content": message},
            ],
            model=settings.OPENAI_CLASSIFIER_MODEL,
            max_tokens=50,
            temperature=0.1,
        )
        return parse_intent_reply(raw)

    async def generate_ai_response(
        self, message: str, context: Dict[str, Any]
    ) -> AsyncIterator[str]:
        """Stream the Tortoise's reply as text deltas."""
        messages = [
            {"role": "system", "content": build_system_prompt(context)},
            {"role": "user", "content": build_user_prompt(message, context)},
        ]
        try:
            async for delta in self._stream(
                messages,
                model=settings.OPENAI_CHAT_MODEL,
                max_tokens=1000,
                temperature=0.7,
            ):
                yield delta
        except LLMServiceError as exc:
            logger.error("generate_ai_response failed: %s", exc)
            raise LLMServiceError("Failed to generate AI response") from exc

    async def generate_learning_plan(
        self,
        goals: str,
        level: str = "beginner",
        time_commitment: str = "30 minutes daily",
    ) -> str:
        """Single-shot structured learning plan."""
        try:
            plan = await self._complete(
                [
                    {"role": "system", "content": _PLAN_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": _PLAN_USER_PROMPT.format(
                            goals=goals, level=level, time_commitment=time_commitment
                        ),
                    },
                ],
                model=settings.OPENAI_CHAT_MODEL,
                max_tokens=800,
                temperature=0.7,
            )
        except LLMServiceError as exc:
            logger.error("generate_learning_plan failed: %s", exc)
            raise LLMServiceError("Failed to generate learning plan") from exc
        if not plan.strip():
            raise LLMServiceError("Failed to generate learning plan")
        return plan

    async def check_health(self) -> bool:
        """True when the endpoint answers ``GET /models`` with 200."""
        if not self.enabled:
            return False
        try:
            async with self._client(timeout=10.0) as client:
                resp = await client.get(f"{self._base_url}/models", headers=self._headers())
            return resp.status_code == 200
        except httpx.HTTPError as exc:
            logger.warning("LLM health check failed: %s", exc)
            return False

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        t = httpx.Timeout(float(timeout or settings.OPENAI_TIMEOUT), connect=10.0)
        return httpx.AsyncClient(timeout=t, transport=self._transport)

    async def _complete(
        self,
        messages: List[Dict[str, str]],
        *,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Non-streaming completion; returns the first choice's content."""
        if not self.enabled:
            raise LLMServiceError("OPENAI_API_KEY is not configured")
        payload = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        try:
            async with self._client() as client:
                resp = await client.post(
                    f"{self._base_url}/chat/completions",
                    headers=self._headers(),
                    json=payload,
                )
        except httpx.HTTPError as exc:
            logger.error("_complete transport error: %s", exc)
            raise LLMServiceError(str(exc)) from exc

        if resp.status_code != 200:
            logger.error("_complete: HTTP %d: %s", resp.status_code, resp.text[:200])
            raise LLMServiceError(f"LLM endpoint returned HTTP {resp.status_code}")
        try:
            return resp.json()["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise LLMServiceError("Malformed completion payload") from exc

    async def _stream(
        self,
        messages: List[Dict[str, str]],
        *,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> AsyncIterator[str]:
        """Server-sent-events completion; yields non-empty content deltas."""
        if not self.enabled:
            raise LLMServiceError("OPENAI_API_KEY is not configured")
        payload = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "stream": True,
        }
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST",
                    f"{self._base_url}/chat/completions",
                    headers=self._headers(),
                    json=payload,
                ) as resp:
                    if resp.status_code != 200:
                        body = await resp.aread()
                        logger.error("_stream: HTTP %d: %s", resp.status_code, body[:200])
                        raise LLMServiceError(f"LLM endpoint returned HTTP {resp.status_code}")

                    async for line in resp.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        data = line[len("data:"):].strip()
                        if data == "[DONE]":
                            break
                        try:
                            chunk = json.loads(data)
                        except json.JSONDecodeError:
                            logger.warning("_stream: skipping malformed event %r", data[:80])
                            continue
                        choices = chunk.get("choices") or []
                        if not choices:
                            continue
                        content = (choices[0].get("delta") or {}).get("content")
                        if content:
                            yield content
        except httpx.HTTPError as exc:
            logger.error("_stream transport error: %s", exc)
            raise LLMServiceError(str(exc)) from exc
