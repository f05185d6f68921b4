"""
Tortoise (AI assistant) endpoints.

Routes
------
POST /api/ai/ask              - streamed chat reply (text/plain chunks)
POST /api/ai/classify-intent  - intent of a single message       → IntentResponse
POST /api/ai/generate-plan    - structured learning plan         → LearningPlanResponse
POST /api/ai/feedback         - rate a logged conversation       → SuccessResponse
"""
import logging
from typing import AsyncIterator, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import AsyncSessionLocal, get_db
from app.dependencies.auth import get_optional_user_id
from app.models.schemas import (
    AskRequest,
    ClassifyIntentRequest,
    FeedbackRequest,
    IntentResponse,
    LearningPlanRequest,
    LearningPlanResponse,
    SuccessResponse,
)
from app.services.chat_service import ChatService, ChatTurn
from app.services.intent_classifier import classify_intent
from app.services.tortoise_llm import LLMServiceError, TortoiseLLMService

logger = logging.getLogger(__name__)

router = APIRouter()


def _failure_detail(exc: Exception, message: str = "Failed to process request") -> str:
    if settings.is_development:
        return f"{message}: {exc}"
    return message


async def _stream_and_record(
    svc: ChatService, turn: ChatTurn, chunks: AsyncIterator[str]
) -> AsyncIterator[str]:
    """Relay reply chunks, then log the exchange on its own session."""
    parts: List[str] = []
    try:
        async for chunk in chunks:
            parts.append(chunk)
            yield chunk
    except LLMServiceError as exc:
        # Headers are already sent; the client sees a truncated reply
        logger.error("Reply stream for conversation %s broke off: %s", turn.conversation_id, exc)

    async with AsyncSessionLocal() as session:
        await svc.record(turn, "".join(parts), session)
    logger.info(
        "Conversation %s answered in %d ms (%d chars)",
        turn.conversation_id,
        turn.elapsed_ms,
        sum(len(p) for p in parts),
    )


# ---------------------------------------------------------------------------
# POST /ask - streamed Tortoise reply
# ---------------------------------------------------------------------------

@router.post("/ask")
async def ask(
    request: AskRequest,
    header_user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Answer a learner's message.

    intent → preferences → book/challenge search (history fallback) → reply.
    The conversation id is returned in ``X-Conversation-Id`` so the client
    can submit feedback for this exchange later.
    """
    message = (request.message or "").strip()
    if not message:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")

    svc = ChatService()
    try:
        turn = await svc.prepare(message, request.user_id or header_user_id, db)
        chunks = await svc.open_reply(turn, db)
    except Exception as exc:
        logger.error("ask error: %s", exc, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_failure_detail(exc),
        )

    return StreamingResponse(
        _stream_and_record(svc, turn, chunks),
        media_type="text/plain; charset=utf-8",
        headers={
            "X-Conversation-Id": turn.conversation_id,
            "Cache-Control": "no-cache",
        },
    )


# ---------------------------------------------------------------------------
# POST /classify-intent
# ---------------------------------------------------------------------------

@router.post("/classify-intent", response_model=IntentResponse)
async def classify(request: ClassifyIntentRequest) -> IntentResponse:
    """Keyword classifier with LLM fallback for low-confidence messages."""
    if not request.message or not request.message.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")

    try:
        result = await classify_intent(request.message, TortoiseLLMService())
    except Exception as exc:
        logger.error("classify_intent error: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_failure_detail(exc, "Failed to classify intent"),
        )
    return IntentResponse(intent=result["intent"], confidence=result["confidence"])


# ---------------------------------------------------------------------------
# POST /generate-plan
# ---------------------------------------------------------------------------

@router.post("/generate-plan", response_model=LearningPlanResponse)
async def generate_plan(
    request: LearningPlanRequest,
    header_user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
) -> LearningPlanResponse:
    """Learning plan for *goals*; logged as a ``plan_request`` when a user is given."""
    if not request.goals or not request.goals.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Goals are required")

    try:
        plan = await ChatService().generate_plan(
            request.goals.strip(),
            request.level or "beginner",
            request.time_commitment or "30 minutes daily",
            request.user_id or header_user_id,
            db,
        )
    except LLMServiceError as exc:
        logger.error("generate_plan error: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_failure_detail(exc, "Failed to generate learning plan"),
        )
    return LearningPlanResponse(plan=plan)


# ---------------------------------------------------------------------------
# POST /feedback
# ---------------------------------------------------------------------------

@router.post("/feedback", response_model=SuccessResponse)
async def submit_feedback(
    request: FeedbackRequest,
    db: AsyncSession = Depends(get_db),
) -> SuccessResponse:
    """Store a 1–5 satisfaction rating (and optional comment) on a conversation."""
    found = await ChatService().submit_feedback(
        request.conversation_id, request.rating, request.feedback, db
    )
    if not found:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Conversation {request.conversation_id} not found.",
        )
    logger.info("Feedback %d/5 recorded for conversation %s", request.rating, request.conversation_id)
    return SuccessResponse()
