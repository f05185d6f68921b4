"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timezone
import logging

from app.config import settings
from app.database import get_db, ping_db
from app.models.schemas import HealthCheckResponse
from app.services.tortoise_llm import TortoiseLLMService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint to verify system status.

    Returns:
        HealthCheckResponse with status of the database and the LLM.
        ``llm`` is ``offline`` when no API key is configured; the Tortoise
        then answers from templates and the service still counts as healthy.
    """
    db_status = "ok" if await ping_db(db) else "error"

    llm_status = "offline"
    llm = TortoiseLLMService()
    if llm.enabled:
        llm_status = "ok" if await llm.check_health() else "error"

    overall_status = "healthy" if db_status == "ok" and llm_status != "error" else "degraded"
    if overall_status != "healthy":
        logger.warning("Health degraded: database=%s llm=%s", db_status, llm_status)

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        llm=llm_status,
        environment=settings.ENVIRONMENT,
        timestamp=datetime.now(timezone.utc),
    )
