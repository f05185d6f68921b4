"""
Main FastAPI application for the LifelongLearners backend.
Handles CORS, request logging middleware, lifespan events, and router registration.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import close_db, init_db
from app.routers import ai, books, challenges, health, search, users
from app.services.tortoise_llm import TortoiseLLMService

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


async def _check_llm() -> bool:
    """
    Verify the OpenAI-compatible endpoint answers.
    Never raises; without an API key the Tortoise runs on templates.
    """
    llm = TortoiseLLMService()
    if not llm.enabled:
        logger.warning(
            "⚠ OPENAI_API_KEY is not set - the Tortoise will answer from built-in templates"
        )
        return False

    reachable = await llm.check_health()
    if reachable:
        logger.info(
            "✓ LLM endpoint reachable - chat model '%s', classifier '%s'",
            settings.OPENAI_CHAT_MODEL,
            settings.OPENAI_CLASSIFIER_MODEL,
        )
    else:
        logger.error("✗ LLM endpoint %s unreachable - chat replies will fail", settings.OPENAI_BASE_URL)
    return reachable


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting LifelongLearners backend …")
    logger.info("=" * 60)

    # 1 - Database (required; raises on failure)
    await _check_database()

    # 2 - LLM (optional; logs warnings but continues)
    await _check_llm()

    logger.info("=" * 60)
    logger.info("  LifelongLearners backend ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Environment: %s", settings.ENVIRONMENT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down LifelongLearners backend …")
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="LifelongLearners API",
    description=(
        "**LifelongLearners** - learning community platform with the Tortoise, "
        "an AI learning companion.\n\n"
        "Life is teaching, never stop learning.\n\n"
        "Key endpoints:\n"
        "- `POST /api/ai/ask` - streamed Tortoise chat\n"
        "- `POST /api/ai/generate-plan` - personalised learning plan\n"
        "- `GET  /api/search/books` - fuzzy book search\n"
        "- `GET  /api/search/recommendations/{user_id}` - history-based picks\n"
        "- `GET  /api/users/{user_id}/insights` - learning insights\n"
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Conversation-Id", "X-Process-Time"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    For streamed chat replies the time covers the work up to the first chunk.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling from the frontend
    if request.url.path not in ("/api/health/", "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Global exception handler
# ---------------------------------------------------------------------------

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    content = {
        "detail": "Internal server error",
        "path": str(request.url.path),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if settings.is_development:
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,      prefix="/api/health",     tags=["Health"])
app.include_router(ai.router,          prefix="/api/ai",         tags=["Tortoise"])
app.include_router(search.router,      prefix="/api/search",     tags=["Search"])
app.include_router(users.router,       prefix="/api/users",      tags=["Users"])
app.include_router(books.router,       prefix="/api/books",      tags=["Books"])
app.include_router(challenges.router,  prefix="/api/challenges", tags=["Challenges"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root - returns basic service info."""
    return {
        "name": "LifelongLearners API",
        "version": "0.1.0",
        "description": "Learning community backend with the Tortoise AI companion",
        "docs": "/docs",
        "health": "/api/health/",
        "endpoints": {
            "ai": "/api/ai",
            "search": "/api/search",
            "users": "/api/users",
            "books": "/api/books",
            "challenges": "/api/challenges",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        log_level="info",
    )
