"""Database and schema models for the LifelongLearners backend."""
from app.models.database_models import (
    User,
    Book,
    Challenge,
    UserChallenge,
    AIConversation,
    UserInteraction,
    UserRole,
    BookFormat,
    ChallengeType,
    ChallengeStatus,
    Visibility,
    DifficultyLevel,
)
from app.models.schemas import (
    UserResponse,
    BookResponse,
    ChallengeResponse,
    ConversationResponse,
    IntentResponse,
    RecommendationsResponse,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "User",
    "Book",
    "Challenge",
    "UserChallenge",
    "AIConversation",
    "UserInteraction",
    "UserRole",
    "BookFormat",
    "ChallengeType",
    "ChallengeStatus",
    "Visibility",
    "DifficultyLevel",
    # Pydantic schemas
    "UserResponse",
    "BookResponse",
    "ChallengeResponse",
    "ConversationResponse",
    "IntentResponse",
    "RecommendationsResponse",
    "HealthCheckResponse",
]
