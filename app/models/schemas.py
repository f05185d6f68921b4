"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum


# Enums (matching database enums)
class IntentSchema(str, Enum):
    """Intents the Tortoise can recognise in a chat message."""

    BOOK_REQUEST = "book_request"
    CHALLENGE_REQUEST = "challenge_request"
    PLAN_REQUEST = "plan_request"
    MOTIVATION_REQUEST = "motivation_request"
    PROGRESS_INQUIRY = "progress_inquiry"
    GENERAL = "general"


class RoleSchema(str, Enum):
    LEARNER = "learner"
    CREATOR = "creator"


class BookFormatSchema(str, Enum):
    PDF = "pdf"
    AUDIO = "audio"
    PRINT = "print"
    EBOOK = "ebook"


class ChallengeTypeSchema(str, Enum):
    READING = "reading"
    CODING = "coding"
    SPEAKING = "speaking"
    CUSTOM = "custom"


class ChallengeStatusSchema(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class VisibilitySchema(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class DifficultySchema(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# User Schemas
class UserCreate(BaseModel):
    """Profile registration after sign-up with the hosted auth service."""

    id: Optional[str] = Field(None, max_length=36)
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    role: RoleSchema = RoleSchema.LEARNER


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: RoleSchema
    preferences: Dict[str, Any] = {}
    learning_interests: List[str] = []
    language_preference: str = "english"
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PreferencesUpdate(BaseModel):
    """Body for POST /api/users/{id}/preferences. Missing fields reset to defaults."""

    preferences: Optional[Dict[str, Any]] = None
    learning_interests: Optional[List[str]] = None
    language_preference: Optional[str] = None


class InteractionCreate(BaseModel):
    interaction_type: str = Field(..., min_length=1, max_length=100)
    entity_type: str = Field(..., min_length=1, max_length=100)
    entity_id: Optional[str] = None
    metadata: Dict[str, Any] = {}


class InteractionLogged(BaseModel):
    success: bool = True
    interaction_id: str


class SuccessResponse(BaseModel):
    success: bool = True


# Book Schemas
class BookCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    author: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    tags: List[str] = []
    language: str = "english"
    format: BookFormatSchema = BookFormatSchema.PDF
    difficulty_level: Optional[DifficultySchema] = None


class BookResponse(BaseModel):
    id: str
    title: str
    author: str
    description: Optional[str] = None
    tags: List[str] = []
    language: str
    format: BookFormatSchema
    difficulty_level: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    # Fuzzy-search distance (0 = perfect match); only set by search
    score: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class BookSearchResponse(BaseModel):
    books: List[BookResponse]
    total: int


# Challenge Schemas
class ChallengeCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: ChallengeTypeSchema
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    visibility: VisibilitySchema = VisibilitySchema.PUBLIC
    tags: List[str] = []
    difficulty_level: DifficultySchema = DifficultySchema.BEGINNER
    status: ChallengeStatusSchema = ChallengeStatusSchema.UPCOMING


class ChallengeResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    type: ChallengeTypeSchema
    created_by: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    visibility: VisibilitySchema
    tags: List[str] = []
    difficulty_level: DifficultySchema
    status: ChallengeStatusSchema
    created_at: Optional[datetime] = None
    participant_count: Optional[int] = None
    score: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class ChallengeSearchResponse(BaseModel):
    challenges: List[ChallengeResponse]
    total: int


class MembershipResponse(BaseModel):
    id: str
    user_id: str
    challenge_id: str
    joined_at: datetime
    completed_at: Optional[datetime] = None
    progress: Dict[str, Any] = {}
    challenge: Optional[ChallengeResponse] = None

    model_config = ConfigDict(from_attributes=True)


class MembershipCheckResponse(BaseModel):
    challenge_id: str
    user_id: str
    joined: bool


# Recommendation Schemas
class RecommendationsResponse(BaseModel):
    """History-based recommendations for one user."""

    books: List[BookResponse] = []
    challenges: List[ChallengeResponse] = []
    interests: List[str] = []


# Tortoise (AI) Schemas
class AskRequest(BaseModel):
    """Request body for POST /api/ai/ask."""

    user_id: Optional[str] = None
    message: Optional[str] = None
    context: Dict[str, Any] = {}


class ClassifyIntentRequest(BaseModel):
    message: Optional[str] = None


class IntentResponse(BaseModel):
    intent: IntentSchema
    confidence: float = Field(..., ge=0.0, le=1.0)


class LearningPlanRequest(BaseModel):
    user_id: Optional[str] = None
    goals: Optional[str] = None
    level: Optional[str] = None
    time_commitment: Optional[str] = None


class LearningPlanResponse(BaseModel):
    plan: str


class FeedbackRequest(BaseModel):
    conversation_id: str
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = None


class ConversationResponse(BaseModel):
    id: str
    message: str
    intent: Optional[str] = None
    ai_response: Optional[str] = None
    recommendations_given: List[Dict[str, Any]] = []
    satisfaction_rating: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Insights Schemas
class TopicCount(BaseModel):
    topic: str
    count: int


class ChallengeTypeCount(BaseModel):
    type: str
    count: int


class LearningInsightsResponse(BaseModel):
    most_discussed_topics: List[TopicCount]
    learning_frequency: str
    preferred_challenge_types: List[ChallengeTypeCount]
    satisfaction_trend: str


# Health Schemas
class HealthCheckResponse(BaseModel):
    """Schema for health check endpoint."""

    status: str
    database: str
    llm: str
    environment: str
    timestamp: datetime
    version: str = "0.1.0"
