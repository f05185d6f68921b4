"""
SQLAlchemy ORM models for the LifelongLearners database.
Mirrors the tables of the hosted Postgres project (users, books, challenges,
memberships, Tortoise conversations and interaction events).
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Enum as SQLEnum,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime, timezone
import enum
import uuid

from app.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls) -> SQLEnum:
    # Persist the lowercase values the hosted schema uses, not member names
    return SQLEnum(enum_cls, values_callable=lambda cls: [m.value for m in cls])


# Enums
class UserRole(str, enum.Enum):
    """Platform roles. Creators may publish books and challenges."""

    LEARNER = "learner"
    CREATOR = "creator"


class BookFormat(str, enum.Enum):
    PDF = "pdf"
    AUDIO = "audio"
    PRINT = "print"
    EBOOK = "ebook"


class ChallengeType(str, enum.Enum):
    READING = "reading"
    CODING = "coding"
    SPEAKING = "speaking"
    CUSTOM = "custom"


class ChallengeStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class Visibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class DifficultyLevel(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# Models
class User(Base):
    """User profile (id matches the hosted auth service's user id)."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(_enum(UserRole), nullable=False, default=UserRole.LEARNER)
    preferences = Column(JSON, nullable=False, default=dict)
    learning_interests = Column(JSON, nullable=False, default=list)
    language_preference = Column(String(50), nullable=False, default="english")
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    # Relationships
    joined_challenges = relationship(
        "UserChallenge", back_populates="user", cascade="all, delete-orphan"
    )


class Book(Base):
    """Curated book in the platform library."""

    __tablename__ = "books"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(255), nullable=False, index=True)
    author = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    language = Column(String(50), nullable=False, default="english")
    format = Column(_enum(BookFormat), nullable=False, default=BookFormat.PDF)
    difficulty_level = Column(String(50), nullable=True)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    creator = relationship("User")


class Challenge(Base):
    """Time-boxed learning challenge that users can join."""

    __tablename__ = "challenges"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    type = Column(_enum(ChallengeType), nullable=False)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    visibility = Column(_enum(Visibility), nullable=False, default=Visibility.PUBLIC)
    tags = Column(JSON, nullable=False, default=list)
    difficulty_level = Column(
        _enum(DifficultyLevel), nullable=False, default=DifficultyLevel.BEGINNER
    )
    status = Column(
        _enum(ChallengeStatus), nullable=False, default=ChallengeStatus.UPCOMING, index=True
    )
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    # Relationships
    creator = relationship("User")
    members = relationship("UserChallenge", back_populates="challenge", cascade="all, delete-orphan")


class UserChallenge(Base):
    """Membership of a user in a challenge."""

    __tablename__ = "user_challenges"
    __table_args__ = (UniqueConstraint("user_id", "challenge_id", name="uq_user_challenge"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    challenge_id = Column(
        String(36), ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True
    )
    joined_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    progress = Column(JSON, nullable=False, default=dict)

    # Relationships
    user = relationship("User", back_populates="joined_challenges")
    challenge = relationship("Challenge", back_populates="members")


class AIConversation(Base):
    """One question/answer exchange with the Tortoise."""

    __tablename__ = "ai_conversations"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    message = Column(Text, nullable=False)
    intent = Column(String(50), nullable=True)
    ai_response = Column(Text, nullable=True)
    recommendations_given = Column(JSON, nullable=False, default=list)
    context_used = Column(JSON, nullable=False, default=dict)
    response_time_ms = Column(Integer, nullable=True)
    satisfaction_rating = Column(Integer, nullable=True)  # 1-5
    feedback = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False, index=True)


class UserInteraction(Base):
    """Client-reported interaction event (view, join, chat, ...)."""

    __tablename__ = "user_interactions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    interaction_type = Column(String(100), nullable=False)
    entity_type = Column(String(100), nullable=False)
    entity_id = Column(String(36), nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False, index=True)
