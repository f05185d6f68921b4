"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

All 6 tables as defined in app/models/database_models.py:
users, books, challenges, user_challenges, ai_conversations, user_interactions.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _enum(*values: str, name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, create_type=False)


def upgrade() -> None:
    # ── Enum types ────────────────────────────────────────────────────────
    bind = op.get_bind()
    sa.Enum("learner", "creator", name="userrole").create(bind, checkfirst=True)
    sa.Enum("pdf", "audio", "print", "ebook", name="bookformat").create(bind, checkfirst=True)
    sa.Enum("reading", "coding", "speaking", "custom", name="challengetype").create(bind, checkfirst=True)
    sa.Enum("upcoming", "active", "completed", name="challengestatus").create(bind, checkfirst=True)
    sa.Enum("public", "private", name="visibility").create(bind, checkfirst=True)
    sa.Enum("beginner", "intermediate", "advanced", name="difficultylevel").create(bind, checkfirst=True)

    # ── users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("role", _enum("learner", "creator", name="userrole"), nullable=False, server_default="learner"),
        sa.Column("preferences", sa.JSON, nullable=False, server_default=sa.text("'{}'")),
        sa.Column("learning_interests", sa.JSON, nullable=False, server_default=sa.text("'[]'")),
        sa.Column("language_preference", sa.String(50), nullable=False, server_default="english"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── books ─────────────────────────────────────────────────────────────
    op.create_table(
        "books",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False, index=True),
        sa.Column("author", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("tags", sa.JSON, nullable=False, server_default=sa.text("'[]'")),
        sa.Column("language", sa.String(50), nullable=False, server_default="english"),
        sa.Column("format", _enum("pdf", "audio", "print", "ebook", name="bookformat"), nullable=False, server_default="pdf"),
        sa.Column("difficulty_level", sa.String(50), nullable=True),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── challenges ────────────────────────────────────────────────────────
    op.create_table(
        "challenges",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False, index=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("type", _enum("reading", "coding", "speaking", "custom", name="challengetype"), nullable=False),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("visibility", _enum("public", "private", name="visibility"), nullable=False, server_default="public"),
        sa.Column("tags", sa.JSON, nullable=False, server_default=sa.text("'[]'")),
        sa.Column(
            "difficulty_level",
            _enum("beginner", "intermediate", "advanced", name="difficultylevel"),
            nullable=False,
            server_default="beginner",
        ),
        sa.Column(
            "status",
            _enum("upcoming", "active", "completed", name="challengestatus"),
            nullable=False,
            server_default="upcoming",
            index=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── user_challenges ───────────────────────────────────────────────────
    op.create_table(
        "user_challenges",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("challenge_id", sa.String(36), sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("progress", sa.JSON, nullable=False, server_default=sa.text("'{}'")),
        sa.UniqueConstraint("user_id", "challenge_id", name="uq_user_challenge"),
    )

    # ── ai_conversations ──────────────────────────────────────────────────
    op.create_table(
        "ai_conversations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("intent", sa.String(50), nullable=True),
        sa.Column("ai_response", sa.Text, nullable=True),
        sa.Column("recommendations_given", sa.JSON, nullable=False, server_default=sa.text("'[]'")),
        sa.Column("context_used", sa.JSON, nullable=False, server_default=sa.text("'{}'")),
        sa.Column("response_time_ms", sa.Integer, nullable=True),
        sa.Column("satisfaction_rating", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )

    # ── user_interactions ─────────────────────────────────────────────────
    op.create_table(
        "user_interactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True),
        sa.Column("interaction_type", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=False, server_default=sa.text("'{}'")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )


def downgrade() -> None:
    op.drop_table("user_interactions")
    op.drop_table("ai_conversations")
    op.drop_table("user_challenges")
    op.drop_table("challenges")
    op.drop_table("books")
    op.drop_table("users")

    op.execute("DROP TYPE IF EXISTS difficultylevel")
    op.execute("DROP TYPE IF EXISTS visibility")
    op.execute("DROP TYPE IF EXISTS challengestatus")
    op.execute("DROP TYPE IF EXISTS challengetype")
    op.execute("DROP TYPE IF EXISTS bookformat")
    op.execute("DROP TYPE IF EXISTS userrole")
