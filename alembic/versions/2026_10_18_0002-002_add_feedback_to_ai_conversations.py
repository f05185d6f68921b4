"""add feedback to ai_conversations

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 14:10:00

Free-text feedback submitted alongside a satisfaction rating from the chat
panel.  The column was added to the SQLAlchemy model after the initial
schema shipped.
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "ai_conversations",
        sa.Column(
            "feedback",
            sa.Text(),
            nullable=True,
        ),
    )


def downgrade() -> None:
    op.drop_column("ai_conversations", "feedback")
