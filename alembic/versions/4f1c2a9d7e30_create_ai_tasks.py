"""Create ai_tasks table.

Revision ID: 4f1c2a9d7e30
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "4f1c2a9d7e30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "ai_tasks",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("owner_id", sa.String(), nullable=False),
    sa.Column("kind", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("title", sa.Text(), nullable=False),
    sa.Column("progress", sa.Integer(), nullable=False),
    sa.Column("input_summary", sa.Text(), nullable=True),
    sa.Column("result", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("error", sa.Text(), nullable=True),
    sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("created_at", sa.String(), nullable=False),
    sa.Column("started_at", sa.String(), nullable=True),
    sa.Column("completed_at", sa.String(), nullable=True),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_ai_tasks_owner_id"), "ai_tasks", ["owner_id"], unique=False)
  op.create_index("ix_ai_tasks_owner_created", "ai_tasks", ["owner_id", "created_at"], unique=False)
  op.create_index("ix_ai_tasks_status", "ai_tasks", ["status"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ix_ai_tasks_status", table_name="ai_tasks")
  op.drop_index("ix_ai_tasks_owner_created", table_name="ai_tasks")
  op.drop_index(op.f("ix_ai_tasks_owner_id"), table_name="ai_tasks")
  op.drop_table("ai_tasks")
