"""add trigger type to executions

Revision ID: 8f3b6d21c9e4
Revises: 5c1e9a7d2b40
Create Date: 2026-10-18 16:10:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "8f3b6d21c9e4"
down_revision = "5c1e9a7d2b40"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("executions") as batch_op:
        batch_op.add_column(
            sa.Column("trigger_type", sa.String(length=20), nullable=False, server_default="UiPush")
        )
        batch_op.create_index("ix_executions_trigger_type", ["trigger_type"])


def downgrade() -> None:
    with op.batch_alter_table("executions") as batch_op:
        batch_op.drop_index("ix_executions_trigger_type")
        batch_op.drop_column("trigger_type")
