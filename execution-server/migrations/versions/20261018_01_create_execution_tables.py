"""create execution, output and client update tables

Revision ID: 5c1e9a7d2b40
Revises: 
Create Date: 2026-10-18 09:30:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "5c1e9a7d2b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "executions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("script_id", sa.String(length=64), nullable=False),
        sa.Column("client_id", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
        sa.Column("active_key", sa.String(length=330), nullable=True),
        sa.Column("exit_code", sa.Integer()),
        sa.Column("error_kind", sa.String(length=40)),
        sa.Column("error_message", sa.Text()),
        sa.Column("duration_ms", sa.BigInteger()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("dispatched_at", sa.DateTime()),
        sa.Column("started_at", sa.DateTime()),
        sa.Column("finished_at", sa.DateTime()),
        sa.Column("last_activity_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("active_key"),
    )
    op.create_index("ix_executions_script_id", "executions", ["script_id"])
    op.create_index("ix_executions_client_id", "executions", ["client_id"])
    op.create_index("ix_executions_status", "executions", ["status"])
    op.create_index("ix_executions_created_at", "executions", ["created_at"])

    op.create_table(
        "execution_transitions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("execution_id", sa.String(length=36), sa.ForeignKey("executions.id"), nullable=False),
        sa.Column("from_status", sa.String(length=20), nullable=False),
        sa.Column("to_status", sa.String(length=20), nullable=False),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_execution_transitions_execution_id", "execution_transitions", ["execution_id"])

    op.create_table(
        "execution_output_chunks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("execution_id", sa.String(length=36), sa.ForeignKey("executions.id"), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("stream", sa.String(length=10), nullable=False, server_default="stdout"),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("is_final", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("execution_id", "sequence", name="uq_output_chunk_sequence"),
    )
    op.create_index("ix_execution_output_chunks_execution_id", "execution_output_chunks", ["execution_id"])

    op.create_table(
        "client_update_jobs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("client_id", sa.String(length=255), nullable=False),
        sa.Column("target_version", sa.String(length=50)),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Queued"),
        sa.Column("failure_reason", sa.String(length=255)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("finished_at", sa.DateTime()),
    )
    op.create_index("ix_client_update_jobs_client_id", "client_update_jobs", ["client_id"])


def downgrade() -> None:
    op.drop_index("ix_client_update_jobs_client_id", table_name="client_update_jobs")
    op.drop_table("client_update_jobs")
    op.drop_index("ix_execution_output_chunks_execution_id", table_name="execution_output_chunks")
    op.drop_table("execution_output_chunks")
    op.drop_index("ix_execution_transitions_execution_id", table_name="execution_transitions")
    op.drop_table("execution_transitions")
    op.drop_index("ix_executions_created_at", table_name="executions")
    op.drop_index("ix_executions_status", table_name="executions")
    op.drop_index("ix_executions_client_id", table_name="executions")
    op.drop_index("ix_executions_script_id", table_name="executions")
    op.drop_table("executions")
