"""SQLAlchemy ORM models."""
import uuid

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from orchestrator.infrastructure.database.base import Base
from orchestrator.infrastructure.database.types import UTCDateTime


def generate_uuid() -> str:
    return str(uuid.uuid4())


class Execution(Base):
    __tablename__ = "executions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    script_id = Column(String(64), nullable=False, index=True)
    client_id = Column(String(255), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="Pending", index=True)
    trigger_type = Column(String(20), nullable=False, default="UiPush", index=True)
    # "<script_id>\x1f<client_id>" while non-terminal, NULL afterwards
    active_key = Column(String(330), unique=True, nullable=True)
    exit_code = Column(Integer)
    error_kind = Column(String(40))
    error_message = Column(Text)
    duration_ms = Column(BigInteger)
    created_at = Column(UTCDateTime, nullable=False, index=True)
    dispatched_at = Column(UTCDateTime)
    started_at = Column(UTCDateTime)
    finished_at = Column(UTCDateTime)
    last_activity_at = Column(UTCDateTime, nullable=False)

    transitions = relationship(
        "ExecutionTransition",
        back_populates="execution",
        cascade="all, delete-orphan",
        order_by="ExecutionTransition.id",
    )
    chunks = relationship(
        "OutputChunk",
        back_populates="execution",
        cascade="all, delete-orphan",
        order_by="OutputChunk.sequence",
    )


class ExecutionTransition(Base):
    __tablename__ = "execution_transitions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    execution_id = Column(String(36), ForeignKey("executions.id"), nullable=False, index=True)
    from_status = Column(String(20), nullable=False)
    to_status = Column(String(20), nullable=False)
    occurred_at = Column(UTCDateTime, nullable=False)

    execution = relationship("Execution", back_populates="transitions")


class OutputChunk(Base):
    __tablename__ = "execution_output_chunks"
    __table_args__ = (UniqueConstraint("execution_id", "sequence", name="uq_output_chunk_sequence"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    execution_id = Column(String(36), ForeignKey("executions.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    stream = Column(String(10), nullable=False, default="stdout")
    payload = Column(Text, nullable=False, default="")
    is_final = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime, nullable=False)

    execution = relationship("Execution", back_populates="chunks")


class ClientUpdateJob(Base):
    __tablename__ = "client_update_jobs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(255), nullable=False, index=True)
    target_version = Column(String(50))
    status = Column(String(20), nullable=False, default="Queued")  # Queued, Delivered, Failed
    failure_reason = Column(String(255))
    created_at = Column(UTCDateTime, nullable=False)
    finished_at = Column(UTCDateTime)
