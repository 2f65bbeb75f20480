"""Output buffer domain models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from orchestrator.db import models as orm

STDOUT = "stdout"
STDERR = "stderr"
STREAMS = frozenset({STDOUT, STDERR})


@dataclass(slots=True)
class OutputChunk:
    execution_id: str
    sequence: int
    payload: str
    is_final: bool
    stream: str
    created_at: datetime

    @classmethod
    def from_orm(cls, instance: orm.OutputChunk) -> "OutputChunk":
        return cls(
            execution_id=instance.execution_id,
            sequence=instance.sequence,
            payload=instance.payload,
            is_final=bool(instance.is_final),
            stream=instance.stream,
            created_at=instance.created_at,
        )


@dataclass(slots=True)
class OutputPage:
    """One window of an execution's output.

    ``complete`` is only true once the execution is terminal and nothing is
    stored past this window; otherwise more chunks may still arrive.
    """

    chunks: list[OutputChunk]
    complete: bool
    next_sequence: int
    exit_code: Optional[int] = None
