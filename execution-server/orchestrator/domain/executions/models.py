"""Execution domain models and lifecycle rules.

Valid transition graph::

    Pending    -> Dispatched | Failed | TimedOut | Cancelled
    Dispatched -> Running    | Failed | TimedOut | Cancelled
    Running    -> Succeeded  | Failed | TimedOut | Cancelled
    Succeeded, Failed, TimedOut, Cancelled -> (terminal)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from orchestrator.db import models as orm


class ExecutionStatus(str, Enum):
    PENDING = "Pending"
    DISPATCHED = "Dispatched"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    def can_transition_to(self, target: "ExecutionStatus") -> bool:
        return target in VALID_TRANSITIONS[self]


class ErrorKind(str, Enum):
    CLIENT_UNREACHABLE = "ClientUnreachable"
    TIMEOUT = "Timeout"
    CANCELLED = "Cancelled"
    NON_ZERO_EXIT = "NonZeroExit"
    REJECTED_HASH_MISMATCH = "RejectedHashMismatch"
    REJECTED_NOT_APPROVED = "RejectedNotApproved"


class TriggerType(str, Enum):
    """Who started the run: the service pushing a command, or the client reporting one it ran itself."""

    UI_PUSH = "UiPush"
    CLIENT_PULL = "ClientPull"


TERMINAL_STATUSES: frozenset[ExecutionStatus] = frozenset(
    {
        ExecutionStatus.SUCCEEDED,
        ExecutionStatus.FAILED,
        ExecutionStatus.TIMED_OUT,
        ExecutionStatus.CANCELLED,
    }
)

ACTIVE_STATUSES: frozenset[ExecutionStatus] = frozenset(
    {ExecutionStatus.PENDING, ExecutionStatus.DISPATCHED, ExecutionStatus.RUNNING}
)

_ABORT_TARGETS = frozenset({ExecutionStatus.FAILED, ExecutionStatus.TIMED_OUT, ExecutionStatus.CANCELLED})

VALID_TRANSITIONS: dict[ExecutionStatus, frozenset[ExecutionStatus]] = {
    ExecutionStatus.PENDING: frozenset({ExecutionStatus.DISPATCHED}) | _ABORT_TARGETS,
    ExecutionStatus.DISPATCHED: frozenset({ExecutionStatus.RUNNING}) | _ABORT_TARGETS,
    ExecutionStatus.RUNNING: frozenset({ExecutionStatus.SUCCEEDED}) | _ABORT_TARGETS,
    ExecutionStatus.SUCCEEDED: frozenset(),
    ExecutionStatus.FAILED: frozenset(),
    ExecutionStatus.TIMED_OUT: frozenset(),
    ExecutionStatus.CANCELLED: frozenset(),
}

# forward path used when a transport event implies intermediate steps were missed
FORWARD_PATH: tuple[ExecutionStatus, ...] = (
    ExecutionStatus.PENDING,
    ExecutionStatus.DISPATCHED,
    ExecutionStatus.RUNNING,
)


def active_key(script_id: str, client_id: str) -> str:
    return f"{script_id}\x1f{client_id}"


@dataclass(slots=True)
class TransitionMetadata:
    """Optional details recorded alongside a transition."""

    exit_code: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None


@dataclass(slots=True)
class Execution:
    id: str
    script_id: str
    client_id: str
    status: ExecutionStatus
    created_at: datetime
    last_activity_at: datetime
    dispatched_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    exit_code: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None
    trigger_type: TriggerType = TriggerType.UI_PUSH

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def latest_timestamp(self) -> datetime:
        stamps = [
            self.created_at,
            self.dispatched_at,
            self.started_at,
            self.finished_at,
            self.last_activity_at,
        ]
        return max(stamp for stamp in stamps if stamp is not None)

    @classmethod
    def from_orm(cls, instance: orm.Execution) -> "Execution":
        return cls(
            id=str(instance.id),
            script_id=instance.script_id,
            client_id=instance.client_id,
            status=ExecutionStatus(instance.status),
            created_at=instance.created_at,
            last_activity_at=instance.last_activity_at,
            dispatched_at=instance.dispatched_at,
            started_at=instance.started_at,
            finished_at=instance.finished_at,
            exit_code=instance.exit_code,
            error_kind=ErrorKind(instance.error_kind) if instance.error_kind else None,
            error_message=instance.error_message,
            duration_ms=instance.duration_ms,
            trigger_type=TriggerType(instance.trigger_type),
        )


@dataclass(slots=True)
class ExecutionTransition:
    execution_id: str
    from_status: ExecutionStatus
    to_status: ExecutionStatus
    occurred_at: datetime

    @classmethod
    def from_orm(cls, instance: orm.ExecutionTransition) -> "ExecutionTransition":
        return cls(
            execution_id=instance.execution_id,
            from_status=ExecutionStatus(instance.from_status),
            to_status=ExecutionStatus(instance.to_status),
            occurred_at=instance.occurred_at,
        )


@dataclass(slots=True)
class ExecutionFilters:
    script_id: Optional[str] = None
    client_id: Optional[str] = None
    status: Optional[ExecutionStatus] = None
    trigger_type: Optional[TriggerType] = None


@dataclass(slots=True)
class ExecutionPage:
    """Result of a filtered, paginated listing."""

    total: int
    items: list[Execution]


@dataclass(slots=True)
class ExecutionStatistics:
    """Execution counts; every status and trigger type is present, zero when unused."""

    total: int
    by_status: dict[ExecutionStatus, int]
    by_trigger_type: dict[TriggerType, int]
