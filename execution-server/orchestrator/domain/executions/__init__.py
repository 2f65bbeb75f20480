"""Execution lifecycle: store, state machine and queries."""

from .exceptions import (
    ExecutionConflictError,
    ExecutionNotFoundError,
    ExecutionOwnershipError,
    ExecutionTimeoutError,
    InvalidTransitionError,
)
from .models import (
    ErrorKind,
    Execution,
    ExecutionFilters,
    ExecutionPage,
    ExecutionStatistics,
    ExecutionStatus,
    ExecutionTransition,
    TransitionMetadata,
    TriggerType,
)
from .query import ExecutionQueryService, parse_status, parse_trigger_type
from .service import ExecutionStore

__all__ = [
    "ErrorKind",
    "Execution",
    "ExecutionConflictError",
    "ExecutionFilters",
    "ExecutionNotFoundError",
    "ExecutionOwnershipError",
    "ExecutionPage",
    "ExecutionQueryService",
    "ExecutionStatistics",
    "ExecutionStatus",
    "ExecutionStore",
    "ExecutionTimeoutError",
    "ExecutionTransition",
    "InvalidTransitionError",
    "TransitionMetadata",
    "TriggerType",
    "parse_status",
    "parse_trigger_type",
]
