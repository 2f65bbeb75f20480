"""Dispatching executions to clients and ingesting what they report back."""

from .coordinator import DispatchCoordinator, request_abort
from .events import ExecutionEvents
from .sweeper import TimeoutSweeper
from .transport import (
    CancelCommand,
    ClientUnreachableError,
    ExecutionCommand,
    Transport,
    UpdateCommand,
)

__all__ = [
    "CancelCommand",
    "ClientUnreachableError",
    "DispatchCoordinator",
    "ExecutionCommand",
    "ExecutionEvents",
    "TimeoutSweeper",
    "Transport",
    "UpdateCommand",
    "request_abort",
]
