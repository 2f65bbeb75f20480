"""Shared abstractions used across domain modules."""

from .exceptions import ConflictError, NotFoundError, OrchestrationError, ValidationError
from .repository import AsyncRepository

__all__ = [
    "AsyncRepository",
    "ConflictError",
    "NotFoundError",
    "OrchestrationError",
    "ValidationError",
]
