"""SQLAlchemy-backed repository implementations."""

from .client_update_repository import SqlClientUpdateRepository
from .execution_repository import SqlExecutionRepository
from .output_repository import SqlOutputRepository

__all__ = [
    "SqlClientUpdateRepository",
    "SqlExecutionRepository",
    "SqlOutputRepository",
]
