"""Protocol for execution persistence"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, Sequence

from orchestrator.db.models import (
    Execution as ExecutionModel,
    ExecutionTransition as ExecutionTransitionModel,
)


class ExecutionRepository(Protocol):
    async def create(
        self,
        *,
        script_id: str,
        client_id: str,
        status: str,
        active_key: str | None,
        trigger_type: str,
        created_at: datetime,
    ) -> ExecutionModel:
        ...

    async def get_by_id(self, execution_id: str) -> ExecutionModel | None:
        ...

    async def find_active(self, active_key: str) -> ExecutionModel | None:
        ...

    async def compare_and_set_status(
        self,
        execution_id: str,
        *,
        expected: str,
        values: dict[str, Any],
    ) -> bool:
        ...

    async def add_transition(
        self,
        *,
        execution_id: str,
        from_status: str,
        to_status: str,
        occurred_at: datetime,
    ) -> ExecutionTransitionModel:
        ...

    async def list_transitions(self, execution_id: str) -> Sequence[ExecutionTransitionModel]:
        ...

    async def list_stalled(self, statuses: Sequence[str], cutoff: datetime) -> Sequence[ExecutionModel]:
        ...

    async def list_executions(
        self,
        *,
        script_id: str | None,
        client_id: str | None,
        status: str | None,
        trigger_type: str | None,
        limit: int,
        offset: int,
    ) -> tuple[Sequence[ExecutionModel], int]:
        ...

    async def count_by_status(self, *, script_id: str | None, client_id: str | None) -> dict[str, int]:
        ...

    async def count_by_trigger_type(self, *, script_id: str | None, client_id: str | None) -> dict[str, int]:
        ...

    async def touch(self, execution_id: str, at: datetime) -> None:
        ...
