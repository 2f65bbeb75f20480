"""Read side for executions: filtered, paginated listings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from orchestrator.core.config import QuerySettings
from orchestrator.domain.common.exceptions import ValidationError
from orchestrator.infrastructure.database.repositories.execution_repository import SqlExecutionRepository

from .models import Execution, ExecutionFilters, ExecutionPage, ExecutionStatistics, ExecutionStatus, TriggerType
from .repository import ExecutionRepository
from .service import ExecutionStore


def parse_status(raw: Optional[str]) -> Optional[ExecutionStatus]:
    if raw is None or raw == "":
        return None
    try:
        return ExecutionStatus(raw)
    except ValueError as exc:
        allowed = ", ".join(status.value for status in ExecutionStatus)
        raise ValidationError(f"Unknown status {raw!r}; expected one of: {allowed}") from exc


def parse_trigger_type(raw: Optional[str]) -> Optional[TriggerType]:
    if raw is None or raw == "":
        return None
    try:
        return TriggerType(raw)
    except ValueError as exc:
        allowed = ", ".join(kind.value for kind in TriggerType)
        raise ValidationError(f"Unknown trigger type {raw!r}; expected one of: {allowed}") from exc


@dataclass(slots=True)
class ExecutionQueryService:
    repository: ExecutionRepository
    settings: QuerySettings

    @classmethod
    def with_session(cls, session: AsyncSession, settings: QuerySettings) -> "ExecutionQueryService":
        return cls(SqlExecutionRepository(session), settings)

    async def get(self, execution_id: str) -> Execution:
        return await ExecutionStore(self.repository).get(execution_id)

    async def list(
        self,
        filters: ExecutionFilters,
        *,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> ExecutionPage:
        """List executions newest first; ``total`` ignores the paging window."""
        page = 1 if page is None else page
        if page < 1:
            raise ValidationError("page must be >= 1")
        if page_size is None:
            page_size = self.settings.default_page_size
        if page_size < 1:
            raise ValidationError("pageSize must be >= 1")
        page_size = min(page_size, self.settings.max_page_size)

        models, total = await self.repository.list_executions(
            script_id=filters.script_id,
            client_id=filters.client_id,
            status=filters.status.value if filters.status else None,
            trigger_type=filters.trigger_type.value if filters.trigger_type else None,
            limit=page_size,
            offset=(page - 1) * page_size,
        )
        return ExecutionPage(total=total, items=[Execution.from_orm(model) for model in models])

    async def statistics(
        self,
        *,
        script_id: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> ExecutionStatistics:
        by_status = await self.repository.count_by_status(script_id=script_id, client_id=client_id)
        by_trigger = await self.repository.count_by_trigger_type(script_id=script_id, client_id=client_id)
        return ExecutionStatistics(
            total=sum(by_status.values()),
            by_status={status: by_status.get(status.value, 0) for status in ExecutionStatus},
            by_trigger_type={kind: by_trigger.get(kind.value, 0) for kind in TriggerType},
        )
