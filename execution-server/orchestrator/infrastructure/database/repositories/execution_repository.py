"""SQLAlchemy implementation for ExecutionRepository"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import desc, func, select, update

from orchestrator.db.models import Execution, ExecutionTransition
from orchestrator.domain.common.repository import AsyncRepository


class SqlExecutionRepository(AsyncRepository[Execution]):
    model = Execution

    async def create(
        self,
        *,
        script_id: str,
        client_id: str,
        status: str,
        active_key: str | None,
        trigger_type: str,
        created_at: datetime,
    ) -> Execution:
        execution = Execution(
            script_id=script_id,
            client_id=client_id,
            status=status,
            active_key=active_key,
            trigger_type=trigger_type,
            created_at=created_at,
            last_activity_at=created_at,
        )
        return await self.add(execution)

    async def find_active(self, active_key: str) -> Execution | None:
        stmt = (
            select(Execution)
            .where(Execution.active_key == active_key)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def compare_and_set_status(
        self,
        execution_id: str,
        *,
        expected: str,
        values: dict[str, Any],
    ) -> bool:
        stmt = (
            update(Execution)
            .where(Execution.id == execution_id, Execution.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def add_transition(
        self,
        *,
        execution_id: str,
        from_status: str,
        to_status: str,
        occurred_at: datetime,
    ) -> ExecutionTransition:
        transition = ExecutionTransition(
            execution_id=execution_id,
            from_status=from_status,
            to_status=to_status,
            occurred_at=occurred_at,
        )
        self.session.add(transition)
        await self.session.flush()
        return transition

    async def list_transitions(self, execution_id: str) -> Sequence[ExecutionTransition]:
        stmt = (
            select(ExecutionTransition)
            .where(ExecutionTransition.execution_id == execution_id)
            .order_by(ExecutionTransition.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_stalled(self, statuses: Sequence[str], cutoff: datetime) -> Sequence[Execution]:
        stmt = (
            select(Execution)
            .where(Execution.status.in_(list(statuses)), Execution.last_activity_at < cutoff)
            .order_by(Execution.last_activity_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_executions(
        self,
        *,
        script_id: str | None,
        client_id: str | None,
        status: str | None,
        trigger_type: str | None,
        limit: int,
        offset: int,
    ) -> tuple[Sequence[Execution], int]:
        predicates = self._predicates(script_id, client_id)
        if status:
            predicates.append(Execution.status == status)
        if trigger_type:
            predicates.append(Execution.trigger_type == trigger_type)

        count_query = select(func.count(Execution.id))
        query = select(Execution)
        if predicates:
            count_query = count_query.where(*predicates)
            query = query.where(*predicates)
        total = (await self.session.execute(count_query)).scalar() or 0

        query = (
            query.order_by(desc(Execution.created_at), desc(Execution.id))
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return result.scalars().all(), int(total)

    async def touch(self, execution_id: str, at: datetime) -> None:
        stmt = (
            update(Execution)
            .where(Execution.id == execution_id, Execution.last_activity_at < at)
            .values(last_activity_at=at)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def count_by_status(self, *, script_id: str | None, client_id: str | None) -> dict[str, int]:
        return await self._count_grouped(Execution.status, self._predicates(script_id, client_id))

    async def count_by_trigger_type(self, *, script_id: str | None, client_id: str | None) -> dict[str, int]:
        return await self._count_grouped(Execution.trigger_type, self._predicates(script_id, client_id))

    async def _count_grouped(self, column: Any, predicates: list[Any]) -> dict[str, int]:
        stmt = select(column, func.count(Execution.id)).group_by(column)
        if predicates:
            stmt = stmt.where(*predicates)
        result = await self.session.execute(stmt)
        return {key: int(count) for key, count in result.all()}

    @staticmethod
    def _predicates(script_id: str | None, client_id: str | None) -> list[Any]:
        predicates: list[Any] = []
        if script_id:
            predicates.append(Execution.script_id == script_id)
        if client_id:
            predicates.append(Execution.client_id == client_id)
        return predicates
