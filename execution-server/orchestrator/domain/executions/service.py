"""Execution store: durable lifecycle records and the transition state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orchestrator.db.models import Execution as ExecutionModel
from orchestrator.infrastructure.database.repositories.execution_repository import SqlExecutionRepository
from orchestrator.infrastructure.database.types import utcnow

from .exceptions import ExecutionConflictError, ExecutionNotFoundError, InvalidTransitionError
from .models import (
    ACTIVE_STATUSES,
    Execution,
    ExecutionStatus,
    ExecutionTransition,
    TransitionMetadata,
    TriggerType,
    active_key,
)
from .repository import ExecutionRepository

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


@dataclass(slots=True)
class ExecutionStore:
    repository: ExecutionRepository
    max_attempts: int = DEFAULT_MAX_ATTEMPTS

    @classmethod
    def with_session(cls, session: AsyncSession, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> "ExecutionStore":
        return cls(SqlExecutionRepository(session), max_attempts=max_attempts)

    async def create(
        self,
        script_id: str,
        client_id: str,
        trigger_type: TriggerType = TriggerType.UI_PUSH,
    ) -> Execution:
        """Insert a new ``Pending`` execution.

        The storage layer keeps a unique key per script/client pair while a
        pushed execution is non-terminal, so a racing insert fails here instead
        of producing a second in-flight execution. Client-reported runs have
        already happened and never hold the key.
        """
        key = active_key(script_id, client_id) if trigger_type is TriggerType.UI_PUSH else None
        if key is not None and await self.repository.find_active(key) is not None:
            raise ExecutionConflictError(script_id, client_id)
        try:
            model = await self.repository.create(
                script_id=script_id,
                client_id=client_id,
                status=ExecutionStatus.PENDING.value,
                active_key=key,
                trigger_type=trigger_type.value,
                created_at=utcnow(),
            )
        except IntegrityError as exc:
            raise ExecutionConflictError(script_id, client_id, "concurrent insert lost") from exc
        logger.info(
            "Execution %s created for script=%s client=%s (%s)", model.id, script_id, client_id, trigger_type.value
        )
        return self._to_domain(model)

    async def get(self, execution_id: str) -> Execution:
        model = await self.repository.get_by_id(execution_id)
        if model is None:
            raise ExecutionNotFoundError(execution_id)
        return self._to_domain(model)

    async def find_active(self, script_id: str, client_id: str) -> Execution | None:
        model = await self.repository.find_active(active_key(script_id, client_id))
        return self._to_domain(model) if model else None

    async def transition(
        self,
        execution_id: str,
        new_status: ExecutionStatus,
        metadata: Optional[TransitionMetadata] = None,
    ) -> Execution:
        """Apply ``current -> new_status`` as a compare-and-swap on the stored status."""
        metadata = metadata or TransitionMetadata()
        for _ in range(self.max_attempts):
            current = await self.get(execution_id)
            if not current.status.can_transition_to(new_status):
                raise InvalidTransitionError(execution_id, current.status.value, new_status.value)

            # never move a timestamp backwards, even if the clock does
            now = max(utcnow(), current.latest_timestamp())
            values = self._transition_values(new_status, now, metadata)
            applied = await self.repository.compare_and_set_status(
                execution_id,
                expected=current.status.value,
                values=values,
            )
            if not applied:
                logger.debug("Execution %s changed concurrently, retrying %s", execution_id, new_status.value)
                continue

            await self.repository.add_transition(
                execution_id=execution_id,
                from_status=current.status.value,
                to_status=new_status.value,
                occurred_at=now,
            )
            logger.info(
                "Execution %s transitioned %s -> %s",
                execution_id,
                current.status.value,
                new_status.value,
            )
            return await self.get(execution_id)

        raise ExecutionConflictError(
            current.script_id,
            current.client_id,
            f"transition to {new_status.value} kept losing races",
        )

    async def record_activity(self, execution_id: str) -> None:
        await self.repository.touch(execution_id, utcnow())

    async def list_transitions(self, execution_id: str) -> list[ExecutionTransition]:
        await self.get(execution_id)
        models = await self.repository.list_transitions(execution_id)
        return [ExecutionTransition.from_orm(model) for model in models]

    async def list_stalled(self, cutoff: datetime) -> list[Execution]:
        models = await self.repository.list_stalled([status.value for status in ACTIVE_STATUSES], cutoff)
        return [self._to_domain(model) for model in models]

    @staticmethod
    def _transition_values(
        new_status: ExecutionStatus,
        now: datetime,
        metadata: TransitionMetadata,
    ) -> dict[str, Any]:
        values: dict[str, Any] = {"status": new_status.value, "last_activity_at": now}
        if new_status is ExecutionStatus.DISPATCHED:
            values["dispatched_at"] = now
        elif new_status is ExecutionStatus.RUNNING:
            values["started_at"] = now
        elif new_status.is_terminal:
            values["finished_at"] = now
            values["active_key"] = None
            if metadata.exit_code is not None:
                values["exit_code"] = metadata.exit_code
            if metadata.error_kind is not None:
                values["error_kind"] = metadata.error_kind.value
            if metadata.error_message is not None:
                values["error_message"] = metadata.error_message
            if metadata.duration_ms is not None:
                values["duration_ms"] = metadata.duration_ms
        return values

    @staticmethod
    def _to_domain(model: ExecutionModel) -> Execution:
        return Execution.from_orm(model)
