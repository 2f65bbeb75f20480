"""Periodic detection of stalled executions."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orchestrator.core.config import ExecutionSettings
from orchestrator.core.locks import KeyedLock
from orchestrator.domain.executions import (
    ErrorKind,
    Execution,
    ExecutionStatus,
    ExecutionStore,
    ExecutionTimeoutError,
    InvalidTransitionError,
    TransitionMetadata,
)
from orchestrator.infrastructure.database.types import utcnow

from .coordinator import request_abort
from .transport import Transport

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TimeoutSweeper:
    session_factory: async_sessionmaker[AsyncSession]
    transport: Transport
    execution_locks: KeyedLock
    settings: ExecutionSettings

    def deadline_for(self, script_id: str) -> int:
        return self.settings.script_deadlines.get(script_id, self.settings.deadline_seconds)

    async def sweep_once(self, now: Optional[datetime] = None) -> list[Execution]:
        """Time out every non-terminal execution idle past its deadline."""
        now = now or utcnow()
        shortest = min([self.settings.deadline_seconds, *self.settings.script_deadlines.values()])
        async with self.session_factory() as session:
            candidates = await ExecutionStore.with_session(session).list_stalled(now - timedelta(seconds=shortest))

        timed_out: list[Execution] = []
        for candidate in candidates:
            deadline = self.deadline_for(candidate.script_id)
            execution = await self._expire(candidate.id, now - timedelta(seconds=deadline), deadline)
            if execution is not None:
                timed_out.append(execution)
                await request_abort(self.transport, execution)
        if timed_out:
            logger.warning("Timed out %d stalled execution(s)", len(timed_out))
        return timed_out

    async def run(self) -> None:
        interval = self.settings.sweep_interval_seconds
        logger.info("Timeout sweeper started (interval=%ss)", interval)
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep_once()
            except Exception:  # pylint: disable=broad-except
                logger.exception("Timeout sweep failed")

    async def _expire(self, execution_id: str, cutoff: datetime, deadline: int) -> Optional[Execution]:
        async with self.execution_locks.hold(execution_id):
            async with self.session_factory() as session:
                store = ExecutionStore.with_session(session, self.settings.max_transition_attempts)
                current = await store.get(execution_id)
                # activity may have landed between listing and locking
                if current.is_terminal or current.last_activity_at >= cutoff:
                    return None
                stall = ExecutionTimeoutError(execution_id, deadline)
                try:
                    execution = await store.transition(
                        execution_id,
                        ExecutionStatus.TIMED_OUT,
                        TransitionMetadata(error_kind=ErrorKind.TIMEOUT, error_message=str(stall)),
                    )
                except InvalidTransitionError:
                    await session.rollback()
                    return None
                await session.commit()
                return execution
