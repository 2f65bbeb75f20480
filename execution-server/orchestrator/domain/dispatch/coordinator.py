"""Dispatch coordinator: idempotent trigger and cooperative cancellation."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orchestrator.core.locks import KeyedLock
from orchestrator.domain.executions import (
    ErrorKind,
    Execution,
    ExecutionConflictError,
    ExecutionStatus,
    ExecutionStore,
    InvalidTransitionError,
    TransitionMetadata,
)
from orchestrator.domain.executions.models import active_key

from .transport import CancelCommand, ClientUnreachableError, ExecutionCommand, Transport

logger = logging.getLogger(__name__)


async def request_abort(transport: Transport, execution: Execution) -> None:
    """Best-effort remote abort; the execution is already terminal locally."""
    try:
        await transport.abort_execution(CancelCommand(execution_id=execution.id, client_id=execution.client_id))
    except ClientUnreachableError as exc:
        logger.info("Abort for execution %s not delivered: %s", execution.id, exc)


@dataclass(slots=True)
class DispatchCoordinator:
    session_factory: async_sessionmaker[AsyncSession]
    transport: Transport
    pair_locks: KeyedLock
    execution_locks: KeyedLock
    max_attempts: int = 5

    async def trigger(self, script_id: str, client_id: str) -> Execution:
        """Return the in-flight execution for the pair, or create and dispatch a new one.

        Never raises for delivery problems: an unreachable client shows up as a
        ``Failed`` execution with ``ClientUnreachable``.
        """
        async with self.pair_locks.hold(active_key(script_id, client_id)):
            async with self.session_factory() as session:
                store = self._store(session)
                existing = await store.find_active(script_id, client_id)
                if existing is not None:
                    logger.info(
                        "Trigger for script=%s client=%s coalesced into execution %s",
                        script_id,
                        client_id,
                        existing.id,
                    )
                    return existing
                try:
                    execution = await store.create(script_id, client_id)
                    await session.commit()
                except ExecutionConflictError:
                    # another process won the insert; hand back its execution
                    await session.rollback()
                    existing = await store.find_active(script_id, client_id)
                    if existing is None:
                        raise
                    return existing

        return await self._dispatch(execution)

    async def cancel(self, execution_id: str) -> Execution:
        async with self.execution_locks.hold(execution_id):
            async with self.session_factory() as session:
                cancelled = await self._store(session).transition(
                    execution_id,
                    ExecutionStatus.CANCELLED,
                    TransitionMetadata(error_kind=ErrorKind.CANCELLED, error_message="cancelled by request"),
                )
                await session.commit()
        await request_abort(self.transport, cancelled)
        return cancelled

    async def _dispatch(self, execution: Execution) -> Execution:
        command = ExecutionCommand(
            execution_id=execution.id,
            script_id=execution.script_id,
            client_id=execution.client_id,
        )
        try:
            await self.transport.deliver_execution(command)
        except ClientUnreachableError as exc:
            logger.warning("Execution %s could not be delivered: %s", execution.id, exc)
            return await self._fail_unreachable(execution, exc)
        logger.info("Execution %s handed to transport for client %s", execution.id, execution.client_id)
        return execution

    async def _fail_unreachable(self, execution: Execution, exc: ClientUnreachableError) -> Execution:
        async with self.execution_locks.hold(execution.id):
            async with self.session_factory() as session:
                store = self._store(session)
                try:
                    failed = await store.transition(
                        execution.id,
                        ExecutionStatus.FAILED,
                        TransitionMetadata(error_kind=ErrorKind.CLIENT_UNREACHABLE, error_message=exc.reason),
                    )
                except InvalidTransitionError:
                    # cancelled or finished while we were delivering
                    await session.rollback()
                    return await store.get(execution.id)
                await session.commit()
                return failed

    def _store(self, session: AsyncSession) -> ExecutionStore:
        return ExecutionStore.with_session(session, self.max_attempts)
