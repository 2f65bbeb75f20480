"""Ingress for transport callbacks.

Every callback is applied under the per-execution lock in its own
transaction. Callbacks that arrive late or twice (anything the state machine
rejects) are discarded; output for a finished execution is logged as an
adapter fault and dropped. When the reporting client is known, callbacks
for executions dispatched to a different client are refused.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orchestrator.core.config import OutputSettings
from orchestrator.core.locks import KeyedLock
from orchestrator.domain.executions import (
    ErrorKind,
    Execution,
    ExecutionOwnershipError,
    ExecutionStatus,
    ExecutionStore,
    InvalidTransitionError,
    TransitionMetadata,
    TriggerType,
)
from orchestrator.domain.executions.models import FORWARD_PATH
from orchestrator.domain.outputs import STDERR, STDOUT, BufferSealedError, OutputBuffer, OutputChunk

logger = logging.getLogger(__name__)

HASH_MISMATCH_REASON = "hash_mismatch"

T = TypeVar("T")


def completion_metadata(
    exit_code: int,
    duration_ms: Optional[int] = None,
    error_message: Optional[str] = None,
) -> tuple[ExecutionStatus, TransitionMetadata]:
    """Map a reported exit code to the terminal status it lands in."""
    if exit_code == 0:
        target, kind = ExecutionStatus.SUCCEEDED, None
    else:
        target, kind = ExecutionStatus.FAILED, ErrorKind.NON_ZERO_EXIT
    return target, TransitionMetadata(
        exit_code=exit_code,
        error_kind=kind,
        error_message=error_message,
        duration_ms=duration_ms,
    )


@dataclass(slots=True)
class ExecutionEvents:
    session_factory: async_sessionmaker[AsyncSession]
    execution_locks: KeyedLock
    output_settings: OutputSettings
    max_attempts: int = 5

    async def acknowledged(
        self,
        execution_id: str,
        accepted: bool = True,
        rejection_reason: Optional[str] = None,
        *,
        client_id: Optional[str] = None,
    ) -> Optional[Execution]:
        async def apply(session: AsyncSession) -> Execution:
            store = self._store(session)
            await self._owned(store, execution_id, client_id)
            if accepted:
                return await store.transition(execution_id, ExecutionStatus.DISPATCHED)
            kind = (
                ErrorKind.REJECTED_HASH_MISMATCH
                if rejection_reason == HASH_MISMATCH_REASON
                else ErrorKind.REJECTED_NOT_APPROVED
            )
            return await store.transition(
                execution_id,
                ExecutionStatus.FAILED,
                TransitionMetadata(error_kind=kind, error_message=rejection_reason),
            )

        return await self._apply(execution_id, "ack", apply)

    async def started(self, execution_id: str, *, client_id: Optional[str] = None) -> Optional[Execution]:
        async def apply(session: AsyncSession) -> Execution:
            store = self._store(session)
            execution = await self._owned(store, execution_id, client_id)
            return await self._advance(store, execution, ExecutionStatus.RUNNING)

        return await self._apply(execution_id, "start", apply)

    async def output(
        self,
        execution_id: str,
        payload: Union[str, bytes],
        *,
        stream: str = STDOUT,
        is_final: bool = False,
        client_id: Optional[str] = None,
    ) -> Optional[OutputChunk]:
        async def apply(session: AsyncSession) -> OutputChunk:
            store = self._store(session)
            execution = await self._owned(store, execution_id, client_id)
            if execution.status in (ExecutionStatus.PENDING, ExecutionStatus.DISPATCHED):
                # first output doubles as the start signal
                await self._advance(store, execution, ExecutionStatus.RUNNING)
            buffer = OutputBuffer.with_session(session, self.output_settings)
            return await buffer.append(execution_id, payload, is_final, stream=stream)

        try:
            return await self._apply(execution_id, "output", apply)
        except BufferSealedError as exc:
            logger.error("Transport delivered output after completion: %s", exc)
            return None

    async def finished(
        self,
        execution_id: str,
        exit_code: int,
        *,
        duration_ms: Optional[int] = None,
        error_message: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> Optional[Execution]:
        async def apply(session: AsyncSession) -> Execution:
            store = self._store(session)
            execution = await self._owned(store, execution_id, client_id)
            if execution.status is not ExecutionStatus.RUNNING and not execution.is_terminal:
                execution = await self._advance(store, execution, ExecutionStatus.RUNNING)
            target, metadata = completion_metadata(exit_code, duration_ms, error_message)
            return await store.transition(execution_id, target, metadata)

        return await self._apply(execution_id, "result", apply)

    async def submitted(
        self,
        script_id: str,
        client_id: str,
        exit_code: int,
        *,
        output: Optional[str] = None,
        error_output: Optional[str] = None,
        duration_ms: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> Execution:
        """Record a run the client started on its own and has already finished.

        The whole record (lifecycle, captured output, outcome) lands in a
        single transaction. Such runs never hold the pair's in-flight slot, so
        they do not collide with a pushed execution of the same script.
        """
        async with self.session_factory() as session:
            store = self._store(session)
            execution = await store.create(script_id, client_id, TriggerType.CLIENT_PULL)
            execution = await self._advance(store, execution, ExecutionStatus.RUNNING)
            buffer = OutputBuffer.with_session(session, self.output_settings)
            streams = [(STDOUT, output), (STDERR, error_output)]
            written = [(stream, text) for stream, text in streams if text]
            for index, (stream, text) in enumerate(written):
                await buffer.append(execution.id, text, index == len(written) - 1, stream=stream)
            target, metadata = completion_metadata(exit_code, duration_ms, error_message)
            execution = await store.transition(execution.id, target, metadata)
            await session.commit()
        logger.info(
            "Client %s submitted execution %s for script %s (exit=%s)",
            client_id,
            execution.id,
            script_id,
            exit_code,
        )
        return execution

    async def _apply(
        self,
        execution_id: str,
        event: str,
        apply: Callable[[AsyncSession], Awaitable[T]],
    ) -> Optional[T]:
        async with self.execution_locks.hold(execution_id):
            async with self.session_factory() as session:
                try:
                    result = await apply(session)
                except InvalidTransitionError as exc:
                    await session.rollback()
                    logger.info("Discarding %s event for execution %s: %s", event, execution_id, exc)
                    return None
                await session.commit()
                return result

    @staticmethod
    async def _owned(store: ExecutionStore, execution_id: str, client_id: Optional[str]) -> Execution:
        execution = await store.get(execution_id)
        if client_id is not None and execution.client_id != client_id:
            raise ExecutionOwnershipError(execution_id, client_id)
        return execution

    @staticmethod
    async def _advance(store: ExecutionStore, execution: Execution, target: ExecutionStatus) -> Execution:
        """Walk the forward path up to ``target``; being at or past it is a duplicate."""
        if execution.is_terminal or FORWARD_PATH.index(execution.status) >= FORWARD_PATH.index(target):
            raise InvalidTransitionError(execution.id, execution.status.value, target.value)
        start = FORWARD_PATH.index(execution.status) + 1
        for status in FORWARD_PATH[start : FORWARD_PATH.index(target) + 1]:
            execution = await store.transition(execution.id, status)
        return execution

    def _store(self, session: AsyncSession) -> ExecutionStore:
        return ExecutionStore.with_session(session, self.max_attempts)
