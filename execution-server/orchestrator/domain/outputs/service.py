"""Append-only output buffer, sealed once its execution is terminal."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orchestrator.core.config import OutputSettings
from orchestrator.domain.common.exceptions import ConflictError, ValidationError
from orchestrator.domain.executions.service import ExecutionStore
from orchestrator.infrastructure.database.repositories.output_repository import SqlOutputRepository
from orchestrator.infrastructure.database.types import utcnow

from .exceptions import BufferSealedError
from .models import STDOUT, STREAMS, OutputChunk, OutputPage
from .repository import OutputRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OutputBuffer:
    repository: OutputRepository
    store: ExecutionStore
    settings: OutputSettings

    @classmethod
    def with_session(cls, session: AsyncSession, settings: OutputSettings) -> "OutputBuffer":
        return cls(SqlOutputRepository(session), ExecutionStore.with_session(session), settings)

    async def append(
        self,
        execution_id: str,
        payload: Union[str, bytes],
        is_final: bool = False,
        *,
        stream: str = STDOUT,
    ) -> OutputChunk:
        """Store the next chunk for ``execution_id``.

        Callers serialise appends per execution; the unique
        ``(execution_id, sequence)`` constraint backs that up.
        """
        if stream not in STREAMS:
            raise ValidationError(f"Unknown output stream {stream!r}")
        execution = await self.store.get(execution_id)
        if execution.is_terminal:
            raise BufferSealedError(execution_id, execution.status.value)

        if isinstance(payload, bytes):
            payload = payload.decode("utf-8", errors="replace")

        sequence = await self.repository.next_sequence(execution_id)
        try:
            model = await self.repository.add_chunk(
                execution_id=execution_id,
                sequence=sequence,
                payload=payload,
                stream=stream,
                is_final=is_final,
                created_at=utcnow(),
            )
        except IntegrityError as exc:
            raise ConflictError(f"Output sequence {sequence} already taken for {execution_id}") from exc
        await self.store.record_activity(execution_id)
        return OutputChunk.from_orm(model)

    async def read(
        self,
        execution_id: str,
        from_sequence: int = 0,
        max_chunks: Optional[int] = None,
    ) -> OutputPage:
        if from_sequence < 0:
            raise ValidationError("fromSequence must be >= 0")
        if max_chunks is None:
            max_chunks = self.settings.default_max_chunks
        if max_chunks < 1:
            raise ValidationError("maxChunks must be >= 1")
        max_chunks = min(max_chunks, self.settings.max_chunks)

        # status first: a terminal status read before the chunks guarantees
        # that nothing can be appended after them
        execution = await self.store.get(execution_id)
        models = await self.repository.list_chunks(execution_id, from_sequence, max_chunks + 1)
        has_more = len(models) > max_chunks
        chunks = [OutputChunk.from_orm(model) for model in models[:max_chunks]]
        next_sequence = chunks[-1].sequence + 1 if chunks else from_sequence
        return OutputPage(
            chunks=chunks,
            complete=execution.is_terminal and not has_more,
            next_sequence=next_sequence,
            exit_code=execution.exit_code,
        )

    async def iter_chunks(
        self,
        execution_id: str,
        from_sequence: int = 0,
        batch_size: Optional[int] = None,
    ) -> AsyncIterator[OutputChunk]:
        """Lazily walk stored chunks page by page; restartable from any sequence."""
        cursor = from_sequence
        while True:
            page = await self.read(execution_id, cursor, batch_size)
            for chunk in page.chunks:
                yield chunk
            if not page.chunks:
                return
            cursor = page.next_sequence
