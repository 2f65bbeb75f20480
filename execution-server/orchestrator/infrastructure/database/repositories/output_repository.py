"""SQLAlchemy implementation for OutputRepository"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import func, select

from orchestrator.db.models import OutputChunk
from orchestrator.domain.common.repository import AsyncRepository


class SqlOutputRepository(AsyncRepository[OutputChunk]):
    model = OutputChunk

    async def next_sequence(self, execution_id: str) -> int:
        stmt = select(func.max(OutputChunk.sequence)).where(OutputChunk.execution_id == execution_id)
        current = (await self.session.execute(stmt)).scalar()
        return 0 if current is None else int(current) + 1

    async def add_chunk(
        self,
        *,
        execution_id: str,
        sequence: int,
        payload: str,
        stream: str,
        is_final: bool,
        created_at: datetime,
    ) -> OutputChunk:
        chunk = OutputChunk(
            execution_id=execution_id,
            sequence=sequence,
            payload=payload,
            stream=stream,
            is_final=is_final,
            created_at=created_at,
        )
        return await self.add(chunk)

    async def list_chunks(self, execution_id: str, from_sequence: int, limit: int) -> Sequence[OutputChunk]:
        stmt = (
            select(OutputChunk)
            .where(OutputChunk.execution_id == execution_id, OutputChunk.sequence >= from_sequence)
            .order_by(OutputChunk.sequence)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
