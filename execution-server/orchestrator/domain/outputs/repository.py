"""Protocol for output chunk persistence"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from orchestrator.db.models import OutputChunk as OutputChunkModel


class OutputRepository(Protocol):
    async def next_sequence(self, execution_id: str) -> int:
        ...

    async def add_chunk(
        self,
        *,
        execution_id: str,
        sequence: int,
        payload: str,
        stream: str,
        is_final: bool,
        created_at: datetime,
    ) -> OutputChunkModel:
        ...

    async def list_chunks(self, execution_id: str, from_sequence: int, limit: int) -> Sequence[OutputChunkModel]:
        ...
