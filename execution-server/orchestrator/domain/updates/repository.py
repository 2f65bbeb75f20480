"""Protocol for client update job persistence"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from orchestrator.db.models import ClientUpdateJob as ClientUpdateJobModel


class ClientUpdateRepository(Protocol):
    async def create(
        self,
        *,
        client_id: str,
        target_version: str | None,
        status: str,
        created_at: datetime,
    ) -> ClientUpdateJobModel:
        ...

    async def get_by_id(self, job_id: str) -> ClientUpdateJobModel | None:
        ...

    async def finish(
        self,
        job_id: str,
        *,
        expected: str,
        status: str,
        failure_reason: str | None,
        finished_at: datetime,
    ) -> bool:
        ...
