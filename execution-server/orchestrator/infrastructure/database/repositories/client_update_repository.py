"""SQLAlchemy implementation for ClientUpdateRepository"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import update

from orchestrator.db.models import ClientUpdateJob
from orchestrator.domain.common.repository import AsyncRepository


class SqlClientUpdateRepository(AsyncRepository[ClientUpdateJob]):
    model = ClientUpdateJob

    async def create(
        self,
        *,
        client_id: str,
        target_version: str | None,
        status: str,
        created_at: datetime,
    ) -> ClientUpdateJob:
        job = ClientUpdateJob(
            client_id=client_id,
            target_version=target_version,
            status=status,
            created_at=created_at,
        )
        return await self.add(job)

    async def finish(
        self,
        job_id: str,
        *,
        expected: str,
        status: str,
        failure_reason: str | None,
        finished_at: datetime,
    ) -> bool:
        stmt = (
            update(ClientUpdateJob)
            .where(ClientUpdateJob.id == job_id, ClientUpdateJob.status == expected)
            .values(status=status, failure_reason=failure_reason, finished_at=finished_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
