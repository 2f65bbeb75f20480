"""Client update jobs: Queued -> Delivered | Failed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orchestrator.domain.dispatch.transport import ClientUnreachableError, Transport, UpdateCommand
from orchestrator.infrastructure.database.repositories.client_update_repository import SqlClientUpdateRepository
from orchestrator.infrastructure.database.types import utcnow

from .exceptions import UpdateJobNotFoundError, UpdateJobOwnershipError
from .models import REASON_CLIENT_UNREACHABLE, REASON_REJECTED, ClientUpdateJob, UpdateJobStatus

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ClientUpdateDispatcher:
    """Pushes version updates to clients.

    Unlike script executions there is no coalescing: each trigger is a new job.
    """

    session_factory: async_sessionmaker[AsyncSession]
    transport: Transport

    async def trigger(self, client_id: str, target_version: Optional[str] = None) -> ClientUpdateJob:
        async with self.session_factory() as session:
            repository = SqlClientUpdateRepository(session)
            model = await repository.create(
                client_id=client_id,
                target_version=target_version,
                status=UpdateJobStatus.QUEUED.value,
                created_at=utcnow(),
            )
            await session.commit()
            job = ClientUpdateJob.from_orm(model)

        logger.info("Client update job %s queued for %s (target=%s)", job.id, client_id, target_version or "latest")
        try:
            await self.transport.deliver_update(
                UpdateCommand(job_id=job.id, client_id=client_id, target_version=target_version)
            )
        except ClientUnreachableError as exc:
            logger.warning("Client update job %s not delivered: %s", job.id, exc)
            return await self._finish(job.id, UpdateJobStatus.FAILED, REASON_CLIENT_UNREACHABLE)
        return job

    async def acknowledge(
        self,
        job_id: str,
        accepted: bool,
        reason: Optional[str] = None,
        *,
        client_id: Optional[str] = None,
    ) -> ClientUpdateJob:
        if client_id is not None:
            job = await self.get(job_id)
            if job.client_id != client_id:
                raise UpdateJobOwnershipError(job_id, client_id)
        if accepted:
            return await self._finish(job_id, UpdateJobStatus.DELIVERED, None)
        return await self._finish(job_id, UpdateJobStatus.FAILED, reason or REASON_REJECTED)

    async def get(self, job_id: str) -> ClientUpdateJob:
        async with self.session_factory() as session:
            return await self._load(SqlClientUpdateRepository(session), job_id)

    async def _finish(self, job_id: str, status: UpdateJobStatus, reason: Optional[str]) -> ClientUpdateJob:
        async with self.session_factory() as session:
            repository = SqlClientUpdateRepository(session)
            applied = await repository.finish(
                job_id,
                expected=UpdateJobStatus.QUEUED.value,
                status=status.value,
                failure_reason=reason,
                finished_at=utcnow(),
            )
            await session.commit()
            job = await self._load(repository, job_id)
        if applied:
            logger.info("Client update job %s -> %s", job_id, status.value)
        else:
            logger.info("Ignoring %s for client update job %s already %s", status.value, job_id, job.status.value)
        return job

    @staticmethod
    async def _load(repository: SqlClientUpdateRepository, job_id: str) -> ClientUpdateJob:
        model = await repository.get_by_id(job_id)
        if model is None:
            raise UpdateJobNotFoundError(job_id)
        return ClientUpdateJob.from_orm(model)
