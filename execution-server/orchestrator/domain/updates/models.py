"""Client update job domain models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from orchestrator.db import models as orm


class UpdateJobStatus(str, Enum):
    QUEUED = "Queued"
    DELIVERED = "Delivered"
    FAILED = "Failed"


REASON_CLIENT_UNREACHABLE = "ClientUnreachable"
REASON_REJECTED = "Rejected"


@dataclass(slots=True)
class ClientUpdateJob:
    id: str
    client_id: str
    target_version: Optional[str]
    status: UpdateJobStatus
    created_at: datetime
    finished_at: Optional[datetime]
    failure_reason: Optional[str]

    @classmethod
    def from_orm(cls, instance: orm.ClientUpdateJob) -> "ClientUpdateJob":
        return cls(
            id=str(instance.id),
            client_id=instance.client_id,
            target_version=instance.target_version,
            status=UpdateJobStatus(instance.status),
            created_at=instance.created_at,
            finished_at=instance.finished_at,
            failure_reason=instance.failure_reason,
        )
