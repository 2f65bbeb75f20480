"""Contract between the orchestration core and whatever carries commands to clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from orchestrator.domain.common.exceptions import OrchestrationError

MESSAGE_EXECUTE = "execute"
MESSAGE_CLIENT_UPDATE = "client_update"
MESSAGE_CANCEL = "cancel"


class ClientUnreachableError(OrchestrationError):
    """Raised by a transport when a command cannot be handed to the client."""

    def __init__(self, client_id: str, reason: str = "client not connected") -> None:
        self.client_id = client_id
        self.reason = reason
        super().__init__(f"Client {client_id} unreachable: {reason}")


@dataclass(slots=True)
class ExecutionCommand:
    execution_id: str
    script_id: str
    client_id: str

    def to_message(self) -> dict[str, Any]:
        return {
            "type": MESSAGE_EXECUTE,
            "data": {"execution_id": self.execution_id, "script_id": self.script_id},
        }


@dataclass(slots=True)
class UpdateCommand:
    job_id: str
    client_id: str
    target_version: Optional[str]

    def to_message(self) -> dict[str, Any]:
        return {
            "type": MESSAGE_CLIENT_UPDATE,
            "data": {"job_id": self.job_id, "target_version": self.target_version},
        }


@dataclass(slots=True)
class CancelCommand:
    execution_id: str
    client_id: str

    def to_message(self) -> dict[str, Any]:
        return {"type": MESSAGE_CANCEL, "data": {"execution_id": self.execution_id}}


class Transport(Protocol):
    """Delivery is enqueue-only: implementations must not wait for the remote run."""

    async def deliver_execution(self, command: ExecutionCommand) -> None:
        ...

    async def deliver_update(self, command: UpdateCommand) -> None:
        ...

    async def abort_execution(self, command: CancelCommand) -> None:
        ...
