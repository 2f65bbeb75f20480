"""Output buffer specific exceptions."""

from orchestrator.domain.common.exceptions import OrchestrationError


class BufferSealedError(OrchestrationError):
    """Raised when output is appended to an execution that already finished."""

    def __init__(self, execution_id: str, status: str) -> None:
        self.execution_id = execution_id
        self.status = status
        super().__init__(f"Output buffer for {execution_id} is sealed (status {status})")
