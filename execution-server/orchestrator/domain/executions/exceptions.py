"""Execution domain specific exceptions."""

from orchestrator.domain.common.exceptions import ConflictError, NotFoundError, OrchestrationError


class ExecutionNotFoundError(NotFoundError):
    """Raised when the requested execution could not be found."""

    def __init__(self, execution_id: str) -> None:
        self.execution_id = execution_id
        super().__init__(f"Execution not found: {execution_id}")


class ExecutionConflictError(ConflictError):
    """Raised when a second non-terminal execution would exist for one script/client pair."""

    def __init__(self, script_id: str, client_id: str, detail: str = "non-terminal execution exists") -> None:
        self.script_id = script_id
        self.client_id = client_id
        super().__init__(f"{detail} for script={script_id} client={client_id}")


class InvalidTransitionError(OrchestrationError):
    """Raised when a status change is not an edge of the lifecycle graph."""

    def __init__(self, execution_id: str, current: str, target: str) -> None:
        self.execution_id = execution_id
        self.current = current
        self.target = target
        super().__init__(f"Invalid execution transition for {execution_id}: {current} -> {target}")


class ExecutionTimeoutError(OrchestrationError):
    """Describes an execution that went silent past its deadline; recorded, never raised to callers."""

    def __init__(self, execution_id: str, deadline_seconds: int) -> None:
        self.execution_id = execution_id
        self.deadline_seconds = deadline_seconds
        super().__init__(f"no activity for {deadline_seconds}s")


class ExecutionOwnershipError(OrchestrationError):
    """Raised when a client reports on an execution dispatched to another client."""

    def __init__(self, execution_id: str, client_id: str) -> None:
        self.execution_id = execution_id
        self.client_id = client_id
        super().__init__(f"Execution {execution_id} does not belong to client {client_id}")
