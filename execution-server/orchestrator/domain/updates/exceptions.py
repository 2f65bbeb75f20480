"""Client update domain specific exceptions."""

from orchestrator.domain.common.exceptions import NotFoundError, OrchestrationError


class UpdateJobNotFoundError(NotFoundError):
    """Raised when the requested update job could not be found."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Client update job not found: {job_id}")


class UpdateJobOwnershipError(OrchestrationError):
    """Raised when a client acknowledges an update job addressed to another client."""

    def __init__(self, job_id: str, client_id: str) -> None:
        self.job_id = job_id
        self.client_id = client_id
        super().__init__(f"Client update job {job_id} does not belong to client {client_id}")
