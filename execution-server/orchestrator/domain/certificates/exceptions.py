"""Certificate directory specific exceptions."""

from typing import Optional

from orchestrator.domain.common.exceptions import NotFoundError, OrchestrationError


class CertificateDirectoryError(OrchestrationError):
    """Raised when the certificate directory cannot be queried."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ClientNotFoundError(NotFoundError):
    """Raised when no certificate matches the requested common name."""

    def __init__(self, common_name: str) -> None:
        self.common_name = common_name
        super().__init__(f"No client certificate with common name {common_name!r}")
