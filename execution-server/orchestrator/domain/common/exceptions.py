"""Error taxonomy shared by every domain module."""


class OrchestrationError(Exception):
    """Base class for orchestration domain errors."""


class NotFoundError(OrchestrationError):
    """Raised when the referenced entity does not exist."""


class ConflictError(OrchestrationError):
    """Raised when an invariant would be violated by a concurrent writer."""


class ValidationError(OrchestrationError):
    """Raised for malformed filter, paging or cursor input."""
