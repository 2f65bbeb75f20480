"""Client software update jobs."""

from .exceptions import UpdateJobNotFoundError, UpdateJobOwnershipError
from .models import ClientUpdateJob, UpdateJobStatus
from .service import ClientUpdateDispatcher

__all__ = [
    "ClientUpdateDispatcher",
    "ClientUpdateJob",
    "UpdateJobNotFoundError",
    "UpdateJobOwnershipError",
    "UpdateJobStatus",
]
