"""Reusable FastAPI dependencies."""

from .container import get_app_container, get_certificate_directory, get_dispatch_coordinator, get_update_dispatcher
from .database import get_db_session

__all__ = [
    "get_app_container",
    "get_certificate_directory",
    "get_db_session",
    "get_dispatch_coordinator",
    "get_update_dispatcher",
]
