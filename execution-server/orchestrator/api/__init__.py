from fastapi import APIRouter

from orchestrator.api.routers import client_updates, clients, executions, health


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(executions.router, tags=["executions"])
    router.include_router(client_updates.router, tags=["client updates"])
    router.include_router(clients.router, tags=["clients"])
    router.include_router(health.router, tags=["health"])
    return router


__all__ = [
    "create_api_router",
]
