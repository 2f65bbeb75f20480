"""Liveness endpoint."""

from fastapi import APIRouter, Depends

from orchestrator import __version__
from orchestrator.api.deps import get_app_container
from orchestrator.core.container import ApplicationContainer
from orchestrator.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse, summary="Service health")
async def health(container: ApplicationContainer = Depends(get_app_container)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        connected_clients=container.connections.get_online_count(),
    )
