"""Client software update endpoints."""

from fastapi import APIRouter, Depends, Path

from orchestrator.api.deps import get_update_dispatcher
from orchestrator.domain.updates import ClientUpdateDispatcher
from orchestrator.schemas import ClientUpdateJobResponse, TriggerClientUpdateRequest

router = APIRouter()


@router.post("/trigger-client-update", response_model=ClientUpdateJobResponse, summary="Push an update to a client")
async def trigger_client_update(
    payload: TriggerClientUpdateRequest,
    dispatcher: ClientUpdateDispatcher = Depends(get_update_dispatcher),
) -> ClientUpdateJobResponse:
    job = await dispatcher.trigger(payload.client_id, payload.target_version)
    return ClientUpdateJobResponse.model_validate(job)


@router.get("/client-update/{job_id}", response_model=ClientUpdateJobResponse, summary="Get a client update job")
async def get_client_update(
    job_id: str = Path(..., description="Client update job ID"),
    dispatcher: ClientUpdateDispatcher = Depends(get_update_dispatcher),
) -> ClientUpdateJobResponse:
    job = await dispatcher.get(job_id)
    return ClientUpdateJobResponse.model_validate(job)
