"""Execution trigger, status, listing and output endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from orchestrator.api.deps import (
    get_app_container,
    get_certificate_directory,
    get_db_session,
    get_dispatch_coordinator,
)
from orchestrator.core.container import ApplicationContainer
from orchestrator.domain.certificates import CertificateDirectory
from orchestrator.domain.dispatch import DispatchCoordinator
from orchestrator.domain.executions import (
    ExecutionFilters,
    ExecutionQueryService,
    ExecutionStore,
    InvalidTransitionError,
    parse_status,
    parse_trigger_type,
)
from orchestrator.domain.outputs import OutputBuffer
from orchestrator.schemas import (
    ExecutionListResponse,
    ExecutionOutputResponse,
    ExecutionResponse,
    ExecutionStatisticsResponse,
    ExecutionTransitionListResponse,
    ExecutionTransitionResponse,
    OutputChunkResponse,
    TriggerExecutionRequest,
)

router = APIRouter()


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token:
        return token
    return None


@router.post("/trigger-execution", response_model=ExecutionResponse, summary="Trigger a script on a client")
async def trigger_execution(
    payload: TriggerExecutionRequest,
    request: Request,
    coordinator: DispatchCoordinator = Depends(get_dispatch_coordinator),
    certificates: CertificateDirectory = Depends(get_certificate_directory),
) -> ExecutionResponse:
    client_id = payload.client_id
    if client_id is None:
        client_id = await certificates.resolve_client_id(payload.common_name, token=bearer_token(request))
    execution = await coordinator.trigger(payload.script_id, client_id)
    return ExecutionResponse.model_validate(execution)


@router.get("/execution/{execution_id}", response_model=ExecutionResponse, summary="Get an execution")
async def get_execution(
    execution_id: str = Path(..., description="Execution ID"),
    db: AsyncSession = Depends(get_db_session),
) -> ExecutionResponse:
    execution = await ExecutionStore.with_session(db).get(execution_id)
    return ExecutionResponse.model_validate(execution)


@router.get("/executions", response_model=ExecutionListResponse, summary="List executions")
async def list_executions(
    script_id: Optional[str] = Query(default=None, alias="scriptId"),
    client_id: Optional[str] = Query(default=None, alias="clientId"),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    trigger_type: Optional[str] = Query(default=None, alias="triggerType"),
    page: Optional[int] = Query(default=None),
    page_size: Optional[int] = Query(default=None, alias="pageSize"),
    container: ApplicationContainer = Depends(get_app_container),
    db: AsyncSession = Depends(get_db_session),
) -> ExecutionListResponse:
    service = ExecutionQueryService.with_session(db, container.settings.query)
    filters = ExecutionFilters(
        script_id=script_id or None,
        client_id=client_id or None,
        status=parse_status(status_filter),
        trigger_type=parse_trigger_type(trigger_type),
    )
    result = await service.list(filters, page=page, page_size=page_size)
    return ExecutionListResponse(
        items=[ExecutionResponse.model_validate(item) for item in result.items],
        total=result.total,
    )


@router.get("/executions/statistics", response_model=ExecutionStatisticsResponse, summary="Count executions")
async def execution_statistics(
    script_id: Optional[str] = Query(default=None, alias="scriptId"),
    client_id: Optional[str] = Query(default=None, alias="clientId"),
    container: ApplicationContainer = Depends(get_app_container),
    db: AsyncSession = Depends(get_db_session),
) -> ExecutionStatisticsResponse:
    service = ExecutionQueryService.with_session(db, container.settings.query)
    stats = await service.statistics(script_id=script_id or None, client_id=client_id or None)
    return ExecutionStatisticsResponse(
        total=stats.total,
        by_status={status.value: count for status, count in stats.by_status.items()},
        by_trigger_type={kind.value: count for kind, count in stats.by_trigger_type.items()},
    )

@router.get(
    "/execution/{execution_id}/output",
    response_model=ExecutionOutputResponse,
    summary="Read captured output",
)
async def get_execution_output(
    execution_id: str = Path(..., description="Execution ID"),
    from_sequence: int = Query(default=0, alias="fromSequence"),
    max_chunks: Optional[int] = Query(default=None, alias="maxChunks"),
    container: ApplicationContainer = Depends(get_app_container),
    db: AsyncSession = Depends(get_db_session),
) -> ExecutionOutputResponse:
    buffer = OutputBuffer.with_session(db, container.settings.output)
    page = await buffer.read(execution_id, from_sequence, max_chunks)
    return ExecutionOutputResponse(
        chunks=[OutputChunkResponse.model_validate(chunk) for chunk in page.chunks],
        complete=page.complete,
        next_sequence=page.next_sequence,
        exit_code=page.exit_code,
    )


@router.post(
    "/execution/{execution_id}/cancel",
    response_model=ExecutionResponse,
    summary="Cancel an execution",
)
async def cancel_execution(
    execution_id: str = Path(..., description="Execution ID"),
    coordinator: DispatchCoordinator = Depends(get_dispatch_coordinator),
) -> ExecutionResponse:
    try:
        execution = await coordinator.cancel(execution_id)
    except InvalidTransitionError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Execution already {exc.current}",
        ) from exc
    return ExecutionResponse.model_validate(execution)


@router.get(
    "/execution/{execution_id}/transitions",
    response_model=ExecutionTransitionListResponse,
    summary="List recorded status transitions",
)
async def list_execution_transitions(
    execution_id: str = Path(..., description="Execution ID"),
    db: AsyncSession = Depends(get_db_session),
) -> ExecutionTransitionListResponse:
    transitions = await ExecutionStore.with_session(db).list_transitions(execution_id)
    return ExecutionTransitionListResponse(
        execution_id=execution_id,
        transitions=[ExecutionTransitionResponse.model_validate(item) for item in transitions],
    )
