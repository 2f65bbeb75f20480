"""Connected clients and certificate lookup."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from orchestrator.api.deps import get_app_container, get_certificate_directory
from orchestrator.api.routers.executions import bearer_token
from orchestrator.core.container import ApplicationContainer
from orchestrator.domain.certificates import CertificateDirectory
from orchestrator.schemas import (
    CertificateListResponse,
    CertificateResponse,
    ConnectedClientListResponse,
    ConnectedClientResponse,
)

router = APIRouter()


@router.get("/clients/connected", response_model=ConnectedClientListResponse, summary="List connected clients")
async def list_connected_clients(
    container: ApplicationContainer = Depends(get_app_container),
) -> ConnectedClientListResponse:
    return ConnectedClientListResponse(
        clients=[ConnectedClientResponse.model_validate(client) for client in container.connections.list_connected()]
    )


@router.get("/certificates", response_model=CertificateListResponse, summary="Search client certificates")
async def search_certificates(
    request: Request,
    common_name: Optional[str] = Query(default=None, alias="commonName"),
    page_size: Optional[int] = Query(default=None, alias="pageSize", ge=1),
    certificates: CertificateDirectory = Depends(get_certificate_directory),
) -> CertificateListResponse:
    page = await certificates.list(common_name, page_size, token=bearer_token(request))
    return CertificateListResponse(
        items=[CertificateResponse.model_validate(item) for item in page.items],
        total=page.total,
    )
