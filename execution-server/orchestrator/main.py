import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orchestrator import __version__
from orchestrator.api import create_api_router
from orchestrator.api.routers import websocket as websocket_router
from orchestrator.core.container import ApplicationContainer, get_container
from orchestrator.core.logging import configure_logging
from orchestrator.domain.certificates import CertificateDirectoryError
from orchestrator.domain.common import ConflictError, NotFoundError, ValidationError
from orchestrator.domain.executions import InvalidTransitionError
from orchestrator.infrastructure.database import init_db
from orchestrator.schemas import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: ApplicationContainer = app.state.container
    configure_logging(container.settings)
    await init_db(container.engine)

    sweeper_task: Optional[asyncio.Task] = None
    if container.settings.execution.sweep_enabled:
        sweeper_task = asyncio.create_task(container.timeout_sweeper().run())
    logger.info("%s %s started", container.settings.project_name, __version__)
    try:
        yield
    finally:
        if sweeper_task is not None:
            sweeper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper_task
        await container.dispose()


def _error(status_code: int, detail: str, retryable: bool = False) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=detail, retryable=retryable).model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(ValidationError)
    async def invalid_input(_: Request, exc: ValidationError) -> JSONResponse:
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))

    @app.exception_handler(ConflictError)
    @app.exception_handler(InvalidTransitionError)
    async def invariant_fault(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Invariant fault on %s %s: %s", request.method, request.url.path, exc)
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc), retryable=True)

    @app.exception_handler(CertificateDirectoryError)
    async def directory_unavailable(_: Request, exc: CertificateDirectoryError) -> JSONResponse:
        logger.warning("Certificate directory error: %s", exc)
        return _error(status.HTTP_502_BAD_GATEWAY, str(exc))


def create_app(container: Optional[ApplicationContainer] = None) -> FastAPI:
    container = container or get_container()
    settings = container.settings
    app = FastAPI(
        title=settings.project_name,
        description="Dispatches scripts to remote clients and tracks their executions",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(create_api_router(settings.api_prefix))
    app.include_router(websocket_router.router)
    return app


def run() -> None:
    import uvicorn

    settings = get_container().settings
    uvicorn.run(
        "orchestrator.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.server.reload,
    )


if __name__ == "__main__":
    run()
