"""Service providers backed by the application container."""

from fastapi import Depends
from fastapi.requests import HTTPConnection

from orchestrator.core.container import ApplicationContainer
from orchestrator.domain.certificates import CertificateDirectory
from orchestrator.domain.dispatch import DispatchCoordinator
from orchestrator.domain.updates import ClientUpdateDispatcher


def get_app_container(connection: HTTPConnection) -> ApplicationContainer:
    return connection.app.state.container


def get_dispatch_coordinator(
    container: ApplicationContainer = Depends(get_app_container),
) -> DispatchCoordinator:
    return container.dispatch_coordinator()


def get_update_dispatcher(
    container: ApplicationContainer = Depends(get_app_container),
) -> ClientUpdateDispatcher:
    return container.update_dispatcher()


def get_certificate_directory(
    container: ApplicationContainer = Depends(get_app_container),
) -> CertificateDirectory:
    return container.certificates


__all__ = [
    "get_app_container",
    "get_certificate_directory",
    "get_dispatch_coordinator",
    "get_update_dispatcher",
]
