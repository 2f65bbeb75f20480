from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

import pytest

from orchestrator.core.config import DatabaseSettings, ExecutionSettings, Settings
from orchestrator.core.container import ApplicationContainer
from orchestrator.domain.certificates import CertificateDirectory
from orchestrator.domain.dispatch import (
    CancelCommand,
    ClientUnreachableError,
    ExecutionCommand,
    UpdateCommand,
)
from orchestrator.infrastructure.database import init_db

T = TypeVar("T")


class RecordingTransport:
    """In-memory transport that remembers every command it was handed."""

    def __init__(self, unreachable: Iterable[str] = ()) -> None:
        self.unreachable = set(unreachable)
        self.executions: list[ExecutionCommand] = []
        self.updates: list[UpdateCommand] = []
        self.aborts: list[CancelCommand] = []

    def _check(self, client_id: str) -> None:
        if client_id in self.unreachable:
            raise ClientUnreachableError(client_id)

    async def deliver_execution(self, command: ExecutionCommand) -> None:
        self._check(command.client_id)
        self.executions.append(command)

    async def deliver_update(self, command: UpdateCommand) -> None:
        self._check(command.client_id)
        self.updates.append(command)

    async def abort_execution(self, command: CancelCommand) -> None:
        self._check(command.client_id)
        self.aborts.append(command)


class Harness:
    def __init__(self, settings: Settings, transport: RecordingTransport) -> None:
        self.settings = settings
        self.transport = transport
        self.certificates: Optional[CertificateDirectory] = None

    def build(self) -> ApplicationContainer:
        return ApplicationContainer.build(
            self.settings,
            transport=self.transport,
            certificates=self.certificates,
        )

    def run(self, scenario: Callable[[ApplicationContainer], Awaitable[T]]) -> T:
        async def _run() -> T:
            container = self.build()
            await init_db(container.engine)
            try:
                return await scenario(container)
            finally:
                await container.dispose()

        return asyncio.run(_run())


def build_settings(tmp_path: Path, **execution: Any) -> Settings:
    execution.setdefault("sweep_enabled", False)
    return Settings(
        environment="test",
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'orchestrator.db'}"),
        execution=ExecutionSettings(**execution),
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return build_settings(tmp_path)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def harness(settings: Settings, transport: RecordingTransport) -> Harness:
    return Harness(settings, transport)
