"""Simple dependency container for wiring core services."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from orchestrator.core.config import Settings, get_settings
from orchestrator.core.locks import KeyedLock
from orchestrator.domain.certificates import CertificateDirectory
from orchestrator.domain.dispatch import DispatchCoordinator, ExecutionEvents, TimeoutSweeper, Transport
from orchestrator.domain.updates import ClientUpdateDispatcher
from orchestrator.infrastructure.database.session import build_engine, build_session_factory
from orchestrator.websocket.manager import ConnectionManager


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    connections: ConnectionManager
    certificates: CertificateDirectory
    transport: Transport
    pair_locks: KeyedLock = field(default_factory=KeyedLock)
    execution_locks: KeyedLock = field(default_factory=KeyedLock)

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        transport: Optional[Transport] = None,
        certificates: Optional[CertificateDirectory] = None,
    ) -> "ApplicationContainer":
        engine = build_engine(settings)
        connections = ConnectionManager(
            timeout=settings.ws_timeout,
            check_interval=settings.ws_heartbeat_interval,
        )
        return cls(
            settings=settings,
            engine=engine,
            session_factory=build_session_factory(engine),
            connections=connections,
            certificates=certificates or CertificateDirectory.from_settings(settings.certificates),
            transport=transport or connections,
        )

    def dispatch_coordinator(self) -> DispatchCoordinator:
        return DispatchCoordinator(
            session_factory=self.session_factory,
            transport=self.transport,
            pair_locks=self.pair_locks,
            execution_locks=self.execution_locks,
            max_attempts=self.settings.execution.max_transition_attempts,
        )

    def execution_events(self) -> ExecutionEvents:
        return ExecutionEvents(
            session_factory=self.session_factory,
            execution_locks=self.execution_locks,
            output_settings=self.settings.output,
            max_attempts=self.settings.execution.max_transition_attempts,
        )

    def update_dispatcher(self) -> ClientUpdateDispatcher:
        return ClientUpdateDispatcher(session_factory=self.session_factory, transport=self.transport)

    def timeout_sweeper(self) -> TimeoutSweeper:
        return TimeoutSweeper(
            session_factory=self.session_factory,
            transport=self.transport,
            execution_locks=self.execution_locks,
            settings=self.settings.execution,
        )

    async def dispose(self) -> None:
        await self.connections.shutdown()
        await self.engine.dispose()


@lru_cache()
def get_container() -> ApplicationContainer:
    return ApplicationContainer.build(get_settings())


__all__ = ["ApplicationContainer", "get_container"]
