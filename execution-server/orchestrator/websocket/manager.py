"""Connection manager for remote clients; the service's transport adapter."""
import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from fastapi import WebSocket

from orchestrator.domain.dispatch.transport import (
    CancelCommand,
    ClientUnreachableError,
    ExecutionCommand,
    UpdateCommand,
)
from orchestrator.infrastructure.database.types import utcnow

logger = logging.getLogger(__name__)

HEARTBEAT_TIMEOUT_CLOSE_CODE = 1001


@dataclass(slots=True)
class ConnectedClient:
    client_id: str
    version: Optional[str]
    connected_at: datetime


class ConnectionManager:
    def __init__(self, timeout: int = 300, check_interval: int = 30) -> None:
        self.client_connections: Dict[str, WebSocket] = {}
        self.clients: Dict[str, ConnectedClient] = {}
        self.heartbeat_tasks: Dict[str, asyncio.Task] = {}
        self.last_heartbeat: Dict[str, datetime] = {}
        self.timeout = timedelta(seconds=timeout)
        self.check_interval = check_interval

    def register(self, client_id: str, websocket: WebSocket, version: Optional[str] = None) -> None:
        previous = self.client_connections.get(client_id)
        if previous is not None and previous is not websocket:
            logger.info("Client %s reconnected, replacing previous session", client_id)
        self.client_connections[client_id] = websocket
        self.clients[client_id] = ConnectedClient(client_id=client_id, version=version, connected_at=utcnow())
        self.last_heartbeat[client_id] = utcnow()
        self._start_heartbeat_monitor(client_id)
        logger.info("Client %s registered (version=%s)", client_id, version or "unknown")

    async def disconnect(self, client_id: str, websocket: Optional[WebSocket] = None) -> None:
        if websocket is not None and self.client_connections.get(client_id) is not websocket:
            # a newer session already owns this client id
            return
        self.client_connections.pop(client_id, None)
        self.clients.pop(client_id, None)
        self.last_heartbeat.pop(client_id, None)
        task = self.heartbeat_tasks.pop(client_id, None)
        if task and task is not asyncio.current_task():
            task.cancel()
        logger.info("Client %s disconnected", client_id)

    async def send_message(self, client_id: str, message: dict) -> bool:
        websocket = self.client_connections.get(client_id)
        if websocket is None:
            logger.warning("Client %s is not connected", client_id)
            return False
        try:
            await websocket.send_text(json.dumps(message))
            return True
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Sending message to client %s failed: %s", client_id, exc)
            await self.disconnect(client_id)
            return False

    async def deliver_execution(self, command: ExecutionCommand) -> None:
        await self._deliver(command.client_id, command.to_message())

    async def deliver_update(self, command: UpdateCommand) -> None:
        await self._deliver(command.client_id, command.to_message())

    async def abort_execution(self, command: CancelCommand) -> None:
        await self._deliver(command.client_id, command.to_message())

    async def _deliver(self, client_id: str, message: dict) -> None:
        if not self.is_online(client_id):
            raise ClientUnreachableError(client_id)
        if not await self.send_message(client_id, message):
            raise ClientUnreachableError(client_id, "send failed")

    def is_online(self, client_id: str) -> bool:
        return client_id in self.client_connections

    def is_current(self, client_id: str, websocket: WebSocket) -> bool:
        return self.client_connections.get(client_id) is websocket

    def list_connected(self) -> list[ConnectedClient]:
        return sorted(self.clients.values(), key=lambda client: client.connected_at)

    def get_online_count(self) -> int:
        return len(self.client_connections)

    def update_heartbeat(self, client_id: str) -> None:
        if client_id in self.client_connections:
            self.last_heartbeat[client_id] = utcnow()

    def _start_heartbeat_monitor(self, client_id: str) -> None:
        task = self.heartbeat_tasks.get(client_id)
        if task:
            task.cancel()
        self.heartbeat_tasks[client_id] = asyncio.create_task(self._heartbeat_monitor(client_id))

    async def _heartbeat_monitor(self, client_id: str) -> None:
        try:
            while True:
                await asyncio.sleep(self.check_interval)
                last = self.last_heartbeat.get(client_id)
                if last and utcnow() - last > self.timeout:
                    logger.warning("Client %s heartbeat timed out, disconnecting", client_id)
                    websocket = self.client_connections.get(client_id)
                    await self.disconnect(client_id)
                    if websocket is not None:
                        await self._close(client_id, websocket, HEARTBEAT_TIMEOUT_CLOSE_CODE, "heartbeat timeout")
                    break
        except asyncio.CancelledError:
            logger.debug("Heartbeat monitor for client %s cancelled", client_id)

    @staticmethod
    async def _close(client_id: str, websocket: WebSocket, code: int, reason: str) -> None:
        try:
            await websocket.close(code=code, reason=reason)
        except Exception as exc:  # pylint: disable=broad-except
            logger.debug("Closing socket for client %s failed: %s", client_id, exc)

    async def shutdown(self) -> None:
        for client_id in list(self.client_connections):
            await self.disconnect(client_id)
