"""WebSocket endpoint for remote execution clients."""
import json
import logging
from dataclasses import dataclass
from typing import Literal, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PayloadError
from starlette.websockets import WebSocketState

from orchestrator.api.deps import get_app_container
from orchestrator.core.container import ApplicationContainer
from orchestrator.domain.common import OrchestrationError
from orchestrator.domain.dispatch import ExecutionEvents
from orchestrator.domain.updates import ClientUpdateDispatcher
from orchestrator.schemas import (
    CommandAck,
    ExecutionOutput,
    ExecutionResult,
    ExecutionStarted,
    ExecutionSubmit,
    UpdateAck,
    WSMessage,
)

logger = logging.getLogger(__name__)

router = APIRouter()

CLIENT_CN_HEADER = "X-Client-CN"

SESSION_INIT = "session_init"
SESSION_READY = "session_ready"
MESSAGE_HEARTBEAT = "heartbeat"
MESSAGE_COMMAND_ACK = "command_ack"
MESSAGE_STARTED = "started"
MESSAGE_OUTPUT = "output"
MESSAGE_RESULT = "result"
MESSAGE_UPDATE_ACK = "update_ack"
MESSAGE_SUBMIT = "submit"
MESSAGE_SUBMIT_ACK = "submit_ack"
MESSAGE_ERROR = "error"

SESSION_SUPERSEDED_CLOSE_CODE = 1001


@dataclass(slots=True)
class ClientSession:
    websocket: WebSocket
    client_id: Optional[str] = None
    state: Literal["init", "ready", "closed"] = "init"

    def is_ready(self) -> bool:
        return self.state == "ready"

    def mark_ready(self, client_id: str) -> None:
        self.state = "ready"
        self.client_id = client_id

    def mark_closed(self) -> None:
        self.state = "closed"


@router.websocket("/ws/clients")
async def client_socket(websocket: WebSocket, container: ApplicationContainer = Depends(get_app_container)):
    session = ClientSession(websocket=websocket, client_id=websocket.headers.get(CLIENT_CN_HEADER) or None)
    events = container.execution_events()
    updates = container.update_dispatcher()
    await websocket.accept()
    try:
        while True:
            message = await websocket.receive_text()
            await _handle_client_message(
                session=session,
                raw=message,
                container=container,
                events=events,
                updates=updates,
            )
            if session.state == "closed":
                break
            if session.is_ready() and not container.connections.is_current(session.client_id, websocket):
                # dropped by the heartbeat monitor or replaced by a newer session
                logger.info("Session for client %s is no longer registered, closing", session.client_id)
                if websocket.application_state != WebSocketState.DISCONNECTED:
                    await websocket.close(code=SESSION_SUPERSEDED_CLOSE_CODE, reason="session no longer registered")
                break
    except WebSocketDisconnect:
        logger.info("Client %s disconnected", session.client_id or "unknown")
    finally:
        if session.is_ready():
            await container.connections.disconnect(session.client_id, websocket)


def _parse_json(raw: str) -> dict:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("Invalid JSON payload: %s", exc)
        return {}
    return data if isinstance(data, dict) else {}


async def _handle_client_message(
    *,
    session: ClientSession,
    raw: str,
    container: ApplicationContainer,
    events: ExecutionEvents,
    updates: ClientUpdateDispatcher,
) -> None:
    data = _parse_json(raw)
    msg_type = data.get("type")
    payload = data.get("data") or {}

    if not msg_type:
        await _send_error(session, "message missing type")
        return

    if not session.is_ready():
        if msg_type != SESSION_INIT:
            await _send_error(session, "session not initialized")
            return
        await _process_session_init(session, payload, container)
        return

    if msg_type == SESSION_INIT:
        await _send(session, WSMessage(type=SESSION_READY, data={"client_id": session.client_id}))
        return

    if msg_type == MESSAGE_HEARTBEAT:
        container.connections.update_heartbeat(session.client_id)
        return

    try:
        if msg_type == MESSAGE_COMMAND_ACK:
            ack = CommandAck(**payload)
            await events.acknowledged(
                ack.execution_id,
                ack.accepted,
                ack.rejection_reason,
                client_id=session.client_id,
            )
        elif msg_type == MESSAGE_STARTED:
            started = ExecutionStarted(**payload)
            await events.started(started.execution_id, client_id=session.client_id)
        elif msg_type == MESSAGE_OUTPUT:
            output = ExecutionOutput(**payload)
            await events.output(
                output.execution_id,
                output.payload,
                stream=output.stream,
                is_final=output.is_final,
                client_id=session.client_id,
            )
        elif msg_type == MESSAGE_RESULT:
            result = ExecutionResult(**payload)
            await events.finished(
                result.execution_id,
                result.exit_code,
                duration_ms=result.duration_ms,
                error_message=result.error_message,
                client_id=session.client_id,
            )
        elif msg_type == MESSAGE_SUBMIT:
            submit = ExecutionSubmit(**payload)
            execution = await events.submitted(
                submit.script_id,
                session.client_id,
                submit.exit_code,
                output=submit.output,
                error_output=submit.error_output,
                duration_ms=submit.duration_ms,
                error_message=submit.error_message,
            )
            await _send(
                session,
                WSMessage(
                    type=MESSAGE_SUBMIT_ACK,
                    data={"execution_id": execution.id, "status": execution.status.value},
                ),
            )
        elif msg_type == MESSAGE_UPDATE_ACK:
            update_ack = UpdateAck(**payload)
            await updates.acknowledge(
                update_ack.job_id,
                update_ack.accepted,
                update_ack.reason,
                client_id=session.client_id,
            )
        else:
            logger.warning("Unknown websocket message type: %s", msg_type)
            await _send_error(session, f"unknown message type {msg_type}")
            return
    except PayloadError as exc:
        logger.error("Invalid %s payload from client %s: %s", msg_type, session.client_id, exc)
        await _send_error(session, f"invalid {msg_type} payload")
        return
    except OrchestrationError as exc:
        logger.warning("Rejected %s from client %s: %s", msg_type, session.client_id, exc)
        await _send_error(session, str(exc))
        return

    # any traffic proves the client is alive
    container.connections.update_heartbeat(session.client_id)


async def _process_session_init(session: ClientSession, payload: dict, container: ApplicationContainer) -> None:
    client_id = session.client_id or payload.get("client_id")
    if not client_id:
        await session.websocket.close(code=1008, reason="missing client identity")
        session.mark_closed()
        return

    container.connections.register(client_id, session.websocket, version=payload.get("version"))
    session.mark_ready(client_id)
    await _send(session, WSMessage(type=SESSION_READY, data={"client_id": client_id}))


async def _send(session: ClientSession, message: WSMessage) -> None:
    await session.websocket.send_text(message.model_dump_json())


async def _send_error(session: ClientSession, reason: str) -> None:
    try:
        await _send(session, WSMessage(type=MESSAGE_ERROR, data={"reason": reason}))
    except Exception as exc:  # pylint: disable=broad-except
        logger.debug("Failed to send error to %s: %s", session.client_id or "unknown", exc)
