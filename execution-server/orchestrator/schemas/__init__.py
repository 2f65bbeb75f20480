"""Pydantic schemas used across the project."""
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from orchestrator.domain.executions.models import ErrorKind, ExecutionStatus, TriggerType
from orchestrator.domain.updates.models import UpdateJobStatus


class ApiModel(BaseModel):
    """Public payloads use camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class TriggerExecutionRequest(ApiModel):
    script_id: str = Field(..., min_length=1, max_length=64)
    client_id: Optional[str] = Field(default=None, min_length=1, max_length=255)
    common_name: Optional[str] = Field(default=None, min_length=1, max_length=255)

    @model_validator(mode="after")
    def _require_target(self) -> "TriggerExecutionRequest":
        if not self.client_id and not self.common_name:
            raise ValueError("either clientId or commonName is required")
        return self


class ExecutionResponse(ApiModel):
    id: str
    script_id: str
    client_id: str
    status: ExecutionStatus
    created_at: datetime
    dispatched_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    last_activity_at: datetime
    exit_code: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None
    trigger_type: TriggerType = TriggerType.UI_PUSH


class ExecutionListResponse(ApiModel):
    items: list[ExecutionResponse]
    total: int


class ExecutionStatisticsResponse(ApiModel):
    total: int
    # keyed by status / trigger type value, zero for unused ones
    by_status: dict[str, int]
    by_trigger_type: dict[str, int]


class ExecutionTransitionResponse(ApiModel):
    from_status: ExecutionStatus
    to_status: ExecutionStatus
    occurred_at: datetime


class ExecutionTransitionListResponse(ApiModel):
    execution_id: str
    transitions: list[ExecutionTransitionResponse]


class OutputChunkResponse(ApiModel):
    execution_id: str
    # domain chunks call it "sequence"
    sequence_number: int = Field(..., validation_alias=AliasChoices("sequenceNumber", "sequence"))
    payload: str
    stream: str
    is_final: bool
    created_at: datetime


class ExecutionOutputResponse(ApiModel):
    chunks: list[OutputChunkResponse]
    complete: bool
    next_sequence: int
    exit_code: Optional[int] = None


class TriggerClientUpdateRequest(ApiModel):
    client_id: str = Field(..., min_length=1, max_length=255)
    target_version: Optional[str] = Field(default=None, max_length=50)


class ClientUpdateJobResponse(ApiModel):
    id: str
    client_id: str
    target_version: Optional[str] = None
    status: UpdateJobStatus
    failure_reason: Optional[str] = None
    created_at: datetime
    finished_at: Optional[datetime] = None


class ConnectedClientResponse(ApiModel):
    client_id: str
    version: Optional[str] = None
    connected_at: datetime


class ConnectedClientListResponse(ApiModel):
    clients: list[ConnectedClientResponse]


class CertificateResponse(ApiModel):
    serial_number: Optional[str] = None
    client_id: Optional[str] = None
    common_name: Optional[str] = None
    tenant_id: Optional[int] = None
    issuer_name: Optional[str] = None
    status: Optional[str] = None
    cert_type: Optional[str] = None


class CertificateListResponse(ApiModel):
    items: list[CertificateResponse]
    total: Optional[int] = None


class HealthResponse(ApiModel):
    status: str
    version: str
    connected_clients: int


class ErrorResponse(BaseModel):
    detail: str
    retryable: bool = False


class WSMessage(BaseModel):
    type: str
    data: Optional[dict[str, Any]] = None


class CommandAck(BaseModel):
    execution_id: str
    accepted: bool = True
    rejection_reason: Optional[str] = None


class ExecutionStarted(BaseModel):
    execution_id: str


class ExecutionOutput(BaseModel):
    execution_id: str
    payload: str = ""
    stream: str = "stdout"
    is_final: bool = False


class ExecutionResult(BaseModel):
    execution_id: str
    exit_code: int
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None


class UpdateAck(BaseModel):
    job_id: str
    accepted: bool = True
    reason: Optional[str] = None


class ExecutionSubmit(BaseModel):
    """A run the client started itself, reported once it has finished."""

    script_id: str = Field(..., min_length=1, max_length=64)
    exit_code: int
    output: Optional[str] = None
    error_output: Optional[str] = None
    duration_ms: Optional[int] = Field(default=None, ge=0)
    error_message: Optional[str] = None
