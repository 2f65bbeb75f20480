"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./orchestrator.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class ExecutionSettings(BaseModel):
    """Lifecycle policy inputs for executions."""

    deadline_seconds: int = Field(default=600, ge=1)
    # per-script deadline overrides, keyed by script id
    script_deadlines: dict[str, int] = Field(default_factory=dict)
    sweep_enabled: bool = True
    sweep_interval_seconds: int = Field(default=30, ge=1)
    max_transition_attempts: int = Field(default=5, ge=1)


class QuerySettings(BaseModel):
    default_page_size: int = Field(default=20, ge=1)
    max_page_size: int = Field(default=100, ge=1)


class OutputSettings(BaseModel):
    default_max_chunks: int = Field(default=200, ge=1)
    max_chunks: int = Field(default=1000, ge=1)


class CertificateDirectorySettings(BaseModel):
    base_url: str = "http://localhost:7788/admin/v1/modules/lcm/v1"
    timeout_seconds: float = 10.0
    default_page_size: int = 20


class WebSocketSettings(BaseModel):
    heartbeat_interval: int = 30
    timeout: int = 300


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    project_name: str = "Execution Orchestration Service"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    execution: ExecutionSettings = ExecutionSettings()
    query: QuerySettings = QuerySettings()
    output: OutputSettings = OutputSettings()
    certificates: CertificateDirectorySettings = CertificateDirectorySettings()
    websocket: WebSocketSettings = WebSocketSettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def ws_heartbeat_interval(self) -> int:
        return self.websocket.heartbeat_interval

    @property
    def ws_timeout(self) -> int:
        return self.websocket.timeout


@lru_cache()
def get_settings() -> Settings:
    return Settings()
