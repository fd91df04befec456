"""Configuration for the workflow engine.

Loaded from environment variables and a local `.env` file (if present).
Every setting has a default so the engine starts with an in-process notifier
and a JSON store under `engine_state/`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Settings for the engine, its REST API and CLI.

    Environment variables:
    - LOG_LEVEL                       (optional)
    - ENGINE_STATE_PATH               (optional)
    - ENGINE_STORE_BACKEND            (optional, `json` or `memory`)
    - ENGINE_MONITOR_URL              (optional; no monitor when empty)
    - ENGINE_NOTIFIER_MODE            (optional, `thread` or `inline`)
    - ENGINE_OPENAI_API_KEY           (optional; deterministic summaries when empty)

    Notes:
        Tests can override the env file via `EngineSettings(_env_file=path)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    state_path: Path = Field(
        default=Path("engine_state"),
        validation_alias="ENGINE_STATE_PATH",
        description="Directory where entity state is persisted",
    )
    store_backend: Literal["json", "memory"] = Field(
        default="json",
        validation_alias="ENGINE_STORE_BACKEND",
    )

    monitor_url: str = Field(
        default="",
        validation_alias="ENGINE_MONITOR_URL",
        description="Endpoint that receives dispatched event ids. Empty disables delivery.",
    )
    monitor_timeout_seconds: float = Field(
        default=10.0,
        validation_alias="ENGINE_MONITOR_TIMEOUT_SECONDS",
        gt=0,
    )
    notifier_mode: Literal["thread", "inline"] = Field(
        default="thread",
        validation_alias="ENGINE_NOTIFIER_MODE",
        description="`thread` dispatches on a daemon thread; `inline` delivers synchronously.",
    )

    openai_api_key: str = Field(default="", validation_alias="ENGINE_OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="ENGINE_OPENAI_MODEL")
    openai_temperature: float = Field(
        default=0.3,
        validation_alias="ENGINE_OPENAI_TEMPERATURE",
        ge=0.0,
        le=2.0,
    )

    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="ENGINE_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    @property
    def state_file(self) -> Path:
        """Path of the JSON entity store."""

        return self.state_path / "entities.json"

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
