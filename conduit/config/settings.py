"""
Shell settings

Pydantic models for runtime configuration, loadable from the environment
(``CONDUIT_*`` variables, optionally from a ``.env`` file).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "CONDUIT_"
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class BackendSettings(BaseModel):
    """Endpoints and transport knobs for the AI backends."""

    anthropic_url: str = Field(
        "https://api.anthropic.com/v1/messages", description="Anthropic Messages endpoint"
    )
    openai_url: str = Field(
        "https://api.openai.com/v1/chat/completions", description="OpenAI chat endpoint"
    )
    ollama_url: str = Field(
        "http://localhost:11434",
        description="Ollama base URL, used when the preference store has none",
    )
    request_timeout: float = Field(120.0, gt=0, description="Per-request timeout in seconds")
    stream_buffer: int = Field(64, ge=1, description="Max deltas buffered between reader and consumer")


class ShellSettings(BaseModel):
    """Top-level runtime configuration."""

    default_module: str = Field("chat", description="Module used when no trigger matches")
    default_model: str = Field(
        "claude-sonnet-4-5-20250929", description="Model used when preferences set none"
    )
    clock_interval: float = Field(1.0, gt=0, description="Clock signal period in seconds")
    clipboard_interval: float = Field(2.0, gt=0, description="Clipboard poll period in seconds")
    recent_message_limit: int = Field(10, ge=1, description="Messages kept in snapshots")
    log_level: str = Field("INFO", description="structlog level")
    log_json: bool = Field(False, description="Render logs as JSON")
    backends: BackendSettings = Field(default_factory=BackendSettings)

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        level = (v or "").upper()
        return level if level in LOG_LEVELS else "INFO"

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> ShellSettings:
        load_dotenv(env_file, override=False)

        def env(name: str) -> str | None:
            return os.environ.get(f"{ENV_PREFIX}{name}")

        top = {
            "default_module": env("DEFAULT_MODULE"),
            "default_model": env("DEFAULT_MODEL"),
            "clock_interval": env("CLOCK_INTERVAL"),
            "clipboard_interval": env("CLIPBOARD_INTERVAL"),
            "log_level": env("LOG_LEVEL"),
            "log_json": env("LOG_JSON"),
        }
        backends = {
            "ollama_url": env("OLLAMA_URL"),
            "request_timeout": env("REQUEST_TIMEOUT"),
        }
        return cls(
            **{k: v for k, v in top.items() if v is not None},
            backends=BackendSettings(**{k: v for k, v in backends.items() if v is not None}),
        )
