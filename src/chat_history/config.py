"""
Settings for the chat history application.

Values come from environment variables prefixed with ``CHAT_HISTORY_`` or a
``.env`` file, validated by pydantic-settings:

    CHAT_HISTORY_STORAGE_DIR=~/.local/share/chat-history
    CHAT_HISTORY_RESPONDER=gemini
    CHAT_HISTORY_GEMINI_API_KEY=...
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .services.persistence import DEFAULT_STORE_KEY


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CHAT_HISTORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    storage_dir: Optional[Path] = Field(
        default=None,
        description="Directory for the JSON blob store; unset keeps state in memory",
    )
    storage_key: str = Field(
        default=DEFAULT_STORE_KEY,
        min_length=1,
        description="Key the store snapshot is saved under",
    )

    # Replies
    responder: Literal["canned", "gemini"] = Field(
        default="canned",
        description="Which reply generator answers user messages",
    )
    reply_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay before the assistant reply is appended",
    )
    gemini_api_key: Optional[SecretStr] = Field(
        default=None,
        description="Google Gemini API key",
    )
    gemini_model: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use",
    )
    context_window: int = Field(
        default=5,
        ge=0,
        description="Earlier messages sent to the model as context",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Minimum log level")
    json_logs: bool = Field(default=False, description="Render logs as JSON lines")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"unknown log level: {v}")
        return level

    @property
    def is_gemini_configured(self) -> bool:
        return self.gemini_api_key is not None and bool(self.gemini_api_key.get_secret_value())


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
