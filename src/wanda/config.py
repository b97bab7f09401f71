"""Configuration management for Wanda."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = " ".join([
    "Du bist WANDA.",
    "Antworte kurz, praezise, direkt und loesungsorientiert.",
    "Merke dir den Chat-Kontext innerhalb der Session.",
    "Bei Unsicherheit benenne klar, was fehlt.",
])
DEFAULT_WANDA_CLI_BIN = "wanda"
DEFAULT_VOX_CLI_BIN = "vox"


class Settings(BaseSettings):
    """Application settings read from the process environment and `.env`."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Front-ends
    discord_bot_token: str | None = Field(default=None, description="Discord bot token")
    discord_guild_id: str | None = Field(default=None, description="Guild for slash command sync")
    telegram_bot_token: str | None = Field(default=None, description="Telegram bot token")

    # Conversation
    wanda_system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, description="System prompt for every session")

    # External CLIs
    wanda_cli_bin: str = Field(default=DEFAULT_WANDA_CLI_BIN, description="Path or name of the wanda CLI")
    vox_cli_bin: str = Field(default=DEFAULT_VOX_CLI_BIN, description="Path or name of the vox CLI")
    vox_project_root: str | None = Field(default=None, description="Working directory of the vox project")
    vox_stt_mode: Literal["cli", "webhook"] = Field(default="webhook", description="Voice transcription mode")
    vox_stt_webhook_url: str | None = Field(default=None, description="Webhook receiving voice messages")
    vox_transcribe_model: str | None = Field(default=None, description="Model passed to vox transcribe")

    @field_validator("vox_stt_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().lower()
            return "cli" if normalized == "cli" else "webhook"
        return value

    @field_validator("wanda_system_prompt", mode="before")
    @classmethod
    def _default_prompt(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return DEFAULT_SYSTEM_PROMPT
        return value


def load_settings() -> Settings:
    return Settings()
