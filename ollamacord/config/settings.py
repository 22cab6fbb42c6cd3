"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
Nested sections are addressed with a double underscore, e.g. BOT__TOKEN or
OLLAMA__SERVERS.
"""

import json
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_list(value):
    """Accept either a JSON list or a comma-separated string."""
    if isinstance(value, str):
        value = value.strip()
        if value.startswith("["):
            return json.loads(value)
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class BotSettings(BaseSettings):
    """Discord bot configuration."""

    name: str = Field(default="OllamaCord", description="Bot display name")
    command_prefix: str = Field(default="!", description="Command prefix for bot commands")
    token: str = Field(default="", description="Discord bot token")
    allowed_channel_ids: Annotated[list[int], NoDecode] = Field(
        default_factory=list,
        description="If non-empty, bot only responds in these guild channel IDs. "
                    "DMs are always answered. "
                    "Set via BOT__ALLOWED_CHANNEL_IDS='123456,789012' or a JSON list",
    )
    dev_guild_id: int | None = Field(
        default=None,
        description="If set, syncs slash commands to this guild instantly (dev mode). "
                    "If None, syncs globally (up to 1 hour propagation).",
    )
    requires_mention: bool = Field(
        default=False,
        description="In guild channels, only start a conversation when the bot is mentioned. "
                    "Replies to the bot's own messages never need a mention.",
    )
    message_limit: int = Field(
        default=2000, ge=1, description="Maximum characters per outgoing Discord message"
    )
    reset_commands: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: [".clear", ".reset"],
        description="Message texts that clear the channel's conversation. "
                    "The first one is advertised in the conversation intro",
    )
    show_intro: bool = Field(
        default=True,
        description="Prefix the first answer in a conversation with a hint about resetting it",
    )

    model_config = SettingsConfigDict(env_prefix="BOT__")

    @field_validator("allowed_channel_ids", "reset_commands", mode="before")
    @classmethod
    def parse_lists(cls, value):
        return _split_list(value)


class OllamaSettings(BaseSettings):
    """Ollama backend configuration."""

    model: str = Field(default="llama3", description="Ollama model name, e.g. 'llama3'")
    servers: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:11434"],
        description="Ollama base URLs. Set via OLLAMA__SERVERS='http://a:11434,http://b:11434'",
    )
    system: str | None = Field(
        default=None,
        description="Custom system message. JSON string escapes (\\n, \\t) are decoded "
                    "and <date> is replaced with the current UTC date.",
    )
    use_system: bool = Field(default=False, description="Send the custom system message")
    use_model_system: bool = Field(
        default=False, description="Send the system message reported by /api/show"
    )
    poll_interval: float = Field(
        default=1.0, gt=0, description="Seconds between re-checks while every backend is busy"
    )
    request_timeout: float | None = Field(
        default=None, description="Per-request read timeout in seconds. None waits indefinitely."
    )
    connect_timeout: float = Field(default=10.0, gt=0, description="Connection timeout in seconds")

    model_config = SettingsConfigDict(env_prefix="OLLAMA__")

    @field_validator("servers", mode="before")
    @classmethod
    def parse_servers(cls, value):
        return _split_list(value)


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    bot: BotSettings = Field(default_factory=BotSettings)
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    if env_file:
        return Settings(_env_file=env_file)
    return Settings()
