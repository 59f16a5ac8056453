"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class TurnConfig(BaseModel):
    """Conversation loop limits."""

    timeout_seconds: float = Field(
        default=300.0, alias="TURN_TIMEOUT_SECONDS", description="Wall-clock limit of one turn in seconds"
    )
    max_follow_up_turns: int = Field(
        default=1,
        alias="MAX_FOLLOW_UP_TURNS",
        description="Automatic follow-up model turns after every operation concluded",
    )
    max_message_chars: int = Field(
        default=8000,
        alias="MAX_OPERATION_MESSAGE_CHARS",
        description="Maximum length of an operation summary before it is truncated",
    )
    max_archived_outputs: int = Field(
        default=1000,
        alias="MAX_ARCHIVED_OUTPUTS",
        description="Full texts of truncated summaries kept in memory for retrieval",
    )
    system_prompt: Optional[str] = Field(
        default=None, alias="CHAT_SYSTEM_PROMPT", description="System prompt sent with every turn"
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    # =====================================================================
    # OpLoop-AI Server Configuration
    # =====================================================================
    server_host: str = Field(
        default="0.0.0.0",
        description="OpLoop-AI server host address to bind to",
        alias="OPLOOP_AI_SERVER_HOST",
    )
    server_port: int = Field(
        default=8000,
        description="OpLoop-AI server port number",
        alias="OPLOOP_AI_SERVER_PORT",
    )
    log_level: str = Field(
        default="INFO",
        description="OpLoop-AI server logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="OPLOOP_AI_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log line format (simple, detailed, json)",
        alias="LOG_FORMAT",
    )
    log_file_dir: str = Field(
        default="logs",
        description="Directory for log files when file logging is enabled",
        alias="LOG_FILE_DIR",
    )
    enable_file_logging: bool = Field(
        default=False,
        description="Write logs to files in LOG_FILE_DIR",
        alias="ENABLE_FILE_LOGGING",
    )

    # =====================================================================
    # Database Configuration
    # =====================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./oploop.db",
        description="Async SQLAlchemy connection URL (Postgres or SQLite)",
        alias="DATABASE_URL",
    )

    # =====================================================================
    # Chat Configuration
    # =====================================================================
    chat_model: str = Field(
        default="openai:gpt-4o",
        description="pydantic-ai model name used for turns",
        alias="CHAT_MODEL",
    )
    default_chat_mode: str = Field(
        default="none",
        description="Autonomy mode of new chats (none, read, create, update, delete)",
        alias="DEFAULT_CHAT_MODE",
    )
    assistant_name: Optional[str] = Field(
        default=None,
        description="Name recorded on assistant messages",
        alias="ASSISTANT_NAME",
    )
    turn_timeout_seconds: float = Field(
        default=300.0,
        description="Wall-clock limit of one turn in seconds",
        alias="TURN_TIMEOUT_SECONDS",
    )
    max_follow_up_turns: int = Field(
        default=1,
        description="Automatic follow-up model turns after every operation concluded",
        alias="MAX_FOLLOW_UP_TURNS",
    )
    max_operation_message_chars: int = Field(
        default=8000,
        description="Maximum length of an operation summary before it is truncated",
        alias="MAX_OPERATION_MESSAGE_CHARS",
    )
    max_archived_outputs: int = Field(
        default=1000,
        description="Full texts of truncated summaries kept in memory for retrieval",
        alias="MAX_ARCHIVED_OUTPUTS",
    )
    chat_system_prompt: Optional[str] = Field(
        default=None,
        description="System prompt sent with every turn",
        alias="CHAT_SYSTEM_PROMPT",
    )

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def turn(self) -> TurnConfig:
        """Get turn loop configuration from environment variables."""
        return TurnConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()
