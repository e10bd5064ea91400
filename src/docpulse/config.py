"""Configuration management."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field


class Settings(BaseSettings):
    """Client settings."""

    # Backend
    api_base_url: str = "http://127.0.0.1:8000/api"
    request_timeout: float = 30.0

    # Conversation
    history_debounce_seconds: float = 0.1
    output_format: Literal["markdown", "json"] = "markdown"
    greeting_message: str = (
        "Hello! I'm your AI research assistant. Select a document from the left panel "
        "and ask me anything about it. I can summarize, analyze trends, extract key "
        "insights, and answer specific questions."
    )

    # Uploads
    upload_max_mb: int = 10
    upload_allowed_types: list[str] = ["pdf", "docx", "doc", "csv", "xlsx"]

    @computed_field
    @property
    def upload_max_bytes(self) -> int:
        """Maximum upload size in bytes."""
        return self.upload_max_mb * 1024 * 1024

    # Notes
    default_note_color: str = "blue"
    default_comparison_note_color: str = "purple"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Global settings instance
settings = Settings()
