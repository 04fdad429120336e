"""
Configuration management for the Academic Paper Bot.
Loads settings from environment variables with validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from academic_bot.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    base_dir: Path = Path(__file__).parent.parent
    data_dir: Path = Path(__file__).parent.parent / "data"

    # Telegram
    telegram_bot_token: str = Field(..., min_length=1, description="Telegram Bot API token")
    admin_chat_id: Optional[int] = Field(
        default=None, description="Chat ID of the operator receiving alerts"
    )

    # Groq (LLM)
    llm_provider: Literal["groq"] = Field(
        default="groq", description="LLM provider to use"
    )
    groq_api_key: Optional[str] = Field(default=None, description="Groq API key")
    groq_model: str = Field(
        default="llama-3.3-70b-versatile", description="Groq chat model"
    )

    # Eden AI (OCR, transcription, plagiarism)
    eden_ai_key: Optional[str] = Field(default=None, description="Eden AI API key")
    ocr_primary_provider: str = Field(
        default="google", description="Eden AI OCR provider tried first"
    )
    ocr_fallback_provider: str = Field(
        default="microsoft", description="Eden AI OCR provider used on failure"
    )
    transcription_provider: str = Field(
        default="openai", description="Eden AI speech-to-text provider"
    )
    plagiarism_provider: str = Field(
        default="originalityai", description="Eden AI plagiarism provider"
    )

    # Research APIs
    semantic_scholar_api_key: Optional[str] = Field(
        default=None, description="Semantic Scholar API key (optional)"
    )
    zotero_user_id: Optional[str] = Field(default=None, description="Zotero user ID")
    zotero_api_key: Optional[str] = Field(default=None, description="Zotero API key")

    # Google
    google_service_account_path: Optional[Path] = Field(
        default=None, description="Path to Google service account JSON"
    )
    google_sheets_id: Optional[str] = Field(
        default=None, description="Spreadsheet ID for history and feedback"
    )
    google_drive_folder_id: Optional[str] = Field(
        default=None, description="Drive folder receiving generated drafts"
    )

    # History store
    history_backend: Literal["sql", "sheets", "memory"] = Field(
        default="sql", description="Backend for chat history"
    )
    database_url: Optional[str] = Field(
        default=None,
        description="Database connection URL",
    )

    # Workflow tuning
    plagiarism_threshold: float = Field(
        default=0.10, ge=0, le=1, description="Maximum accepted plagiarism score"
    )
    max_draft_retries: int = Field(
        default=2, ge=0, description="Regenerations allowed by the quality gate"
    )
    low_rating_threshold: int = Field(
        default=3, ge=1, le=5, description="Ratings at or below ask for a comment"
    )
    draft_timeout_seconds: float = Field(
        default=90.0, gt=0, description="Timeout for a single draft generation"
    )
    source_search_limit: int = Field(
        default=15, ge=1, le=100, description="Number of papers requested per search"
    )

    # Health server
    health_host: str = Field(default="0.0.0.0", description="Health server host")
    health_port: int = Field(default=8080, description="Health server port")

    # Debug
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def db_url(self) -> str:
        """Get database URL with absolute path."""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.data_dir / 'academic_bot.db'}"

    @property
    def drafts_dir(self) -> Path:
        """Directory for generated documents."""
        return self.data_dir / "drafts"

    @property
    def reports_dir(self) -> Path:
        """Directory for exported usage reports."""
        return self.data_dir / "reports"

    @property
    def google_configured(self) -> bool:
        return self.google_service_account_path is not None

    @property
    def sheets_configured(self) -> bool:
        return self.google_configured and bool(self.google_sheets_id)

    @property
    def drive_configured(self) -> bool:
        return self.google_configured and bool(self.google_drive_folder_id)

    @property
    def zotero_configured(self) -> bool:
        return bool(self.zotero_user_id and self.zotero_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Raises:
        ConfigurationError: if required settings are missing or invalid
    """
    try:
        return Settings()
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ConfigurationError(
            "Invalid configuration: "
            + ", ".join(missing)
            + ". Set the values in the environment or the .env file "
            "(e.g. TELEGRAM_BOT_TOKEN=your_bot_token_here)."
        ) from e
