from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGED_SCHEMA_DIR = Path(__file__).resolve().parent / "schemas"


class Settings(BaseSettings):
    # Text generation
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "LLM_API_KEY"),
    )
    gemini_model: str = "gemini-1.5-flash-latest"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    # None leaves call duration to the collaborator.
    llm_timeout_seconds: Optional[float] = None

    # Schemas
    schema_dir: Path = PACKAGED_SCHEMA_DIR
    schema_version_tag: str = "2025-05"

    # Uploads
    max_upload_mb: int = 10

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env.local", extra="ignore")

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


settings = Settings()
