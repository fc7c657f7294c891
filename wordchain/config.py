"""
Wordchain Service Configuration
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ===== Service =====
    SERVICE_NAME: str = Field(default="wordchain-service")
    SERVICE_VERSION: str = Field(default="1.0.0")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)
    LOG_LEVEL: str = Field(default="info")
    DEBUG: bool = Field(default=False)

    # ===== CORS =====
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"]
    )

    # ===== Markov Generation =====
    MARKOV_DEFAULT_LIMIT: int = Field(default=100, ge=1)
    MARKOV_MAX_LIMIT: int = Field(default=1000, ge=1)
    # Replaces the link/tag/code stripping regex of the tokenizer
    MARKOV_MEANINGLESS_PATTERN: Optional[str] = Field(default=None)

    # ===== Markov Persistence =====
    MARKOV_STORE_DIR: str = Field(default="./data/chains")
    MARKOV_PRELOAD_PATH: Optional[str] = Field(default=None)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
