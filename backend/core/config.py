"""
Application configuration management
"""

from typing import Annotated, List, Optional
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings"""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # API Settings
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "StockMeta"
    BASE_URL: str = "http://localhost:8000"  # Public URL the vision model fetches /temp images from

    # CORS Settings
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000", "http://localhost:8000"]

    # OpenAI Settings
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-5-mini"
    OPENAI_MAX_TOKENS: int = 1000
    OPENAI_TEMPERATURE: Optional[float] = None  # Some vision models only accept the default
    OPENAI_TIMEOUT_SECONDS: float = 30.0

    # Processing Settings
    CONCURRENCY_LIMIT: int = 5
    PROCESSING_TIMEOUT_SECONDS: float = 30.0
    RETRY_ATTEMPTS: int = 3

    # File Upload Settings
    MAX_UPLOAD_SIZE: int = 50 * 1024 * 1024  # 50MB
    MAX_FILES_PER_BATCH: int = 10
    ALLOWED_EXTENSIONS: Annotated[List[str], NoDecode] = [".jpg", ".jpeg", ".png", ".webp"]

    # Storage Settings
    UPLOAD_DIR: str = "./uploads"
    TEMP_DIR: str = "./temp"
    CSV_OUTPUT_DIR: str = "./csv_output"

    # Temporary URL lifecycle
    TEMP_FILE_LIFETIME_SECONDS: float = 10.0
    TEMP_SWEEP_INTERVAL_SECONDS: float = 30.0
    TEMP_MAX_AGE_SECONDS: float = 60.0

    # Sessions & batches
    SESSION_EXPIRY_SECONDS: float = 60 * 60
    BATCH_EXPIRY_SECONDS: float = 60 * 60
    CLEANUP_INTERVAL_SECONDS: float = 10 * 60
    ANONYMOUS_IMAGE_LIMIT: int = 10

    # Per-IP request limiting on uploads
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 50
    RATE_LIMIT_WINDOW_SECONDS: float = 60.0
    RATE_LIMIT_CLEANUP_INTERVAL_SECONDS: float = 5 * 60

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("ALLOWED_EXTENSIONS", mode="before")
    @classmethod
    def parse_allowed_extensions(cls, v):
        if isinstance(v, str):
            return [ext.strip() for ext in v.split(",")]
        return v

    @field_validator("BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


# Create settings instance
settings = Settings()
