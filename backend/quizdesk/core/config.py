"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Literal, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "QuizDesk"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    MAX_REQUEST_BODY_BYTES: int = 64 * 1024

    # Security
    # IMPORTANT: must be set in .env file - no default for security
    SECRET_KEY: str = Field(..., description="Identity token signing key (required)")
    JWT_ALGORITHM: str = "HS256"
    IDENTITY_COOKIE_NAME: str = "quiz_identity"
    IDENTITY_TOKEN_EXPIRE_HOURS: int = Field(default=24, gt=0)

    # Credential table: user id -> bcrypt hash.
    # Set as a JSON object, e.g. CREDENTIALS='{"student1": "$2b$12$..."}'
    CREDENTIALS: Dict[str, str] = Field(default_factory=dict)
    # Optional spreadsheet with a "Users" (or "Sheet1") sheet: user id, bcrypt hash
    CREDENTIALS_FILE: str = ""

    # Tests
    QUESTIONS_DIR: str = "data"
    IMAGES_URL_PREFIX: str = "/images"
    TEST_TIME_LIMIT_SECONDS: int = Field(
        default=3600,
        ge=0,
        description="Time allowed per attempt in seconds (0 disables the limit)",
    )
    SCORE_SINGLE_CHOICE: bool = Field(
        default=True,
        description="Award points for single-choice questions",
    )

    # Attempt storage: "memory" for a single worker, "redis" for several instances
    ATTEMPT_STORAGE: Literal["memory", "redis"] = "memory"
    REDIS_URL: str = ""
    ATTEMPT_TTL_SECONDS: int = Field(default=24 * 60 * 60, gt=0)

    # Login rate limiting
    LOGIN_RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT: int = Field(default=100, gt=0)
    LOGIN_RATE_WINDOW: int = Field(default=15 * 60, gt=0)  # seconds

    # Blob storage (connectivity checks)
    BLOB_API_URL: str = "https://blob.vercel-storage.com"
    BLOB_READ_WRITE_TOKEN: str = Field(default="", repr=False)

    # Sentry Error Tracking
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN for error tracking (leave empty to disable)",
    )
    SENTRY_TRACES_SAMPLE_RATE: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sentry traces sample rate (0.0-1.0, 0.1 = 10% of transactions)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @model_validator(mode="after")
    def validate_attempt_storage(self) -> Self:
        """Redis attempt storage needs a connection URL."""
        if self.ATTEMPT_STORAGE == "redis" and not self.REDIS_URL:
            raise ValueError("REDIS_URL must be set when ATTEMPT_STORAGE='redis'")
        return self


# mypy doesn't understand that pydantic_settings loads required fields from env vars
settings = Settings()  # type: ignore[call-arg]
