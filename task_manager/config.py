"""Configuration settings using Pydantic BaseSettings."""

from pathlib import Path
from typing import List

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "default-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Configuration
    app_name: str = Field(default="Task Manager", description="Application name")
    app_host: str = Field(default="0.0.0.0", description="FastAPI host")
    app_port: int = Field(default=8000, description="FastAPI port")
    debug: bool = Field(default=False, description="Enable debug mode")
    environment: str = Field(default="development", description="development, test or production")
    cors_origins: List[str] = Field(default=["*"], description="Allowed CORS origins")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Path = Field(default=Path("logs"), description="Directory for log files")
    log_to_file: bool = Field(default=True, description="Write rotating log files")

    # Authentication Configuration
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, description="Secret used to sign access tokens")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_expire_minutes: int = Field(default=24 * 60, ge=1, description="Access token lifetime in minutes")
    bcrypt_rounds: int = Field(default=10, ge=4, le=31, description="bcrypt cost factor")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @model_validator(mode="after")
    def _require_secret_in_production(self) -> "Settings":
        if self.is_production and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET must be defined in production")
        return self


# Global settings instance
settings = Settings()
