"""Shared configuration management for the invoice review API.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_LOG_LEVEL=debug
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="invoice-review-api",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="1.0.0",
        description="Service version",
    )

    # HTTP configuration
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:3001",
        description="Comma-separated list of allowed CORS origins ('*' allows all)",
    )
    max_file_size: int = Field(
        default=25 * 1024 * 1024,
        gt=0,
        description="Maximum accepted upload size in bytes",
    )

    # Document store (MongoDB)
    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string (use env var APP_MONGODB_URI)",
    )
    mongodb_database: str = Field(
        default="invoices",
        description="Database holding invoice records and GridFS uploads",
    )
    mongodb_server_selection_timeout_ms: int = Field(default=10000, gt=0)
    mongodb_connect_timeout_ms: int = Field(default=10000, gt=0)
    mongodb_socket_timeout_ms: int = Field(default=45000, gt=0)
    mongodb_max_pool_size: int = Field(
        default=10,
        gt=0,
        description="Connection pool ceiling (keep small on serverless platforms)",
    )

    # File storage provider selection
    storage_provider: Literal["auto", "gridfs", "blob"] = Field(
        default="auto",
        description=(
            "File storage provider: auto (blob in production when blob credentials are set, "
            "GridFS otherwise), gridfs (MongoDB chunks), blob (S3-compatible object storage)"
        ),
    )

    # Blob storage configuration (S3-compatible object storage)
    storage_endpoint: str = Field(
        default="localhost:9000",
        description="S3-compatible storage endpoint (host:port)",
    )
    storage_access_key: str = Field(
        default="",
        description="Storage access key (use env var APP_STORAGE_ACCESS_KEY)",
    )
    storage_secret_key: str = Field(
        default="",
        description="Storage secret key (use env var APP_STORAGE_SECRET_KEY)",
    )
    storage_bucket: str = Field(
        default="invoice-uploads",
        description="Bucket name for uploaded documents",
    )
    storage_secure: bool = Field(
        default=False,
        description="Use HTTPS for storage connections",
    )

    # AI extraction providers
    gemini_api_key: str = Field(
        default="",
        description="Google Gemini API key (use env var APP_GEMINI_API_KEY)",
    )
    gemini_model: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model used for extraction",
    )
    groq_api_key: str = Field(
        default="",
        description="Groq API key (use env var APP_GROQ_API_KEY)",
    )
    groq_model: str = Field(
        default="llama-3.1-8b-instant",
        description="Groq-hosted model used for extraction",
    )
    groq_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="Groq OpenAI-compatible endpoint",
    )
    ai_temperature: float = Field(
        default=0.1,
        ge=0,
        le=1,
        description="Sampling temperature for extraction calls (low = consistent output)",
    )
    ai_max_tokens: int = Field(
        default=2048,
        gt=0,
        description="Maximum tokens generated per extraction call",
    )
    ai_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Network timeout for a single model call",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Allowed CORS origins as a list."""
        if self.cors_origins.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def has_blob_credentials(self) -> bool:
        """Whether both blob storage credentials are configured."""
        return bool(self.storage_access_key and self.storage_secret_key)


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
