"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str

    # CORS (comma-separated)
    CORS_ORIGINS: str = "http://localhost:5173"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    REDIS_URL: str = ""  # Empty keeps limiter state in memory
    RATE_LIMIT_API: int = 120
    RATE_LIMIT_SUBMISSIONS: int = 30

    # Upload storage
    STORAGE_BACKEND: str = "local"  # "local" or "s3"
    LOCAL_STORAGE_PATH: str = "uploads"
    LOCAL_STORAGE_URL_PREFIX: str = "/uploads"
    UPLOAD_STAGING_PATH: str = ""  # Empty uses the system temp directory
    MAX_UPLOAD_FILE_SIZE_BYTES: int = 10 * 1024 * 1024

    # S3 (only read when STORAGE_BACKEND == "s3")
    S3_BUCKET: str = "formdesk-uploads"
    S3_REGION: str = "us-east-1"
    S3_PUBLIC_BASE_URL: str = ""  # e.g. CDN origin; defaults to the bucket URL
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def serve_local_uploads(self) -> bool:
        """Local uploads are served by the API itself."""
        return self.STORAGE_BACKEND == "local"


settings = Settings()
