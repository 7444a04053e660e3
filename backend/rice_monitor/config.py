"""Environment-driven settings for the Rice Monitor API."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# purpose: single place where environment variables and local fallbacks are read
# status: active

DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:8080"


@dataclass(frozen=True)
class Settings:
    project_id: str = "rice-monitor-dev"
    storage_bucket: str = "rice-monitor-images-dev"
    jwt_secret: str = "your-secret-key"
    google_client_id: str = ""
    port: int = 8080
    database_url: str = "sqlite:///./rice_monitor.db"
    upload_dir: str = "uploaded_files"
    public_base_url: str = ""
    minio_endpoint: str | None = None
    minio_access_key: str | None = None
    minio_secret_key: str | None = None
    cors_origins: list[str] = field(default_factory=lambda: DEFAULT_CORS_ORIGINS.split(","))
    sentry_dsn: str | None = None
    testing: bool = False
    version: str = "1.0.0"

    @property
    def image_base_url(self) -> str:
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        return f"http://localhost:{self.port}/media"

    @property
    def uses_object_storage(self) -> bool:
        return bool(self.minio_endpoint and self.minio_access_key and self.minio_secret_key)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment, reading ``.env`` when present."""

        load_dotenv()
        origins = os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
        return cls(
            project_id=os.getenv("GOOGLE_CLOUD_PROJECT") or "rice-monitor-dev",
            storage_bucket=os.getenv("STORAGE_BUCKET") or "rice-monitor-images-dev",
            jwt_secret=os.getenv("JWT_SECRET") or "your-secret-key",
            google_client_id=os.getenv("GOOGLE_CLIENT_ID", ""),
            port=int(os.getenv("PORT") or 8080),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./rice_monitor.db"),
            upload_dir=os.getenv("UPLOAD_DIR", "uploaded_files"),
            public_base_url=os.getenv("PUBLIC_BASE_URL", ""),
            minio_endpoint=(os.getenv("MINIO_ENDPOINT") or "").strip() or None,
            minio_access_key=os.getenv("MINIO_ACCESS_KEY"),
            minio_secret_key=os.getenv("MINIO_SECRET_KEY"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            sentry_dsn=os.getenv("SENTRY_DSN"),
            testing=os.getenv("TESTING") == "1",
        )
