"""Application Configuration"""

from typing import List, Tuple
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Masjid Backend"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_V1_PREFIX: str = "/api/v1"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600

    # Tokens are issued by the auth service; we only verify them
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    # CORS (5173 = Vite default dev server)
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:3001,http://localhost:5173"
    ALLOWED_METHODS: str = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
    ALLOWED_HEADERS: str = "*"

    # Object storage (Aliyun OSS through its S3-compatible API)
    ALI_OSS_ENDPOINT: str = ""
    ALI_OSS_ACCESS_KEY: str = ""
    ALI_OSS_SECRET_KEY: str = ""
    ALI_OSS_SECURITY_TOKEN: str = ""
    ALI_OSS_BUCKET: str = ""
    ALI_OSS_REGION: str = ""
    ALI_OSS_PUBLIC_BASE: str = ""
    OSS_KEY_PREFIX: str = ""
    MAX_IMAGE_UPLOAD_BYTES: int = 5 * 1024 * 1024

    # WebP re-encoding
    IMAGE_WEBP_MAX_W: int = 1600
    IMAGE_WEBP_MAX_H: int = 1600
    IMAGE_WEBP_QUALITY: float = 85
    IMAGE_WEBP_TARGET_KB: int = 0
    IMAGE_WEBP_MIN_Q: float = 45
    IMAGE_WEBP_MAX_Q: float = 85
    IMAGE_WEBP_TOLERANCE_KB: int = 8
    IMAGE_WEBP_MIN_W: int = 480
    IMAGE_WEBP_MIN_H: int = 480
    IMAGE_WEBP_SCALE_STEP: float = 0.85

    # Trash retention & reaper
    RETENTION_DAYS: int = 30
    CRON_SCHEDULE: str = "15 2 * * *"
    CRON_TIMEZONE: str = "UTC"
    REAPER_PREFIX: str = "spam/"
    DRY_RUN: bool = False
    REAPER_ENABLED: bool = True
    REAPER_TABLES: str = (
        "masjids:masjid_deleted_at,"
        "masjid_service_plans:masjid_service_plan_deleted_at,"
        "masjid_teachers:masjid_teacher_deleted_at"
    )

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("ALLOWED_ORIGINS")
    @classmethod
    def parse_origins(cls, v: str) -> List[str]:
        """Parse comma-separated origins into a list"""
        return [origin.strip() for origin in v.split(",")]

    @field_validator("ALLOWED_METHODS")
    @classmethod
    def parse_methods(cls, v: str) -> List[str]:
        """Parse comma-separated methods into a list"""
        return [method.strip() for method in v.split(",")]

    @field_validator("RETENTION_DAYS")
    @classmethod
    def check_retention(cls, v: int) -> int:
        if v < 0:
            raise ValueError("RETENTION_DAYS must be >= 0")
        return v

    @property
    def reaper_tables(self) -> List[Tuple[str, str]]:
        """Parse REAPER_TABLES ("table:column,table:column") into pairs"""
        pairs = []
        for item in self.REAPER_TABLES.split(","):
            item = item.strip()
            if not item:
                continue
            table, _, column = item.partition(":")
            if table.strip() and column.strip():
                pairs.append((table.strip(), column.strip()))
        return pairs

    @property
    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT.lower() == "production"


# Global settings instance
settings = Settings()
