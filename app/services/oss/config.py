"""
Storage configuration, built once from application settings and injected
into the storage components.
"""
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from app.services.oss.errors import ConfigMissing
from app.services.oss.webp import WebPOptions


@dataclass(frozen=True)
class StorageConfig:
    endpoint: str
    access_key: str
    secret_key: str
    bucket: str
    security_token: str = ""
    region: str = ""
    public_base: str = ""
    key_prefix: str = ""
    trash_prefix: str = "spam/"
    retention_days: int = 30
    dry_run: bool = False
    max_image_bytes: int = 5 * 1024 * 1024
    webp: WebPOptions = field(default_factory=WebPOptions)

    def __post_init__(self):
        missing = [
            name
            for name, value in (
                ("ALI_OSS_ENDPOINT", self.endpoint),
                ("ALI_OSS_ACCESS_KEY", self.access_key),
                ("ALI_OSS_SECRET_KEY", self.secret_key),
                ("ALI_OSS_BUCKET", self.bucket),
            )
            if not value.strip()
        ]
        if missing:
            raise ConfigMissing(f"storage not configured: set {', '.join(missing)}")
        # An empty trash prefix would let the reaper sweep the whole bucket
        if not self.trash_prefix.strip("/"):
            raise ConfigMissing("storage not configured: REAPER_PREFIX must not be empty")

    @property
    def retention(self) -> timedelta:
        return timedelta(days=self.retention_days)

    @property
    def endpoint_url(self) -> str:
        """Endpoint with a scheme, as boto3 expects it."""
        end = self.endpoint.strip().rstrip("/")
        if end.startswith(("http://", "https://")):
            return end
        return f"https://{end}"

    @property
    def endpoint_host(self) -> str:
        end = self.endpoint.strip().rstrip("/")
        for scheme in ("https://", "http://"):
            if end.startswith(scheme):
                return end[len(scheme):]
        return end

    @classmethod
    def from_settings(cls, settings=None) -> "StorageConfig":
        if settings is None:
            from app.config import settings
        return cls(
            endpoint=settings.ALI_OSS_ENDPOINT,
            access_key=settings.ALI_OSS_ACCESS_KEY,
            secret_key=settings.ALI_OSS_SECRET_KEY,
            bucket=settings.ALI_OSS_BUCKET,
            security_token=settings.ALI_OSS_SECURITY_TOKEN,
            region=settings.ALI_OSS_REGION,
            public_base=settings.ALI_OSS_PUBLIC_BASE.strip(),
            key_prefix=settings.OSS_KEY_PREFIX.strip("/"),
            trash_prefix=normalize_prefix(settings.REAPER_PREFIX),
            retention_days=settings.RETENTION_DAYS,
            dry_run=settings.DRY_RUN,
            max_image_bytes=settings.MAX_IMAGE_UPLOAD_BYTES,
            webp=WebPOptions.from_settings(settings),
        )


def normalize_prefix(prefix: Optional[str]) -> str:
    """'spam' / '/spam/' -> 'spam/'. Empty stays empty."""
    prefix = (prefix or "").strip().strip("/")
    return f"{prefix}/" if prefix else ""
