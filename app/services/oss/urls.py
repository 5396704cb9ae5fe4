"""Mapping between object keys and their public HTTPS URLs."""

from app.services.oss.config import StorageConfig
from app.services.oss.errors import MalformedURL


class PublicURLCodec:
    """
    encode(key) -> url and decode(url) -> key.

    With ALI_OSS_PUBLIC_BASE set, URLs are "{base}/{key}"; otherwise the
    virtual-host style "https://{bucket}.{endpoint-host}/{key}" is used.
    Generated keys never contain "://", so decode(encode(k)) == k.
    """

    def __init__(self, config: StorageConfig):
        self.public_base = config.public_base.strip().rstrip("/")
        self.bucket = config.bucket
        self.endpoint_host = config.endpoint_host

    def encode(self, key: str) -> str:
        if not key:
            return ""
        if self.public_base:
            return f"{self.public_base}/{key}"
        return f"https://{self.bucket}.{self.endpoint_host}/{key}"

    def decode(self, url: str) -> str:
        url = (url or "").strip()
        if not url:
            raise MalformedURL("empty url")
        if self.public_base:
            base = f"{self.public_base}/"
            if url.startswith(base):
                key = url[len(base):]
                if not key:
                    raise MalformedURL(f"cannot extract key from url: {url}")
                return key
        rest = url.split("://", 1)[1] if "://" in url else url
        _, sep, key = rest.partition("/")
        if not sep or not key:
            raise MalformedURL(f"cannot extract key from url: {url}")
        return key
