"""
BlobService: the upload/delete facade handed to endpoints and services.

It turns files into (public_url, object_key, content_type) triples, scopes
tenant uploads under masjids/{id}/..., and exposes trash moves and deletes
by public URL.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import timedelta
from typing import BinaryIO, Dict, List, Optional
from uuid import UUID

from app.core.logging import get_logger
from app.services.oss.content import is_webp_convertible
from app.services.oss.errors import MalformedURL
from app.services.oss.keys import directory_from, join_parts
from app.services.oss.service import MoveResult, OSSService

logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadResult:
    public_url: str
    object_key: str
    content_type: str


@dataclass
class DeleteManyResult:
    deleted: List[str] = field(default_factory=list)
    failed: Dict[str, Exception] = field(default_factory=dict)


class BlobService:
    """Facade over OSSService used by the HTTP layer."""

    def __init__(self, store: OSSService):
        self.store = store

    @property
    def retention(self) -> timedelta:
        return self.store.config.retention

    def public_url(self, key: str) -> str:
        return self.store.public_url(key)

    def object_key(self, public_url: str) -> str:
        return self.store.key_from_url(public_url)

    def tenant_prefix(self, masjid_id: UUID) -> str:
        head = f"{self.store.prefix}/" if self.store.prefix else ""
        return f"{head}masjids/{str(masjid_id).lower()}/"

    def belongs_to(self, masjid_id: UUID, public_url: str) -> bool:
        """Whether the URL points inside the masjid's directory"""
        return self.object_key(public_url).startswith(self.tenant_prefix(masjid_id))

    async def upload(self, filename: str, fileobj: BinaryIO, directory=None) -> UploadResult:
        """Raw upload (no re-encoding)."""
        key, content_type = await self.store.upload_from_file(
            filename, fileobj, directory_from(directory)
        )
        return UploadResult(self.store.public_url(key), key, content_type)

    async def upload_image(self, filename: str, data: bytes, directory=None) -> UploadResult:
        """Re-encode to WebP and upload."""
        url, key = await self.store.upload_as_webp(filename, data, directory_from(directory))
        return UploadResult(url, key, "image/webp")

    async def upload_any(self, filename: str, fileobj: BinaryIO, directory=None) -> UploadResult:
        """
        .jpg/.jpeg/.png/.webp go through WebP re-encoding; everything else
        (extensionless files included) is stored raw with a sniffed content type.
        """
        if is_webp_convertible(filename):
            data = await asyncio.to_thread(fileobj.read)
            return await self.upload_image(filename, data or b"", directory)
        return await self.upload(filename, fileobj, directory)

    async def upload_scoped(
        self, masjid_id: UUID, category: str, filename: str, fileobj: BinaryIO
    ) -> UploadResult:
        """Raw upload to masjids/{masjid_id}/{category}."""
        if not masjid_id:
            raise ValueError("masjid_id is required")
        category = (category or "").strip() or "misc"
        return await self.upload(filename, fileobj, join_parts("masjids", str(masjid_id), category))

    async def upload_masjid_image(
        self, masjid_id: UUID, slot: str, filename: str, data: bytes
    ) -> UploadResult:
        """WebP upload to masjids/{masjid_id}/images/{slot}."""
        if not masjid_id:
            raise ValueError("masjid_id is required")
        slot = (slot or "").strip().strip("/") or "default"
        return await self.upload_image(
            filename, data, join_parts("masjids", str(masjid_id), "images", slot)
        )

    async def move_to_spam(self, public_url: str) -> MoveResult:
        if not (public_url or "").strip():
            raise MalformedURL("empty url")
        return await self.store.move_to_spam(public_url)

    async def delete(self, public_url: str) -> None:
        await self.store.delete_by_public_url(public_url)

    async def delete_many(self, public_urls: List[str]) -> DeleteManyResult:
        if not public_urls:
            return DeleteManyResult()
        deleted, failed = await self.store.delete_many_by_public_url(public_urls)
        if failed:
            logger.warning(
                "Some objects could not be deleted",
                extra={"deleted": len(deleted), "failed": len(failed)},
            )
        return DeleteManyResult(deleted=deleted, failed=failed)
