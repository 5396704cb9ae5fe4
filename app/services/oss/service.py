"""
Object store operations on one bucket: uploads, metadata rewrites, deletes,
listings and the move-to-trash ("spam/") flow.

boto3 is blocking, so every call runs in a worker thread bounded by a
per-operation timeout. A single attempt is made; failures surface as
StorageError subclasses.
"""
import asyncio
import io
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, BinaryIO, Callable, Dict, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from app.core.logging import get_logger
from app.services.oss.client import build_client, is_not_found
from app.services.oss.config import StorageConfig
from app.services.oss.content import (
    OCTET_STREAM,
    detect_content_type,
    detect_stream,
    ensure_webp_convertible,
)
from app.services.oss.errors import (
    CopyFailed,
    DeleteFailed,
    FileTooLarge,
    ListFailed,
    MalformedURL,
    NotFound,
    SourceKeyUnresolvable,
    StorageTimeout,
    StoreOperationError,
    UploadFailed,
)
from app.services.oss.keys import build_object_key, spam_key_for, with_extension
from app.services.oss.urls import PublicURLCodec
from app.services.oss.webp import WebPOptions, convert_to_webp

logger = get_logger(__name__)

CACHE_FOREVER = "public, max-age=31536000, immutable"
MAX_BATCH_KEYS = 1000

UPLOAD_TIMEOUT = 30.0
COPY_TIMEOUT = 30.0
DELETE_TIMEOUT = 15.0
HEAD_TIMEOUT = 15.0
BATCH_TIMEOUT = 45.0
LIST_TIMEOUT = 45.0


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a trash move. warning is set when the source could not be removed."""
    success: bool
    source_key: str
    spam_key: str
    spam_url: str
    warning: Optional[str] = None


@dataclass(frozen=True)
class StoredObject:
    key: str
    last_modified: datetime
    size: int = 0


class OSSService:
    """Operations against the configured bucket."""

    def __init__(self, config: StorageConfig, client=None, codec: Optional[PublicURLCodec] = None):
        self.config = config
        self.client = client if client is not None else build_client(config)
        self.bucket = config.bucket
        self.prefix = config.key_prefix.strip("/")
        self.urls = codec or PublicURLCodec(config)

    async def _call(
        self,
        op: str,
        fn: Callable[[], Any],
        timeout: float,
        *,
        key: Optional[str] = None,
        error_cls=StoreOperationError,
        translate_not_found: bool = True,
    ) -> Any:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn), timeout)
        except asyncio.TimeoutError as e:
            raise StorageTimeout(f"{op} timed out after {timeout:.0f}s", key=key) from e
        except ClientError as e:
            if translate_not_found and is_not_found(e):
                raise NotFound(f"{op}: object not found", key=key) from e
            raise error_cls(f"{op} failed: {e}", key=key) from e
        except BotoCoreError as e:
            raise error_cls(f"{op} failed: {e}", key=key) from e

    # ------------------------------------------------------------------
    # Keys & URLs
    # ------------------------------------------------------------------

    def public_url(self, key: str) -> str:
        return self.urls.encode(key)

    def key_from_url(self, url: str) -> str:
        return self.urls.decode(url)

    def build_key(self, filename: str, directory: str = "") -> str:
        return build_object_key(filename, prefix=self.prefix, directory=directory)

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def upload_stream(
        self,
        key: str,
        fileobj: BinaryIO,
        content_type: str = "",
        *,
        inline: bool = True,
        cache_forever: bool = True,
    ) -> None:
        if not key:
            raise ValueError("empty key")
        extra = {"ContentType": content_type or OCTET_STREAM}
        if inline:
            extra["ContentDisposition"] = "inline"
        if cache_forever:
            extra["CacheControl"] = CACHE_FOREVER

        def _put():
            self.client.upload_fileobj(fileobj, self.bucket, key, ExtraArgs=extra)

        await self._call("upload", _put, UPLOAD_TIMEOUT, key=key, error_cls=UploadFailed, translate_not_found=False)
        logger.debug("Uploaded object", extra={"key": key, "content_type": extra["ContentType"]})

    async def upload_raw(self, key: str, fileobj: BinaryIO, content_type: str) -> None:
        """Store bytes as-is, cached forever and served inline."""
        await self.upload_stream(key, fileobj, content_type, inline=True, cache_forever=True)

    async def upload_from_file(
        self, filename: str, fileobj: BinaryIO, directory: str = ""
    ) -> Tuple[str, str]:
        """Raw upload under a freshly built key. Returns (key, content_type)."""
        key = self.build_key(filename, directory)
        content_type, reader = detect_stream(filename, fileobj)
        await self.upload_raw(key, reader, content_type)
        return key, content_type

    async def upload_as_webp(
        self,
        filename: str,
        data: bytes,
        key_prefix: str = "",
        options: Optional[WebPOptions] = None,
    ) -> Tuple[str, str]:
        """Re-encode an image to WebP and upload it. Returns (public_url, key)."""
        limit = self.config.max_image_bytes
        if limit and len(data) > limit:
            raise FileTooLarge(len(data), limit)
        ensure_webp_convertible(filename)

        webp_data = await asyncio.to_thread(
            convert_to_webp, data, filename, options or self.config.webp
        )
        key = self.build_key(with_extension(filename, ".webp"), key_prefix)
        await self.upload_raw(key, io.BytesIO(webp_data), "image/webp")
        logger.info(
            "Uploaded image as webp",
            extra={"key": key, "source_bytes": len(data), "webp_bytes": len(webp_data)},
        )
        return self.public_url(key), key

    # ------------------------------------------------------------------
    # Metadata rewrites
    # ------------------------------------------------------------------

    def _replace_args(self, content_type: str, inline: bool, cache_forever: bool) -> Dict[str, str]:
        args = {"MetadataDirective": "REPLACE"}
        if content_type:
            args["ContentType"] = content_type
        if inline:
            args["ContentDisposition"] = "inline"
        if cache_forever:
            args["CacheControl"] = CACHE_FOREVER
        return args

    async def update_meta(
        self, key: str, content_type: str = "", *, inline: bool = True, cache_forever: bool = True
    ) -> None:
        """Rewrite headers of an existing object in place (self-copy)."""
        if not key:
            raise ValueError("empty key")
        if not content_type:
            content_type = detect_content_type(key)
        await self.replace_object(key, key, content_type, inline=inline, cache_forever=cache_forever)

    async def replace_object(
        self,
        dst_key: str,
        src_key: str,
        content_type: str = "",
        *,
        inline: bool = True,
        cache_forever: bool = True,
    ) -> None:
        if not dst_key or not src_key:
            raise ValueError("empty key")
        args = self._replace_args(content_type, inline, cache_forever)

        def _copy():
            self.client.copy_object(
                Bucket=self.bucket,
                Key=dst_key,
                CopySource={"Bucket": self.bucket, "Key": src_key},
                **args,
            )

        await self._call("copy", _copy, COPY_TIMEOUT, key=src_key, error_cls=CopyFailed, translate_not_found=False)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_object_meta(self, key: str) -> Dict[str, Any]:
        def _head():
            return self.client.head_object(Bucket=self.bucket, Key=key)

        return await self._call("head", _head, HEAD_TIMEOUT, key=key)

    async def object_exists(self, key: str) -> bool:
        try:
            await self.get_object_meta(key)
        except NotFound:
            return False
        return True

    async def iter_objects(self, prefix: str, page_size: int = MAX_BATCH_KEYS) -> AsyncIterator[List[StoredObject]]:
        """
        Yield one list of StoredObject per ListObjectsV2 page under prefix.

        The boto3 paginator follows continuation tokens; each page is fetched
        in a worker thread under LIST_TIMEOUT.
        """
        paginator = self.client.get_paginator("list_objects_v2")
        pages = iter(
            paginator.paginate(
                Bucket=self.bucket, Prefix=prefix, PaginationConfig={"PageSize": page_size}
            )
        )

        def _next_page():
            return next(pages, None)

        while True:
            resp = await self._call(
                "list", _next_page, LIST_TIMEOUT, error_cls=ListFailed, translate_not_found=False
            )
            if resp is None:
                break
            yield [
                StoredObject(key=item["Key"], last_modified=item["LastModified"], size=item.get("Size", 0))
                for item in resp.get("Contents", [])
            ]

    # ------------------------------------------------------------------
    # Deletes
    # ------------------------------------------------------------------

    async def delete_object(self, key: str) -> None:
        if not key:
            raise ValueError("empty key")

        def _delete():
            self.client.delete_object(Bucket=self.bucket, Key=key)

        await self._call("delete", _delete, DELETE_TIMEOUT, key=key, error_cls=DeleteFailed)

    async def delete_objects(self, keys: List[str]) -> Dict[str, str]:
        """
        Delete up to 1000 keys in one request.

        Returns {key: error message} for keys the store refused; a failed
        request as a whole raises DeleteFailed.
        """
        if not keys:
            return {}
        if len(keys) > MAX_BATCH_KEYS:
            raise ValueError(f"at most {MAX_BATCH_KEYS} keys per batch")

        def _delete_many():
            return self.client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": k} for k in keys], "Quiet": True},
            )

        resp = await self._call(
            "delete-objects", _delete_many, BATCH_TIMEOUT, error_cls=DeleteFailed, translate_not_found=False
        )
        return {
            err.get("Key", ""): err.get("Message") or err.get("Code", "error")
            for err in (resp or {}).get("Errors", [])
        }

    async def delete_by_public_url(self, url: str) -> None:
        if not (url or "").strip():
            raise MalformedURL("empty public url")
        await self.delete_object(self.key_from_url(url))

    async def delete_many_by_public_url(
        self, urls: List[str]
    ) -> Tuple[List[str], Dict[str, Exception]]:
        deleted: List[str] = []
        failed: Dict[str, Exception] = {}

        items: List[Tuple[str, str]] = []
        for url in urls:
            url = (url or "").strip()
            if not url:
                continue
            try:
                items.append((url, self.key_from_url(url)))
            except MalformedURL as e:
                failed[url] = e

        for start in range(0, len(items), MAX_BATCH_KEYS):
            chunk = items[start:start + MAX_BATCH_KEYS]
            url_by_key = {key: url for url, key in chunk}
            try:
                errors = await self.delete_objects(list(url_by_key))
            except StoreOperationError as e:
                for url in url_by_key.values():
                    failed[url] = e
                continue
            for key, url in url_by_key.items():
                if key in errors:
                    failed[url] = DeleteFailed(f"delete failed: {errors[key]}", key=key)
                else:
                    deleted.append(url)
        return deleted, failed

    # ------------------------------------------------------------------
    # Trash
    # ------------------------------------------------------------------

    async def move_to_spam(self, url: str, now: Optional[datetime] = None) -> MoveResult:
        """
        Copy the object behind url into the dated trash path, then try to
        delete the original. The copy must succeed; the delete may not.
        """
        try:
            source_key = self.key_from_url(url)
        except MalformedURL as e:
            raise SourceKeyUnresolvable(f"cannot resolve object key from {url!r}") from e

        spam_key = spam_key_for(source_key, self.config.trash_prefix, now)

        def _copy():
            self.client.copy_object(
                Bucket=self.bucket,
                Key=spam_key,
                CopySource={"Bucket": self.bucket, "Key": source_key},
                MetadataDirective="COPY",
            )

        await self._call(
            "copy", _copy, COPY_TIMEOUT, key=source_key, error_cls=CopyFailed, translate_not_found=False
        )

        warning = None
        try:
            await self.delete_object(source_key)
        except StoreOperationError as e:
            warning = f"copied to {spam_key} but could not delete source: {e}"
            logger.warning(
                "Trash move left source object behind",
                extra={"source_key": source_key, "spam_key": spam_key, "error": str(e)},
            )

        logger.info("Moved object to trash", extra={"source_key": source_key, "spam_key": spam_key})
        return MoveResult(
            success=True,
            source_key=source_key,
            spam_key=spam_key,
            spam_url=self.public_url(spam_key),
            warning=warning,
        )
