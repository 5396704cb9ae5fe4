"""Object storage (Aliyun OSS, S3-compatible API): keys, uploads, URLs, trash."""

from functools import lru_cache

from app.services.oss.blob_service import BlobService, DeleteManyResult, UploadResult
from app.services.oss.config import StorageConfig
from app.services.oss.errors import (
    ConfigMissing,
    CopyFailed,
    DecodeError,
    DeleteFailed,
    FileTooLarge,
    ListFailed,
    MalformedURL,
    NotFound,
    SourceKeyUnresolvable,
    StorageError,
    StorageTimeout,
    StoreOperationError,
    UnsupportedFormat,
    UploadFailed,
)
from app.services.oss.rotation import AssetRef
from app.services.oss.service import MoveResult, OSSService, StoredObject
from app.services.oss.urls import PublicURLCodec


@lru_cache
def get_storage_config() -> StorageConfig:
    """Process-wide storage config, read once from settings. Raises ConfigMissing."""
    return StorageConfig.from_settings()


@lru_cache
def get_oss_service() -> OSSService:
    return OSSService(get_storage_config())


def get_blob_service() -> BlobService:
    return BlobService(get_oss_service())


__all__ = [
    "AssetRef",
    "BlobService",
    "ConfigMissing",
    "CopyFailed",
    "DecodeError",
    "DeleteFailed",
    "DeleteManyResult",
    "FileTooLarge",
    "ListFailed",
    "MalformedURL",
    "MoveResult",
    "NotFound",
    "OSSService",
    "PublicURLCodec",
    "SourceKeyUnresolvable",
    "StorageConfig",
    "StorageError",
    "StorageTimeout",
    "StoreOperationError",
    "StoredObject",
    "UnsupportedFormat",
    "UploadFailed",
    "UploadResult",
    "get_blob_service",
    "get_oss_service",
    "get_storage_config",
]
