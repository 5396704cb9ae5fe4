"""Error taxonomy for the object storage layer."""

from typing import Optional


class StorageError(RuntimeError):
    """Base class for every failure raised by the storage layer."""


class ConfigMissing(StorageError):
    """A required ALI_OSS_* setting is empty."""


class UnsupportedFormat(StorageError):
    """File type cannot be handled by the requested operation (e.g. WebP conversion)."""


class DecodeError(StorageError):
    """Bytes are not a valid image of a supported format."""


class FileTooLarge(StorageError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"file too large ({size} bytes, max {limit} bytes)")
        self.size = size
        self.limit = limit


class MalformedURL(StorageError):
    """A public URL cannot be mapped back to an object key."""


class SourceKeyUnresolvable(MalformedURL):
    """The URL handed to a trash move does not resolve to an object key."""


class StoreOperationError(StorageError):
    """An object store call failed. Carries the object key when known."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class UploadFailed(StoreOperationError):
    pass


class CopyFailed(StoreOperationError):
    pass


class DeleteFailed(StoreOperationError):
    pass


class ListFailed(StoreOperationError):
    pass


class NotFound(StoreOperationError):
    """The store answered 404 for the object."""


class StorageTimeout(StoreOperationError):
    """
    A store call exceeded its per-operation timeout.

    Only the await is abandoned: the worker thread running the boto3 call is
    not cancelled and may still complete, so a timed-out upload, copy or
    delete can take effect after this is raised.
    """
