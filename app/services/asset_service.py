"""
Asset slot bookkeeping on ORM rows.

Replace flows rotate metadata only (the superseded object stays in the store
with its delete_pending_until stamp). Delete flows move the objects to the
trash prefix and clear the slot.
"""
import logging
from datetime import datetime
from typing import Any, List, Optional

from app.services.oss import AssetRef, BlobService, CopyFailed, MoveResult, StorageError, UploadResult
from app.services.oss.client import is_not_found

logger = logging.getLogger(__name__)


def _source_missing(exc: StorageError) -> bool:
    """A trash move failed because the object is already gone from the store."""
    return isinstance(exc, CopyFailed) and is_not_found(exc.__cause__)


class AssetService:
    """Apply uploads and trash moves to the two-slot columns of a row"""

    @staticmethod
    def rotate(
        row: Any,
        prefix: str,
        upload: UploadResult,
        blob: BlobService,
        now: Optional[datetime] = None,
    ) -> AssetRef:
        """Make the upload current; the previous current becomes old with an expiry."""
        ref = AssetRef.from_row(row, prefix).replace(
            upload.object_key, upload.public_url, blob.retention, now
        )
        ref.apply_to(row, prefix)
        return ref

    @staticmethod
    async def trash(row: Any, prefix: str, blob: BlobService) -> List[MoveResult]:
        """
        Move the current and old objects to the trash prefix and clear the slot.

        The current object must move (CopyFailed propagates and the row is left
        untouched). An old object that is already gone is skipped. Any other
        failure on the old object keeps the old columns (URL, key, expiry) on
        the row so a later delete can retry the move.
        """
        ref = AssetRef.from_row(row, prefix)
        moved: List[MoveResult] = []

        if ref.current_url:
            moved.append(await blob.move_to_spam(ref.current_url))

        remaining = ref.cleared()
        if ref.old_url:
            try:
                moved.append(await blob.move_to_spam(ref.old_url))
            except StorageError as e:
                if _source_missing(e):
                    logger.warning(
                        "Old asset already missing from the store",
                        extra={"url": ref.old_url},
                    )
                else:
                    logger.error(
                        "Could not move old asset to trash, keeping it on the row",
                        extra={"url": ref.old_url, "error": str(e)},
                    )
                    remaining = AssetRef(
                        old_url=ref.old_url,
                        old_object_key=ref.old_object_key,
                        delete_pending_until=ref.delete_pending_until,
                    )

        remaining.apply_to(row, prefix)
        return moved
