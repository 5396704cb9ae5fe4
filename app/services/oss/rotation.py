"""
Two-slot (current/old) asset references.

Entities that own a file keep five columns per asset, named after a column
prefix, e.g. for prefix "masjid_logo":

    masjid_logo_url, masjid_logo_object_key,
    masjid_logo_url_old, masjid_logo_object_key_old,
    masjid_logo_delete_pending_until

Replacing an asset shifts current into old and stamps an expiry; nothing
touches the object store here.
"""
from dataclasses import dataclass, replace as dc_replace
from datetime import datetime, timedelta
from typing import Any, Optional

from app.utils.time import get_utc_now


@dataclass(frozen=True)
class AssetRef:
    current_url: Optional[str] = None
    current_object_key: Optional[str] = None
    old_url: Optional[str] = None
    old_object_key: Optional[str] = None
    delete_pending_until: Optional[datetime] = None

    @property
    def has_current(self) -> bool:
        return bool(self.current_url or self.current_object_key)

    @property
    def has_old(self) -> bool:
        return bool(self.old_url)

    def replace(
        self,
        new_key: str,
        new_url: str,
        retention: timedelta,
        now: Optional[datetime] = None,
    ) -> "AssetRef":
        """Make new_key/new_url current; a previous current becomes old with an expiry."""
        if not self.has_current:
            return dc_replace(self, current_url=new_url, current_object_key=new_key)
        now = now or get_utc_now()
        return AssetRef(
            current_url=new_url,
            current_object_key=new_key,
            old_url=self.current_url,
            old_object_key=self.current_object_key,
            delete_pending_until=now + retention,
        )

    def cleared(self) -> "AssetRef":
        return AssetRef()

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.delete_pending_until is None:
            return False
        return self.delete_pending_until <= (now or get_utc_now())

    @classmethod
    def from_row(cls, row: Any, prefix: str) -> "AssetRef":
        return cls(
            current_url=getattr(row, f"{prefix}_url"),
            current_object_key=getattr(row, f"{prefix}_object_key"),
            old_url=getattr(row, f"{prefix}_url_old"),
            old_object_key=getattr(row, f"{prefix}_object_key_old"),
            delete_pending_until=getattr(row, f"{prefix}_delete_pending_until"),
        )

    def apply_to(self, row: Any, prefix: str) -> None:
        setattr(row, f"{prefix}_url", self.current_url or None)
        setattr(row, f"{prefix}_object_key", self.current_object_key or None)
        setattr(row, f"{prefix}_url_old", self.old_url or None)
        setattr(row, f"{prefix}_object_key_old", self.old_object_key or None)
        # pending expiry only makes sense while an old asset is held
        setattr(row, f"{prefix}_delete_pending_until", self.delete_pending_until if self.old_url else None)
