"""Base Models and Mixins for DRY principles"""

import uuid
from sqlalchemy import Column, DateTime, Boolean, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declared_attr

from app.database import Base
from app.utils.time import get_utc_now


class BaseModel(Base):
    """
    Base model class with common fields for all models.

    Provides:
    - UUID primary key
    - created_at timestamp
    - updated_at timestamp
    """
    __abstract__ = True

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    created_at = Column(DateTime, default=get_utc_now, nullable=False)
    updated_at = Column(DateTime, default=get_utc_now, onupdate=get_utc_now, nullable=False)


class MasjidScopedMixin:
    """
    Mixin for multi-tenant models scoped to a masjid.

    Provides:
    - masjid_id foreign key
    """

    @declared_attr
    def masjid_id(cls):
        return Column(
            UUID(as_uuid=True),
            ForeignKey("masjids.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )


class SoftDeleteMixin:
    """
    Soft delete helpers for models with a prefixed "*_deleted_at" column.

    Concrete models declare the column and name it in soft_delete_column
    (NULL = active, NOT NULL = deleted). The reaper purges rows whose
    timestamp is older than the retention window.
    """
    soft_delete_column = "deleted_at"

    def soft_delete(self):
        """Mark record as deleted without removing from database"""
        setattr(self, self.soft_delete_column, get_utc_now())

    def restore(self):
        """Restore a soft-deleted record"""
        setattr(self, self.soft_delete_column, None)

    @property
    def is_deleted(self) -> bool:
        """Check if record is soft-deleted"""
        return getattr(self, self.soft_delete_column) is not None


class StatusMixin:
    """
    Mixin for models with active/inactive status.

    Provides:
    - is_active boolean flag
    """
    is_active = Column(Boolean, default=True, nullable=False, index=True)
