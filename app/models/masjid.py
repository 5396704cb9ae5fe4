"""Masjid (tenant), service plan and teacher models."""

from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID

from app.models.base import BaseModel, MasjidScopedMixin, SoftDeleteMixin, StatusMixin


class Masjid(BaseModel, StatusMixin, SoftDeleteMixin):
    """
    A masjid / school tenant.

    The logo is a two-slot asset: the current file plus the previous one
    held until masjid_logo_delete_pending_until.
    """
    __tablename__ = "masjids"
    soft_delete_column = "masjid_deleted_at"

    name = Column(String(150), nullable=False)
    slug = Column(String(160), nullable=False, unique=True, index=True)
    city = Column(String(100), nullable=True)

    masjid_logo_url = Column(Text, nullable=True)
    masjid_logo_object_key = Column(Text, nullable=True)
    masjid_logo_url_old = Column(Text, nullable=True)
    masjid_logo_object_key_old = Column(Text, nullable=True)
    masjid_logo_delete_pending_until = Column(DateTime, nullable=True, index=True)

    masjid_deleted_at = Column(DateTime, nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Masjid id={self.id} slug={self.slug}>"


class MasjidServicePlan(BaseModel, StatusMixin, SoftDeleteMixin):
    """Subscription plan offered to masjids. Global, not tenant scoped."""
    __tablename__ = "masjid_service_plans"
    soft_delete_column = "masjid_service_plan_deleted_at"

    code = Column(String(30), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    max_teachers = Column(Integer, nullable=True)
    max_students = Column(Integer, nullable=True)
    price_monthly = Column(Numeric(12, 2), nullable=True)

    masjid_service_plan_image_url = Column(Text, nullable=True)
    masjid_service_plan_image_object_key = Column(Text, nullable=True)
    masjid_service_plan_image_url_old = Column(Text, nullable=True)
    masjid_service_plan_image_object_key_old = Column(Text, nullable=True)
    masjid_service_plan_image_delete_pending_until = Column(DateTime, nullable=True, index=True)

    masjid_service_plan_deleted_at = Column(DateTime, nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<MasjidServicePlan code={self.code}>"


class MasjidTeacher(BaseModel, MasjidScopedMixin, SoftDeleteMixin):
    """A teacher registered at a masjid, with a two-slot avatar."""
    __tablename__ = "masjid_teachers"
    soft_delete_column = "masjid_teacher_deleted_at"

    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    display_name = Column(String(120), nullable=False)

    masjid_teacher_avatar_url = Column(Text, nullable=True)
    masjid_teacher_avatar_object_key = Column(Text, nullable=True)
    masjid_teacher_avatar_url_old = Column(Text, nullable=True)
    masjid_teacher_avatar_object_key_old = Column(Text, nullable=True)
    masjid_teacher_avatar_delete_pending_until = Column(DateTime, nullable=True, index=True)

    masjid_teacher_deleted_at = Column(DateTime, nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<MasjidTeacher id={self.id} masjid_id={self.masjid_id}>"
