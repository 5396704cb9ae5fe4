"""Masjid, service plan and teacher asset operations"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.masjid import Masjid, MasjidServicePlan, MasjidTeacher
from app.services.asset_service import AssetService
from app.services.oss import AssetRef, BlobService, MoveResult

logger = logging.getLogger(__name__)

LOGO_PREFIX = "masjid_logo"
PLAN_IMAGE_PREFIX = "masjid_service_plan_image"
AVATAR_PREFIX = "masjid_teacher_avatar"


class MasjidService:
    """Service layer for masjid-owned assets"""

    @staticmethod
    async def get_masjid_by_id(
        db: AsyncSession, masjid_id: UUID, include_deleted: bool = False
    ) -> Optional[Masjid]:
        query = select(Masjid).where(Masjid.id == masjid_id)
        if not include_deleted:
            query = query.where(Masjid.masjid_deleted_at.is_(None))
        result = await db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    async def set_logo(
        db: AsyncSession, masjid: Masjid, filename: str, data: bytes, blob: BlobService
    ) -> AssetRef:
        """Upload a new logo (WebP) and rotate the previous one into the old slot"""
        upload = await blob.upload_image(filename, data, ["masjids", str(masjid.id), "logo"])
        ref = AssetService.rotate(masjid, LOGO_PREFIX, upload, blob)
        await db.commit()
        logger.info("Masjid logo replaced", extra={"masjid_id": str(masjid.id), "key": upload.object_key})
        return ref

    @staticmethod
    async def remove_logo(db: AsyncSession, masjid: Masjid, blob: BlobService) -> List[MoveResult]:
        moved = await AssetService.trash(masjid, LOGO_PREFIX, blob)
        await db.commit()
        return moved

    @staticmethod
    async def soft_delete_masjid(
        db: AsyncSession, masjid: Masjid, blob: BlobService
    ) -> List[MoveResult]:
        """Soft delete and move the logo to trash; the reaper purges both later"""
        moved = await AssetService.trash(masjid, LOGO_PREFIX, blob)
        masjid.soft_delete()
        await db.commit()
        logger.info("Masjid moved to trash", extra={"masjid_id": str(masjid.id)})
        return moved

    @staticmethod
    async def restore_masjid(db: AsyncSession, masjid_id: UUID) -> bool:
        masjid = await MasjidService.get_masjid_by_id(db, masjid_id, include_deleted=True)
        if not masjid or not masjid.is_deleted:
            return False
        masjid.restore()
        await db.commit()
        return True


class ServicePlanService:
    """Service plans are global; their images live under service_plans/{code}"""

    @staticmethod
    async def get_plan_by_id(db: AsyncSession, plan_id: UUID) -> Optional[MasjidServicePlan]:
        result = await db.execute(
            select(MasjidServicePlan).where(
                MasjidServicePlan.id == plan_id,
                MasjidServicePlan.masjid_service_plan_deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def set_image(
        db: AsyncSession, plan: MasjidServicePlan, filename: str, data: bytes, blob: BlobService
    ) -> AssetRef:
        upload = await blob.upload_image(filename, data, ["service_plans", plan.code])
        ref = AssetService.rotate(plan, PLAN_IMAGE_PREFIX, upload, blob)
        await db.commit()
        return ref


class TeacherService:
    """Teacher avatars, scoped to the teacher's masjid"""

    @staticmethod
    async def get_teacher(
        db: AsyncSession, masjid_id: UUID, teacher_id: UUID
    ) -> Optional[MasjidTeacher]:
        result = await db.execute(
            select(MasjidTeacher).where(
                MasjidTeacher.id == teacher_id,
                MasjidTeacher.masjid_id == masjid_id,
                MasjidTeacher.masjid_teacher_deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def set_avatar(
        db: AsyncSession, teacher: MasjidTeacher, filename: str, data: bytes, blob: BlobService
    ) -> AssetRef:
        upload = await blob.upload_masjid_image(teacher.masjid_id, f"teachers-{teacher.id}", filename, data)
        ref = AssetService.rotate(teacher, AVATAR_PREFIX, upload, blob)
        await db.commit()
        return ref
