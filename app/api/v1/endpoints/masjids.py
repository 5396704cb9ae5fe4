from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.api.deps import TokenClaims
from app.schemas.files import AssetSlotResponse, MoveResponse
from app.schemas.responses import SuccessResponse
from app.services.masjid_service import MasjidService, TeacherService
from app.services.oss import BlobService

router = APIRouter()


async def _get_masjid(db: AsyncSession, masjid_id: UUID):
    masjid = await MasjidService.get_masjid_by_id(db, masjid_id)
    if not masjid:
        raise HTTPException(status_code=404, detail="Masjid not found")
    return masjid


@router.put("/{masjid_id}/logo", response_model=SuccessResponse[AssetSlotResponse])
async def replace_masjid_logo(
    masjid_id: UUID,
    file: UploadFile = File(...),
    claims: TokenClaims = Depends(deps.require_masjid_admin),
    db: AsyncSession = Depends(deps.get_db),
    blob: BlobService = Depends(deps.get_blob),
) -> Any:
    """
    Upload a new logo (re-encoded to WebP). The previous logo is kept in the
    old slot until its delete_pending_until passes.
    """
    deps.ensure_masjid_access(claims, masjid_id)
    masjid = await _get_masjid(db, masjid_id)
    data = await file.read()
    ref = await MasjidService.set_logo(db, masjid, file.filename or "logo", data, blob)
    return SuccessResponse(data=AssetSlotResponse.from_ref(ref), message="Logo uploaded successfully")


@router.delete("/{masjid_id}/logo", response_model=SuccessResponse[list[MoveResponse]])
async def delete_masjid_logo(
    masjid_id: UUID,
    claims: TokenClaims = Depends(deps.require_masjid_admin),
    db: AsyncSession = Depends(deps.get_db),
    blob: BlobService = Depends(deps.get_blob),
) -> Any:
    """
    Move the current and old logo to trash and clear the logo slots.
    """
    deps.ensure_masjid_access(claims, masjid_id)
    masjid = await _get_masjid(db, masjid_id)
    moved = await MasjidService.remove_logo(db, masjid, blob)
    return SuccessResponse(
        data=[MoveResponse.from_result(m) for m in moved],
        message="Logo moved to trash",
    )


@router.delete("/{masjid_id}", response_model=SuccessResponse)
async def delete_masjid(
    masjid_id: UUID,
    claims: TokenClaims = Depends(deps.require_superadmin),
    db: AsyncSession = Depends(deps.get_db),
    blob: BlobService = Depends(deps.get_blob),
) -> Any:
    """
    Soft Delete: Move to Trash. Purged for good after the retention window.
    """
    masjid = await _get_masjid(db, masjid_id)
    await MasjidService.soft_delete_masjid(db, masjid, blob)
    return SuccessResponse(data=None, message="Masjid moved to trash")


@router.post("/{masjid_id}/restore", response_model=SuccessResponse)
async def restore_masjid(
    masjid_id: UUID,
    claims: TokenClaims = Depends(deps.require_superadmin),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Restore from Trash.
    """
    success = await MasjidService.restore_masjid(db, masjid_id)
    if not success:
        raise HTTPException(status_code=404, detail="Masjid not found or not deleted")
    return SuccessResponse(data=None, message="Masjid restored successfully")


@router.put("/{masjid_id}/teachers/{teacher_id}/avatar", response_model=SuccessResponse[AssetSlotResponse])
async def replace_teacher_avatar(
    masjid_id: UUID,
    teacher_id: UUID,
    file: UploadFile = File(...),
    claims: TokenClaims = Depends(deps.require_masjid_admin),
    db: AsyncSession = Depends(deps.get_db),
    blob: BlobService = Depends(deps.get_blob),
) -> Any:
    """
    Upload a teacher avatar (WebP) under masjids/{id}/images/teachers-{teacher_id}.
    """
    deps.ensure_masjid_access(claims, masjid_id)
    teacher = await TeacherService.get_teacher(db, masjid_id, teacher_id)
    if not teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")
    data = await file.read()
    ref = await TeacherService.set_avatar(db, teacher, file.filename or "avatar", data, blob)
    return SuccessResponse(data=AssetSlotResponse.from_ref(ref), message="Avatar uploaded successfully")
