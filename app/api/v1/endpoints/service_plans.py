from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.api.deps import TokenClaims
from app.schemas.files import AssetSlotResponse
from app.schemas.responses import SuccessResponse
from app.services.masjid_service import ServicePlanService
from app.services.oss import BlobService

router = APIRouter()


@router.put("/{plan_id}/image", response_model=SuccessResponse[AssetSlotResponse])
async def replace_service_plan_image(
    plan_id: UUID,
    file: UploadFile = File(...),
    claims: TokenClaims = Depends(deps.require_superadmin),
    db: AsyncSession = Depends(deps.get_db),
    blob: BlobService = Depends(deps.get_blob),
) -> Any:
    """
    Upload a service plan image (global asset, stored under service_plans/{code}).
    """
    plan = await ServicePlanService.get_plan_by_id(db, plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Service plan not found")
    data = await file.read()
    ref = await ServicePlanService.set_image(db, plan, file.filename or "plan", data, blob)
    return SuccessResponse(data=AssetSlotResponse.from_ref(ref), message="Image uploaded successfully")
