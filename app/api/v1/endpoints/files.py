from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from app.api import deps
from app.api.deps import TokenClaims
from app.schemas.files import (
    DeleteManyResponse,
    MoveResponse,
    UploadResponse,
    UrlListRequest,
    UrlRequest,
)
from app.schemas.responses import SuccessResponse
from app.services.oss import BlobService, MalformedURL

router = APIRouter()


def _target_masjid(claims: TokenClaims, masjid_id: Optional[UUID]) -> UUID:
    target = masjid_id or claims.masjid_id
    if target is None:
        raise HTTPException(status_code=400, detail="masjid_id is required")
    deps.ensure_masjid_access(claims, target)
    return target


def _ensure_owned(claims: TokenClaims, blob: BlobService, url: str) -> None:
    if claims.is_superadmin:
        return
    if not blob.belongs_to(claims.masjid_id, url):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Object belongs to another masjid")


@router.post("", response_model=SuccessResponse[UploadResponse])
async def upload_file(
    file: UploadFile = File(...),
    category: str = Form("misc"),
    auto_webp: bool = Form(True),
    masjid_id: Optional[UUID] = Form(None),
    claims: TokenClaims = Depends(deps.require_masjid_admin),
    blob: BlobService = Depends(deps.get_blob),
) -> Any:
    """
    Upload a file under masjids/{masjid_id}/{category}.
    Images are re-encoded to WebP unless auto_webp is false.
    """
    target = _target_masjid(claims, masjid_id)
    filename = file.filename or "file"
    if auto_webp:
        result = await blob.upload_any(filename, file.file, ["masjids", str(target), category or "misc"])
    else:
        result = await blob.upload_scoped(target, category, filename, file.file)
    return SuccessResponse(data=UploadResponse.from_result(result), message="File uploaded successfully")


@router.post("/images", response_model=SuccessResponse[UploadResponse])
async def upload_image(
    file: UploadFile = File(...),
    slot: str = Form("default"),
    masjid_id: Optional[UUID] = Form(None),
    claims: TokenClaims = Depends(deps.require_masjid_admin),
    blob: BlobService = Depends(deps.get_blob),
) -> Any:
    """
    Upload an image (jpg/png/webp) re-encoded to WebP under masjids/{id}/images/{slot}.
    """
    target = _target_masjid(claims, masjid_id)
    data = await file.read()
    result = await blob.upload_masjid_image(target, slot, file.filename or "image", data)
    return SuccessResponse(data=UploadResponse.from_result(result), message="Image uploaded successfully")


@router.post("/spam", response_model=SuccessResponse[MoveResponse])
async def move_file_to_spam(
    body: UrlRequest,
    claims: TokenClaims = Depends(deps.require_masjid_admin),
    blob: BlobService = Depends(deps.get_blob),
) -> Any:
    """
    Move an object to the trash prefix. It is purged by the reaper after the retention window.
    """
    _ensure_owned(claims, blob, body.url)
    result = await blob.move_to_spam(body.url)
    return SuccessResponse(data=MoveResponse.from_result(result), message="File moved to trash")


@router.delete("", response_model=SuccessResponse)
async def delete_file(
    body: UrlRequest,
    claims: TokenClaims = Depends(deps.require_masjid_admin),
    blob: BlobService = Depends(deps.get_blob),
) -> Any:
    """
    Permanently delete an object.
    """
    _ensure_owned(claims, blob, body.url)
    await blob.delete(body.url)
    return SuccessResponse(data=None, message="File deleted")


@router.post("/delete-many", response_model=SuccessResponse[DeleteManyResponse])
async def delete_files(
    body: UrlListRequest,
    claims: TokenClaims = Depends(deps.require_masjid_admin),
    blob: BlobService = Depends(deps.get_blob),
) -> Any:
    """
    Permanently delete many objects. Per-URL failures are reported, not raised.
    """
    failed = {}
    allowed = []
    for url in body.urls:
        try:
            _ensure_owned(claims, blob, url)
        except HTTPException as e:
            failed[url] = e.detail
            continue
        except MalformedURL as e:
            failed[url] = str(e)
            continue
        allowed.append(url)

    result = await blob.delete_many(allowed)
    failed.update({url: str(err) for url, err in result.failed.items()})
    return SuccessResponse(
        data=DeleteManyResponse(deleted=result.deleted, failed=failed),
        message=f"Deleted {len(result.deleted)} files",
    )
