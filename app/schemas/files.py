"""Schemas for file, asset slot and reaper endpoints"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from app.services.oss import AssetRef, MoveResult, UploadResult


class UploadResponse(BaseModel):
    url: str
    object_key: str
    content_type: str

    @classmethod
    def from_result(cls, result: UploadResult) -> "UploadResponse":
        return cls(url=result.public_url, object_key=result.object_key, content_type=result.content_type)


class UrlRequest(BaseModel):
    url: str = Field(..., min_length=1, description="Public URL of a stored object")


class UrlListRequest(BaseModel):
    urls: List[str] = Field(..., min_length=1, max_length=5000)


class MoveResponse(BaseModel):
    source_key: str
    spam_key: str
    spam_url: str
    warning: Optional[str] = None

    @classmethod
    def from_result(cls, result: MoveResult) -> "MoveResponse":
        return cls(
            source_key=result.source_key,
            spam_key=result.spam_key,
            spam_url=result.spam_url,
            warning=result.warning,
        )


class DeleteManyResponse(BaseModel):
    deleted: List[str]
    failed: Dict[str, str]


class AssetSlotResponse(BaseModel):
    """Current/old slot pair of an owned asset"""
    model_config = ConfigDict(from_attributes=True)

    url: Optional[str] = None
    object_key: Optional[str] = None
    url_old: Optional[str] = None
    object_key_old: Optional[str] = None
    delete_pending_until: Optional[datetime] = None

    @classmethod
    def from_ref(cls, ref: AssetRef) -> "AssetSlotResponse":
        return cls(
            url=ref.current_url,
            object_key=ref.current_object_key,
            url_old=ref.old_url,
            object_key_old=ref.old_object_key,
            delete_pending_until=ref.delete_pending_until,
        )


class TableSweepResponse(BaseModel):
    table: str
    affected: int
    error: Optional[str] = None


class ReaperRunResponse(BaseModel):
    cutoff: datetime
    dry_run: bool
    objects_candidates: int
    objects_deleted: int
    objects_failed: int
    objects_error: Optional[str] = None
    tables: List[TableSweepResponse]
