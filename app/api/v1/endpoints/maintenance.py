from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api import deps
from app.api.deps import TokenClaims
from app.core.scheduler import get_reaper
from app.schemas.files import ReaperRunResponse, TableSweepResponse
from app.schemas.responses import SuccessResponse
from app.services.reaper_service import Reaper

router = APIRouter()


@router.post("/reaper/run", response_model=SuccessResponse[ReaperRunResponse])
async def run_reaper(
    dry_run: Optional[bool] = Query(None, description="Override DRY_RUN for this run"),
    claims: TokenClaims = Depends(deps.require_superadmin),
    reaper: Reaper = Depends(get_reaper),
) -> Any:
    """
    Run the trash reaper now (same job the cron schedule triggers).
    """
    report = await reaper.run(dry_run=dry_run)
    if report is None:
        raise HTTPException(status_code=409, detail="Reaper is already running")

    data = ReaperRunResponse(
        cutoff=report.cutoff,
        dry_run=report.db.dry_run,
        objects_candidates=report.oss.candidates,
        objects_deleted=report.oss.deleted,
        objects_failed=report.oss.failed,
        objects_error=report.oss.error,
        tables=[
            TableSweepResponse(table=t.table, affected=t.affected, error=t.error)
            for t in report.db.tables
        ],
    )
    return SuccessResponse(data=data, message=f"Purged {report.oss.deleted} objects and {report.db.affected} rows")
