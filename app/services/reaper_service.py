"""
Reaper - scheduled purge of expired trash.

Each run walks two phases:
  1. object store: list everything under the trash prefix, delete objects
     whose last-modified time is older than now - retention (batches of 1000)
  2. database: hard-delete soft-deleted rows older than the same cutoff,
     one table at a time

Runs never overlap; a run that finds another one in progress is skipped.
"""
import asyncio
import enum
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import text

from app.core.logging import get_logger
from app.services.oss.errors import StorageError, StoreOperationError
from app.services.oss.service import MAX_BATCH_KEYS, OSSService
from app.utils.time import get_aware_utc_now, to_naive_utc

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


class ReaperState(str, enum.Enum):
    IDLE = "idle"
    SCANNING_OSS = "scanning_oss"
    DELETING_OSS = "deleting_oss"
    SCANNING_DB = "scanning_db"
    DELETING_DB = "deleting_db"


@dataclass
class OSSPhaseReport:
    candidates: int = 0
    deleted: int = 0
    failed: int = 0
    dry_run: bool = False
    skipped: bool = False
    error: Optional[str] = None


@dataclass
class TableReport:
    table: str
    column: str
    affected: int = 0
    error: Optional[str] = None


@dataclass
class DBPhaseReport:
    tables: List[TableReport] = field(default_factory=list)
    dry_run: bool = False

    @property
    def affected(self) -> int:
        return sum(t.affected for t in self.tables)

    @property
    def failed_tables(self) -> List[str]:
        return [t.table for t in self.tables if t.error]


@dataclass
class ReaperReport:
    started_at: datetime
    cutoff: datetime
    oss: OSSPhaseReport
    db: DBPhaseReport
    finished_at: Optional[datetime] = None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_tables(tables: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Table and column names are interpolated into SQL, so only plain identifiers pass."""
    pairs = []
    for table, column in tables:
        if not _IDENTIFIER.match(table) or not _IDENTIFIER.match(column) or "." in column:
            raise ValueError(f"invalid reaper table/column: {table}.{column}")
        pairs.append((table, column))
    return pairs


class Reaper:
    def __init__(
        self,
        store: Optional[OSSService],
        session_factory: Callable,
        tables: Sequence[Tuple[str, str]],
        *,
        retention: timedelta,
        trash_prefix: str = "spam/",
        dry_run: bool = False,
    ):
        if not trash_prefix.strip("/"):
            raise ValueError("trash prefix must not be empty")
        self.store = store
        self.session_factory = session_factory
        self.tables = validate_tables(tables)
        self.retention = retention
        self.trash_prefix = trash_prefix
        self.dry_run = dry_run
        self.state = ReaperState.IDLE
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def cutoff_for(self, now: datetime) -> datetime:
        return _as_utc(now) - self.retention

    # ------------------------------------------------------------------
    # Object store phase
    # ------------------------------------------------------------------

    async def collect_expired_keys(self, cutoff: datetime) -> List[str]:
        """Keys under the trash prefix last modified strictly before cutoff."""
        cutoff = _as_utc(cutoff)
        expired: List[str] = []
        scanned = 0
        async for page in self.store.iter_objects(self.trash_prefix, MAX_BATCH_KEYS):
            scanned += len(page)
            expired.extend(
                obj.key for obj in page if _as_utc(obj.last_modified) < cutoff
            )
        logger.info(
            "Scanned trash objects",
            extra={"prefix": self.trash_prefix, "scanned": scanned, "expired": len(expired)},
        )
        return expired

    async def run_oss_phase(self, now: datetime, dry_run: Optional[bool] = None) -> OSSPhaseReport:
        dry_run = self.dry_run if dry_run is None else dry_run
        report = OSSPhaseReport(dry_run=dry_run)
        if self.store is None:
            logger.warning("Object storage not configured; skipping trash purge")
            report.skipped = True
            return report

        self.state = ReaperState.SCANNING_OSS
        keys = await self.collect_expired_keys(self.cutoff_for(now))
        report.candidates = len(keys)

        if dry_run:
            logger.info(
                "[dry-run] expired trash objects not deleted",
                extra={"candidates": report.candidates, "prefix": self.trash_prefix},
            )
            return report

        self.state = ReaperState.DELETING_OSS
        for start in range(0, len(keys), MAX_BATCH_KEYS):
            batch = keys[start:start + MAX_BATCH_KEYS]
            try:
                errors = await self.store.delete_objects(batch)
            except StoreOperationError as e:
                report.failed += len(batch)
                logger.error(
                    "Trash delete batch failed",
                    extra={"batch_start": start, "batch_size": len(batch), "error": str(e)},
                )
                continue
            for key, message in errors.items():
                logger.warning("Trash object not deleted", extra={"key": key, "error": message})
            report.failed += len(errors)
            report.deleted += len(batch) - len(errors)

        logger.info(
            "Trash purge finished",
            extra={"candidates": report.candidates, "deleted": report.deleted, "failed": report.failed},
        )
        return report

    # ------------------------------------------------------------------
    # Database phase
    # ------------------------------------------------------------------

    async def _sweep_table(self, table: str, column: str, cutoff: datetime, dry_run: bool) -> TableReport:
        report = TableReport(table=table, column=column)
        where = f"{column} IS NOT NULL AND {column} < :cutoff"
        async with self.session_factory() as session:
            try:
                if dry_run:
                    result = await session.execute(
                        text(f"SELECT COUNT(*) FROM {table} WHERE {where}"), {"cutoff": cutoff}
                    )
                    report.affected = int(result.scalar() or 0)
                else:
                    self.state = ReaperState.DELETING_DB
                    result = await session.execute(
                        text(f"DELETE FROM {table} WHERE {where}"), {"cutoff": cutoff}
                    )
                    await session.commit()
                    report.affected = max(result.rowcount or 0, 0)
            except Exception as e:
                await session.rollback()
                report.error = str(e)
                logger.error(
                    "Soft-deleted row purge failed",
                    extra={"table": table, "column": column, "error": str(e)},
                    exc_info=True,
                )
        return report

    async def run_db_phase(self, now: datetime, dry_run: Optional[bool] = None) -> DBPhaseReport:
        dry_run = self.dry_run if dry_run is None else dry_run
        # soft-delete columns are naive UTC timestamps
        cutoff = to_naive_utc(self.cutoff_for(now))
        report = DBPhaseReport(dry_run=dry_run)
        for table, column in self.tables:
            self.state = ReaperState.SCANNING_DB
            table_report = await self._sweep_table(table, column, cutoff, dry_run)
            report.tables.append(table_report)
            if not table_report.error:
                logger.info(
                    "[dry-run] soft-deleted rows not purged" if dry_run else "Purged soft-deleted rows",
                    extra={"table": table, "rows": table_report.affected},
                )
        return report

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    async def run(self, now: Optional[datetime] = None, dry_run: Optional[bool] = None) -> Optional[ReaperReport]:
        if self._lock.locked():
            logger.warning("Reaper still running; skipping this invocation")
            return None

        async with self._lock:
            now = _as_utc(now or get_aware_utc_now())
            report = ReaperReport(
                started_at=now,
                cutoff=self.cutoff_for(now),
                oss=OSSPhaseReport(),
                db=DBPhaseReport(),
            )
            logger.info(
                "Reaper run started",
                extra={"cutoff": report.cutoff.isoformat(), "dry_run": self.dry_run if dry_run is None else dry_run},
            )
            try:
                try:
                    report.oss = await self.run_oss_phase(now, dry_run)
                except StorageError as e:
                    logger.error("Trash listing failed; object phase aborted", extra={"error": str(e)})
                    report.oss = OSSPhaseReport(error=str(e))
                report.db = await self.run_db_phase(now, dry_run)
            finally:
                self.state = ReaperState.IDLE
            report.finished_at = get_aware_utc_now()
            logger.info(
                "Reaper run finished",
                extra={
                    "objects_deleted": report.oss.deleted,
                    "rows_purged": report.db.affected,
                    "failed_tables": report.db.failed_tables,
                },
            )
            return report
