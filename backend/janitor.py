"""Janitor — removes expired, exhausted and orphaned drops.

Runs as a background task inside the app (see ``Janitor``), or once from the
command line: python janitor.py
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from config import Settings, get_settings
from api.blobs.repositories import blob_repository
from api.drops.repositories import drops_repository
from api.drops.repositories.drops_repository import utc_now
from api.drops.services import drops_service
from errors import NotFound, StorageError

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    started_at: datetime
    finished_at: datetime | None = None
    expired: int = 0
    exhausted: int = 0
    orphan_blobs: int = 0
    orphan_rows: int = 0
    temp_files: int = 0
    failures: list[str] = field(default_factory=list)

    @property
    def removed(self) -> int:
        return self.expired + self.exhausted + self.orphan_blobs + self.orphan_rows


def _reclaim(codes: Iterable[str], remove: Callable[[str], None], report: SweepReport, kind: str) -> int:
    """Apply ``remove`` to each code independently.

    NotFound means someone else got there first and counts as done. Any other
    failure is logged and left for the next sweep.
    """
    count = 0
    try:
        for code in codes:
            try:
                remove(code)
            except NotFound:
                continue
            except Exception:
                logger.exception("Failed to remove %s drop %s", kind, code)
                report.failures.append(code)
                continue
            count += 1
    except StorageError:
        logger.exception("Listing %s drops failed", kind)
    return count


def _remove_orphan_blob(code: str) -> None:
    if drops_repository.code_exists(code):
        raise NotFound(code)
    blob_repository.delete(code)


def _remove_orphan_row(code: str) -> None:
    if blob_repository.exists(code):
        raise NotFound(code)
    drops_repository.delete_by_code(code)


def run_cleanup(settings: Settings | None = None) -> SweepReport:
    """Run one full sweep and return what it did."""
    settings = settings or get_settings()
    now = utc_now()
    report = SweepReport(started_at=now)

    report.expired = _reclaim(drops_repository.iter_expired(now), drops_service.delete_drop, report, "expired")
    report.exhausted = _reclaim(drops_repository.iter_exhausted(), drops_service.delete_drop, report, "exhausted")

    # Orphans: only entries older than the grace period, so uploads still in
    # flight (blob written, metadata pending) are left alone.
    cutoff = now - timedelta(seconds=settings.orphan_grace)
    try:
        orphan_blobs = list(blob_repository.iter_codes_older_than(cutoff))
        report.temp_files = blob_repository.purge_temp_files(cutoff)
    except OSError:
        logger.exception("Scanning blob directory failed")
        orphan_blobs = []
    report.orphan_blobs = _reclaim(orphan_blobs, _remove_orphan_blob, report, "orphaned blob")
    report.orphan_rows = _reclaim(
        drops_repository.iter_created_before(cutoff), _remove_orphan_row, report, "orphaned metadata"
    )

    report.finished_at = utc_now()
    if report.removed or report.failures:
        logger.info(
            "Sweep removed %d drops (%d expired, %d exhausted, %d orphan blobs, %d orphan rows), %d failures",
            report.removed,
            report.expired,
            report.exhausted,
            report.orphan_blobs,
            report.orphan_rows,
            len(report.failures),
        )
    return report


class Janitor:
    """Runs ``run_cleanup`` every ``sweep_interval`` seconds in a worker thread."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._task: asyncio.Task | None = None
        self._stopping: asyncio.Event | None = None
        self.last_report: SweepReport | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run(self._stopping))
        logger.info("Janitor started, sweeping every %ss", self._settings.sweep_interval)

    async def stop(self) -> None:
        """Stop after the sweep in progress, if any, has finished."""
        if self._task is None:
            return
        self._stopping.set()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("Janitor stopped")

    async def sweep(self) -> SweepReport:
        report = await asyncio.to_thread(run_cleanup, self._settings)
        self.last_report = report
        return report

    async def _run(self, stopping: asyncio.Event) -> None:
        while not stopping.is_set():
            try:
                await self.sweep()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Sweep failed")
            try:
                await asyncio.wait_for(stopping.wait(), self._settings.sweep_interval)
            except asyncio.TimeoutError:
                pass


if __name__ == "__main__":
    from logging_config import setup_logging

    setup_logging()
    run_cleanup()
