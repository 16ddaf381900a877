"""Removal of occurrences whose source resource no longer exists."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable

from term_occurrences.core.errors import NotFoundError, PersistenceError
from term_occurrences.core.logging import get_logger, log_context
from term_occurrences.models.entities import OccurrenceReference
from term_occurrences.occurrences.service import OccurrenceService
from term_occurrences.resources.store import ResourceProvider
from term_occurrences.utils.time import now_ms

logger = get_logger(__name__)


@dataclass(slots=True)
class CleanupReport:
    """Aggregated cleanup statistics."""

    sources_checked: int = 0
    orphaned_sources: int = 0
    removed: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "sources_checked": self.sources_checked,
            "orphaned_sources": self.orphaned_sources,
            "removed": self.removed,
            "failed": self.failed,
        }


class OrphanCleanupJob:
    """Deletes occurrences whose target source is gone.

    Only occurrences that existed when the run started are considered, and a
    source counts as gone only if the resource provider no longer knows it.
    A failure on one record is logged and the run carries on.
    """

    def __init__(self, occurrences: OccurrenceService, resources: ResourceProvider) -> None:
        self.occurrences = occurrences
        self.resources = resources

    def __call__(self) -> CleanupReport:
        return self.run()

    def run(self) -> CleanupReport:
        logger.debug("Executing orphaned term occurrences cleanup.")
        report = CleanupReport()
        started = now_ms()
        for source_id in self.occurrences.sources_in_use(created_before=started):
            report.sources_checked += 1
            try:
                if self.resources.exists(source_id):
                    continue
            except PersistenceError:
                logger.exception("Cannot check source %s; skipping", source_id, extra=log_context(source=source_id))
                report.failed += 1
                continue
            report.orphaned_sources += 1
            for occurrence_id in self.occurrences.ids_in_source(source_id, created_before=started):
                try:
                    self.occurrences.remove(OccurrenceReference(occurrence_id), reason="orphan")
                    report.removed += 1
                except NotFoundError:
                    logger.debug("Orphan %s already removed", occurrence_id, extra=log_context(occurrence=occurrence_id))
                except PersistenceError:
                    logger.exception(
                        "Failed to remove orphaned occurrence %s",
                        occurrence_id,
                        extra=log_context(occurrence=occurrence_id, source=source_id),
                    )
                    report.failed += 1
        if report.removed or report.failed:
            logger.info("Orphan cleanup finished: %s", report.to_dict())
        return report


class CleanupScheduler:
    """Runs a cleanup job on a fixed interval in a background thread."""

    def __init__(self, job: Callable[[], CleanupReport], interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.job = job
        self.interval_seconds = interval_seconds
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.last_report: CleanupReport | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stop.clear()
            self._thread = threading.Thread(target=self._loop, name="orphan-cleanup", daemon=True)
            self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._stop.set()
            thread.join(timeout=timeout)
            self._thread = None

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the scheduler is stopped; ``True`` if it stopped within ``timeout``."""
        return self._stop.wait(timeout)

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.last_report = self.job()
            except Exception:  # pragma: no cover - keep the schedule alive
                logger.exception("Orphan cleanup run failed")


__all__ = ["CleanupReport", "OrphanCleanupJob", "CleanupScheduler"]
