"""
Background retention sweep for the downloads directory.

Every interval the sweeper lists the directory and removes anything
older than the retention threshold. A failure to remove one file is
logged and the sweep moves on; nothing raised here ever reaches a
request.
"""

import enum
import threading
import time
from typing import Any, Dict, Optional

from .artifact_store import ArtifactStore
from .constants import DEFAULT_RETENTION_HOURS, DEFAULT_SWEEP_INTERVAL_SECONDS
from .models import SweepReport
from .observability.errors import ErrorTracker
from .observability.metrics import MetricsCollector
from .utils import setup_logger


class SweeperState(enum.Enum):
    IDLE = "idle"
    SWEEPING = "sweeping"


class RetentionSweeper:
    """Delete artifacts older than ``max_age_seconds`` on a fixed timer."""

    def __init__(
        self,
        store: ArtifactStore,
        *,
        max_age_seconds: float = DEFAULT_RETENTION_HOURS * 3600,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        sweep_on_start: bool = True,
        logger=None,
    ):
        self.store = store
        self.max_age_seconds = float(max_age_seconds)
        self.interval_seconds = float(interval_seconds)
        self.sweep_on_start = sweep_on_start
        self.logger = logger or setup_logger("retention", "retention.log")
        self.metrics = MetricsCollector()
        self.state = SweeperState.IDLE
        self.last_report: Optional[SweepReport] = None

        self._state_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_config(cls, store: ArtifactStore, config: Dict[str, Any]) -> "RetentionSweeper":
        ret_cfg = config.get("retention", {})
        return cls(
            store,
            max_age_seconds=float(ret_cfg.get("max_age_hours", DEFAULT_RETENTION_HOURS)) * 3600,
            interval_seconds=float(
                ret_cfg.get("sweep_interval_seconds", DEFAULT_SWEEP_INTERVAL_SECONDS)
            ),
            sweep_on_start=bool(ret_cfg.get("sweep_on_start", True)),
        )

    # ── One sweep ────────────────────────────────────────────────

    def sweep(self, now: Optional[float] = None) -> SweepReport:
        """Remove every entry whose age exceeds the threshold.

        Args:
            now: Reference time as epoch seconds (defaults to the wall clock).

        Returns:
            Counts of entries scanned, deleted and failed.
        """
        with self._state_lock:
            if self.state is SweeperState.SWEEPING:
                self.logger.debug("Sweep already running, skipping")
                return SweepReport()
            self.state = SweeperState.SWEEPING

        report = SweepReport()
        try:
            now = time.time() if now is None else now
            for entry in self.store.scan_all():
                report.scanned += 1
                if now - entry.modified_at <= self.max_age_seconds:
                    continue
                try:
                    if self.store.remove_entry(entry.filename):
                        report.deleted += 1
                        self.logger.info("Removed expired file %s", entry.filename)
                except OSError as e:
                    report.failed += 1
                    self.logger.warning("Could not remove %s: %s", entry.filename, e)
        finally:
            with self._state_lock:
                self.state = SweeperState.IDLE

        self.last_report = report
        self.metrics.inc("retention_sweeps_total")
        self.metrics.inc("retention_deleted_total", report.deleted)
        if report.failed:
            self.metrics.inc("retention_failed_total", report.failed)
        self.metrics.gauge_set("artifacts_on_disk", report.scanned - report.deleted)
        self.logger.info(
            "Sweep done: %d scanned, %d deleted, %d failed",
            report.scanned, report.deleted, report.failed,
        )
        return report

    # ── Background thread ────────────────────────────────────────

    def start(self) -> threading.Thread:
        """Start the sweep loop in a daemon thread (idempotent)."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="retention-sweeper")
        self._thread.start()
        self.logger.info(
            "Retention sweeper started (max age %.0fh, interval %.0fs)",
            self.max_age_seconds / 3600, self.interval_seconds,
        )
        return self._thread

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the loop to exit and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self) -> None:
        if self.sweep_on_start:
            self._safe_sweep()
        while not self._stop.wait(self.interval_seconds):
            self._safe_sweep()

    def _safe_sweep(self) -> None:
        try:
            self.sweep()
        except Exception as e:
            self.logger.error("Retention sweep error: %s", e)
            ErrorTracker().capture_exception(extra={"worker": "retention_sweeper"})
