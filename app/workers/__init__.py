"""Scheduled sweeps for the event pipeline.

- OverdueScanner: emits assignment_overdue events for overdue assignments
- runner: run_scan_once() / run_scan_loop() / reprocess_event() for the dev CLI
"""

from app.workers.base import (
    WorkerBase,
    WorkerResult,
    WorkerStatus,
)
from app.workers.overdue_scanner import OverdueItem, OverdueScanner, ScanResult
from app.workers.runner import (
    RunnerResult,
    ScanRunner,
    configure_worker_logging,
    reprocess_event,
    run_scan_loop,
    run_scan_once,
)

__all__ = [
    # Base classes
    "WorkerBase",
    "WorkerResult",
    "WorkerStatus",
    # Scanner
    "OverdueItem",
    "OverdueScanner",
    "ScanResult",
    # Runner
    "ScanRunner",
    "RunnerResult",
    "run_scan_once",
    "run_scan_loop",
    "reprocess_event",
    "configure_worker_logging",
]
