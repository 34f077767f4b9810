"""Scan runner.

Entry points used by the development CLI in place of the hosting
platform's scheduler:
- run_scan_once(): Single overdue scan
- run_scan_loop(): Repeated scans with an interval
- reprocess_event(): Process a stored event again (manual recovery)
"""

import logging
import signal
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlmodel import Session

from app.config import get_settings
from app.db.session import engine
from app.events.processor import EventProcessor, ProcessResult
from app.workers.overdue_scanner import OverdueScanner, ScanResult

logger = logging.getLogger(__name__)


@dataclass
class RunnerResult:
    """Result of one runner iteration."""

    started_at: datetime
    completed_at: datetime | None = None
    scan: ScanResult | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": (
                (self.completed_at - self.started_at).total_seconds() * 1000
                if self.completed_at
                else None
            ),
            "scan": self.scan.to_dict() if self.scan else None,
            "error": self.error,
        }


class ScanRunner:
    """Runs the overdue scanner once or in a loop."""

    def __init__(self, scanner: OverdueScanner | None = None) -> None:
        self.scanner = scanner or OverdueScanner()
        self._logger = logging.getLogger(self.__class__.__name__)
        self._shutdown_requested = False

    def run_once(self, session: Session | None = None) -> RunnerResult:
        """Execute one scan.

        Args:
            session: Optional database session (creates new if not provided)

        Returns:
            RunnerResult with the scan counts or the error
        """
        result = RunnerResult(started_at=datetime.utcnow())

        own_session = session is None
        if own_session:
            session = Session(engine)

        try:
            result.scan = self.scanner.scan(session)
        except Exception as e:
            result.error = f"{self.scanner.worker_name} failed: {e}"
            self._logger.error(result.error, exc_info=True)
        finally:
            if own_session:
                session.close()

        result.completed_at = datetime.utcnow()
        self._logger.info("Scan run completed", extra=result.to_dict())
        return result

    def run_loop(
        self,
        interval_seconds: int | None = None,
        max_iterations: int | None = None,
    ) -> None:
        """Run scans continuously.

        Args:
            interval_seconds: Seconds between scans (default from config)
            max_iterations: Max scans to run (None for infinite)
        """
        interval = interval_seconds or get_settings().SCAN_INTERVAL_SECONDS
        iterations = 0

        self._setup_signal_handlers()
        self._logger.info(
            "Starting scan loop",
            extra={"interval_seconds": interval, "max_iterations": max_iterations},
        )

        try:
            while not self._shutdown_requested:
                if max_iterations is not None and iterations >= max_iterations:
                    self._logger.info(f"Reached max iterations ({max_iterations}), stopping")
                    break

                self.run_once()
                iterations += 1

                if not self._shutdown_requested and (
                    max_iterations is None or iterations < max_iterations
                ):
                    self._logger.debug(f"Sleeping for {interval} seconds")
                    time.sleep(interval)

        except KeyboardInterrupt:
            self._logger.info("Keyboard interrupt received, shutting down")

        self._logger.info("Scan loop stopped", extra={"total_iterations": iterations})

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        def handle_signal(signum, frame):
            self._logger.info(f"Received signal {signum}, requesting shutdown")
            self.request_shutdown()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

    def request_shutdown(self) -> None:
        """Request graceful shutdown of the loop."""
        self._shutdown_requested = True


def run_scan_once() -> RunnerResult:
    """Run the overdue scan once and return results."""
    return ScanRunner().run_once()


def run_scan_loop(
    interval_seconds: int | None = None,
    max_iterations: int | None = None,
) -> None:
    """Run overdue scans until interrupted (Ctrl+C) or max_iterations reached."""
    ScanRunner().run_loop(interval_seconds=interval_seconds, max_iterations=max_iterations)


def reprocess_event(event_id: str) -> ProcessResult:
    """Process a stored event again.

    Automations already run for the event are skipped by the run gate, and
    existing feed entries and baseline notifications are not duplicated.
    """
    with Session(engine) as session:
        return EventProcessor().process(session, event_id)


def configure_worker_logging(level: int = logging.INFO) -> None:
    """Configure logging for runner processes.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("app").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
