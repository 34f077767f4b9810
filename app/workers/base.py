"""Base worker abstraction for scheduled sweeps.

Provides a small interface for sweeps that:
1. Fetch work items (e.g. overdue assignments)
2. Decide per item whether it still needs work
3. Process items one by one with per-item failure isolation
4. Report counts and errors in a WorkerResult

Items are processed sequentially; one item's failure is recorded and the
sweep moves on to the next item.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from sqlmodel import Session

logger = logging.getLogger(__name__)


class WorkerStatus(str, Enum):
    """Status of a worker run."""

    SUCCESS = "success"
    PARTIAL = "partial"  # Some items processed, some failed
    FAILED = "failed"
    NO_WORK = "no_work"


@dataclass
class WorkerResult:
    """Result of a worker processing cycle.

    Attributes:
        status: Overall status of the worker run
        items_found: Number of items fetched
        processed_count: Number of items successfully processed
        skipped_count: Number of items that needed no work
        failed_count: Number of items that failed
        duration_ms: Time taken for the processing cycle
        errors: List of error details for failed items
        metadata: Additional worker-specific counters
    """

    status: WorkerStatus
    items_found: int = 0
    processed_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    duration_ms: float = 0.0
    errors: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "status": self.status.value,
            "items_found": self.items_found,
            "processed_count": self.processed_count,
            "skipped_count": self.skipped_count,
            "failed_count": self.failed_count,
            "duration_ms": self.duration_ms,
            "errors": self.errors,
            "metadata": self.metadata,
        }


# Generic type for work items
T = TypeVar("T")


class WorkerBase(ABC, Generic[T]):
    """Abstract base class for sweep workers.

    Workers follow this lifecycle per run:
    1. fetch_pending() - Get items to look at (errors here fail the run)
    2. should_process() - Skip items that need no work
    3. process_item() - Do the actual work (errors are isolated per item)
    """

    def __init__(self) -> None:
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def worker_name(self) -> str:
        """Return the worker name for logging."""
        pass

    @abstractmethod
    def fetch_pending(self, session: Session) -> list[T]:
        """Fetch items to process.

        Args:
            session: Database session

        Returns:
            List of items to process
        """
        pass

    def should_process(self, session: Session, item: T) -> bool:
        """Whether an item still needs work. Defaults to True."""
        return True

    @abstractmethod
    def process_item(self, session: Session, item: T, result: WorkerResult) -> None:
        """Process a single item.

        Args:
            session: Database session
            item: The item to process
            result: Run result, for worker-specific counters in ``metadata``

        Raises:
            Exception: If processing fails
        """
        pass

    @abstractmethod
    def get_item_id(self, item: T) -> str:
        """Get the identifier of an item for logs and error reports."""
        pass

    def run(self, session: Session) -> WorkerResult:
        """Execute one processing cycle.

        Errors from fetch_pending propagate to the caller; errors from
        individual items are recorded in the result.

        Args:
            session: Database session

        Returns:
            WorkerResult with processing statistics
        """
        start_time = datetime.utcnow()
        result = WorkerResult(status=WorkerStatus.NO_WORK)

        self._logger.info(f"[{self.worker_name}] Starting processing cycle")

        items = self.fetch_pending(session)
        result.items_found = len(items)

        if not items:
            self._logger.debug(f"[{self.worker_name}] No pending items")
            result.duration_ms = self._elapsed_ms(start_time)
            return result

        self._logger.info(f"[{self.worker_name}] Found {len(items)} items to process")

        for item in items:
            item_id = self.get_item_id(item)

            try:
                if not self.should_process(session, item):
                    result.skipped_count += 1
                    self._logger.debug(
                        f"[{self.worker_name}] Item {item_id} needs no work",
                        extra={"item_id": item_id},
                    )
                    continue

                self.process_item(session, item, result)
                result.processed_count += 1

            except Exception as e:
                session.rollback()
                error_msg = str(e)[:500]  # Truncate long errors
                result.failed_count += 1
                result.errors.append({"item_id": item_id, "error": error_msg})

                self._logger.error(
                    f"[{self.worker_name}] Failed to process item {item_id}",
                    extra={"item_id": item_id, "error": error_msg},
                    exc_info=True,
                )

        if result.failed_count == 0 and result.processed_count > 0:
            result.status = WorkerStatus.SUCCESS
        elif result.processed_count > 0 and result.failed_count > 0:
            result.status = WorkerStatus.PARTIAL
        elif result.failed_count > 0:
            result.status = WorkerStatus.FAILED
        else:
            result.status = WorkerStatus.NO_WORK

        result.duration_ms = self._elapsed_ms(start_time)

        self._logger.info(
            f"[{self.worker_name}] Cycle complete",
            extra=result.to_dict(),
        )

        return result

    def _elapsed_ms(self, start: datetime) -> float:
        """Calculate elapsed time in milliseconds."""
        return (datetime.utcnow() - start).total_seconds() * 1000
