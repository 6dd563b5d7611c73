"""Base worker abstraction for polling background jobs.

A worker cycle:
1. Polls for due work items
2. Claims each item so it is handled once
3. Processes it and records the outcome
4. Logs a summary of the cycle

Workers run in-process and are testable by calling run() with a session.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

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
        status: Overall status of the cycle
        processed_count: Items handled successfully
        failed_count: Items that raised
        duration_ms: Wall time of the cycle
        errors: Per-item error details
        metadata: Worker-specific counters
    """

    status: WorkerStatus
    processed_count: int = 0
    failed_count: int = 0
    duration_ms: float = 0.0
    errors: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "duration_ms": self.duration_ms,
            "errors": self.errors,
            "metadata": self.metadata,
        }


T = TypeVar("T")


class WorkerBase(ABC, Generic[T]):
    """Abstract base class for background workers.

    Lifecycle per item: mark_processing() -> process_item() ->
    mark_completed(), or mark_failed() if processing raised.
    """

    def __init__(self, batch_size: int = 50) -> None:
        self.batch_size = batch_size
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def worker_name(self) -> str:
        """Return the worker name for logging."""
        pass

    @abstractmethod
    def fetch_pending(self, session: Session) -> list[T]:
        """Fetch up to batch_size items that are due."""
        pass

    @abstractmethod
    def mark_processing(self, session: Session, item: T) -> bool:
        """Claim an item.

        Returns:
            False if the item was already handled and must be skipped
        """
        pass

    @abstractmethod
    def process_item(self, session: Session, item: T) -> None:
        pass

    @abstractmethod
    def mark_completed(self, session: Session, item: T) -> None:
        pass

    @abstractmethod
    def mark_failed(self, session: Session, item: T, error: str, can_retry: bool) -> None:
        pass

    @abstractmethod
    def get_item_id(self, item: T) -> UUID:
        pass

    def should_retry(self, item: T) -> bool:
        """Whether a failed item stays eligible for the next cycle.

        Failed items are final unless a worker overrides this.
        """
        return False

    def cycle_metadata(self) -> dict[str, Any]:
        """Extra counters to attach to the cycle result."""
        return {}

    def _handle_item(self, session: Session, item: T) -> tuple[bool, dict[str, Any] | None]:
        """Claim, process and finalize one item.

        Returns:
            (claimed, error) where error is None unless processing raised
        """
        item_id = self.get_item_id(item)

        try:
            if not self.mark_processing(session, item):
                self._logger.debug(f"[{self.worker_name}] Item {item_id} already handled")
                return False, None
            self.process_item(session, item)
            self.mark_completed(session, item)
            session.commit()
            return True, None

        except Exception as e:
            session.rollback()
            error_msg = str(e)[:500]
            can_retry = self.should_retry(item)

            self.mark_failed(session, item, error_msg, can_retry)
            session.commit()

            error = {"item_id": str(item_id), "error": error_msg, "can_retry": can_retry}
            self._logger.error(
                f"[{self.worker_name}] Failed to process item {item_id}",
                extra=error,
                exc_info=True,
            )
            return True, error

    def run(self, session: Session) -> WorkerResult:
        """Execute one processing cycle over the due items.

        A failing item is rolled back and recorded; the cycle continues with
        the next one. Only a failure to fetch aborts the cycle.
        """
        started = datetime.utcnow()

        try:
            items = self.fetch_pending(session)
        except Exception as e:
            self._logger.error(
                f"[{self.worker_name}] Could not fetch due items",
                extra={"error": str(e)},
                exc_info=True,
            )
            return WorkerResult(
                status=WorkerStatus.FAILED,
                duration_ms=self._elapsed_ms(started),
                errors=[{"error": str(e)}],
            )

        if not items:
            return WorkerResult(status=WorkerStatus.NO_WORK, duration_ms=self._elapsed_ms(started))

        self._logger.info(f"[{self.worker_name}] Found {len(items)} due items")

        outcomes = [self._handle_item(session, item) for item in items]
        errors = [error for _, error in outcomes if error]
        failed = len(errors)
        processed = sum(1 for claimed, _ in outcomes if claimed) - failed
        status = _cycle_status(processed, failed)

        result = WorkerResult(
            status=status,
            processed_count=processed,
            failed_count=failed,
            duration_ms=self._elapsed_ms(started),
            errors=errors,
            metadata=self.cycle_metadata(),
        )
        self._logger.info(f"[{self.worker_name}] Cycle complete", extra=result.to_dict())
        return result

    def _elapsed_ms(self, start: datetime) -> float:
        return (datetime.utcnow() - start).total_seconds() * 1000


def _cycle_status(processed: int, failed: int) -> WorkerStatus:
    if failed and processed:
        return WorkerStatus.PARTIAL
    if failed:
        return WorkerStatus.FAILED
    if processed:
        return WorkerStatus.SUCCESS
    return WorkerStatus.NO_WORK
