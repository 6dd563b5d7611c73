"""Worker runner for the trigger worker.

Entry points:
- run_worker_once(): Single processing cycle
- run_worker_loop(): Continuous processing with interval

The runner owns a NotificationCenter for its lifetime unless one is passed in.
It always attaches an AlertDelivery to the center's bus; fires ring in-app
only when the runner is started in foreground mode.
"""

import logging
import signal
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlmodel import Session

from app.config import get_settings
from app.db.session import engine
from app.integrations.notifications import build_notification_service
from app.services.alerts import AlertDelivery, AlertPresenter, LoggingAlertPresenter
from app.services.notification_center import NotificationCenter
from app.services.scheduler import Scheduler
from app.workers.base import WorkerBase, WorkerResult
from app.workers.trigger_worker import TriggerWorker

logger = logging.getLogger(__name__)


@dataclass
class RunnerResult:
    """Result of a complete worker runner cycle.

    Attributes:
        started_at: When the run started
        completed_at: When the run completed
        workers_run: Number of workers executed
        total_processed: Total items processed across all workers
        total_failed: Total items failed across all workers
        worker_results: Individual results per worker
        errors: Top-level errors during run
        alerts_pending: Alerts ringing or queued in alert delivery
    """

    started_at: datetime
    completed_at: datetime | None = None
    workers_run: int = 0
    total_processed: int = 0
    total_failed: int = 0
    worker_results: dict[str, WorkerResult] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    alerts_pending: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": (
                (self.completed_at - self.started_at).total_seconds() * 1000
                if self.completed_at
                else None
            ),
            "workers_run": self.workers_run,
            "total_processed": self.total_processed,
            "total_failed": self.total_failed,
            "worker_results": {
                name: result.to_dict()
                for name, result in self.worker_results.items()
            },
            "errors": self.errors,
            "alerts_pending": self.alerts_pending,
        }


class WorkerRunner:
    """Runs the background workers against the database.

    Usage:
        with WorkerRunner() as runner:
            result = runner.run_once()
    """

    def __init__(
        self,
        center: NotificationCenter | None = None,
        batch_size: int | None = None,
        foreground: bool = False,
        presenter: AlertPresenter | None = None,
    ) -> None:
        settings = get_settings()
        self.batch_size = batch_size or settings.WORKER_BATCH_SIZE

        self._owns_center = center is None
        if center is None:
            center = NotificationCenter(build_notification_service()).start()
        if foreground:
            center.set_foreground(True)
        self.center = center
        self.alerts = AlertDelivery(center.bus, presenter or LoggingAlertPresenter())
        self.scheduler = Scheduler(center)

        self._workers: list[WorkerBase] = [
            TriggerWorker(self.scheduler, batch_size=self.batch_size),
        ]

        self._logger = logging.getLogger(self.__class__.__name__)
        self._shutdown_requested = False

    def run_once(self, session: Session | None = None) -> RunnerResult:
        """Execute one complete processing cycle.

        Args:
            session: Optional database session (creates new if not provided)

        Returns:
            RunnerResult with aggregated statistics
        """
        result = RunnerResult(started_at=datetime.utcnow())

        own_session = session is None
        if own_session:
            session = Session(engine)

        try:
            for worker in self._workers:
                try:
                    worker_result = worker.run(session)
                    result.worker_results[worker.worker_name] = worker_result
                    result.workers_run += 1
                    result.total_processed += worker_result.processed_count
                    result.total_failed += worker_result.failed_count

                except Exception as e:
                    error_msg = f"{worker.worker_name} failed: {str(e)}"
                    result.errors.append(error_msg)
                    self._logger.error(
                        error_msg,
                        extra={"worker": worker.worker_name},
                        exc_info=True,
                    )

        finally:
            if own_session:
                session.close()

        result.completed_at = datetime.utcnow()
        result.alerts_pending = self.alerts.waiting + (1 if self.alerts.current else 0)

        if result.total_processed or result.total_failed or result.errors:
            self._logger.info("Worker run completed", extra=result.to_dict())

        return result

    def run_loop(
        self,
        interval_seconds: int | None = None,
        max_iterations: int | None = None,
    ) -> None:
        """Run workers continuously in a loop.

        Args:
            interval_seconds: Seconds between cycles (default from config)
            max_iterations: Max cycles to run (None for infinite)
        """
        settings = get_settings()
        interval = interval_seconds or settings.WORKER_POLL_INTERVAL_SECONDS
        iterations = 0

        self._setup_signal_handlers()

        self._logger.info(
            "Starting worker loop",
            extra={"interval_seconds": interval, "max_iterations": max_iterations},
        )

        try:
            while not self._shutdown_requested:
                if max_iterations is not None and iterations >= max_iterations:
                    self._logger.info(f"Reached max iterations ({max_iterations}), stopping")
                    break

                self.run_once()
                iterations += 1

                if not self._shutdown_requested:
                    time.sleep(interval)

        except KeyboardInterrupt:
            self._logger.info("Keyboard interrupt received, shutting down")

        self._logger.info("Worker loop stopped", extra={"total_iterations": iterations})

    def _setup_signal_handlers(self) -> None:
        def handle_signal(signum, frame):
            self._logger.info(f"Received signal {signum}, requesting shutdown")
            self._shutdown_requested = True

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

    def request_shutdown(self) -> None:
        self._shutdown_requested = True

    def close(self) -> None:
        """Detach alert delivery and release the center if this runner created it."""
        self.alerts.close()
        if self._owns_center:
            self.center.close()

    def __enter__(self) -> "WorkerRunner":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def run_worker_once(
    batch_size: int | None = None,
    foreground: bool = False,
) -> RunnerResult:
    """Fire whatever triggers are due right now and return the results.

    Example:
        >>> from app.workers import run_worker_once
        >>> result = run_worker_once()
        >>> print(f"Fired: {result.total_processed}")
    """
    with WorkerRunner(batch_size=batch_size, foreground=foreground) as runner:
        return runner.run_once()


def run_worker_loop(
    interval_seconds: int | None = None,
    max_iterations: int | None = None,
    batch_size: int | None = None,
    foreground: bool = False,
) -> None:
    """Poll for due triggers until interrupted or max_iterations is reached."""
    with WorkerRunner(batch_size=batch_size, foreground=foreground) as runner:
        runner.run_loop(
            interval_seconds=interval_seconds,
            max_iterations=max_iterations,
        )


def configure_worker_logging(level: int = logging.INFO) -> None:
    """Configure logging for worker processes."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("app.workers").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
