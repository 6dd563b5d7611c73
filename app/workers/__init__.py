"""Background workers module.

The trigger worker polls armed reminder triggers and fires those that are due.

Workers can be started via:
- run_worker_once(): Single processing cycle
- run_worker_loop(): Continuous processing with interval
"""

from app.workers.base import (
    WorkerBase,
    WorkerResult,
    WorkerStatus,
)
from app.workers.trigger_worker import TriggerWorker
from app.workers.runner import (
    WorkerRunner,
    RunnerResult,
    run_worker_once,
    run_worker_loop,
    configure_worker_logging,
)

__all__ = [
    # Base classes
    "WorkerBase",
    "WorkerResult",
    "WorkerStatus",
    # Workers
    "TriggerWorker",
    # Runner
    "WorkerRunner",
    "RunnerResult",
    "run_worker_once",
    "run_worker_loop",
    "configure_worker_logging",
]
