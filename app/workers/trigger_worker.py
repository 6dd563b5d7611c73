"""Trigger worker: fires armed reminder triggers whose time has come.

Each due trigger is handed to Scheduler.handle_fire, which dispatches the
alert, marks the trigger fired and re-arms recurring reminders.
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlmodel import Session

from app.models.trigger import ReminderTrigger, TriggerState
from app.services.scheduler import FireOutcome, Scheduler
from app.workers.base import WorkerBase

logger = logging.getLogger(__name__)


class TriggerWorker(WorkerBase[ReminderTrigger]):
    """Polls due triggers and fires them through the scheduler."""

    def __init__(
        self,
        scheduler: Scheduler,
        batch_size: int = 50,
    ) -> None:
        super().__init__(batch_size=batch_size)
        self.scheduler = scheduler
        self.outcomes: Counter[FireOutcome] = Counter()

    @property
    def worker_name(self) -> str:
        return "TriggerWorker"

    def fetch_pending(self, session: Session) -> list[ReminderTrigger]:
        self.outcomes = Counter()
        return self.scheduler.get_due_triggers(
            session,
            as_of=datetime.utcnow(),
            limit=self.batch_size,
        )

    def mark_processing(self, session: Session, item: ReminderTrigger) -> bool:
        # Fired and disarmed triggers are final
        return item.state == TriggerState.ARMED

    def process_item(self, session: Session, item: ReminderTrigger) -> None:
        outcome = self.scheduler.handle_fire(session, item)
        self.outcomes[outcome] += 1

    def mark_completed(self, session: Session, item: ReminderTrigger) -> None:
        pass

    def mark_failed(
        self, session: Session, item: ReminderTrigger, error: str, can_retry: bool
    ) -> None:
        """Disarm a trigger that could not be fired; a missed alert is not re-delivered late."""
        session.refresh(item)
        self.scheduler.disarm(session, item)
        logger.warning(
            "Disarmed trigger after failed fire",
            extra={"trigger_id": str(item.id), "reminder_id": str(item.reminder_id), "error": error},
        )

    def get_item_id(self, item: ReminderTrigger) -> UUID:
        return item.id

    def cycle_metadata(self) -> dict[str, Any]:
        return {outcome.value: count for outcome, count in self.outcomes.items()}
