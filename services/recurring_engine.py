"""
services/recurring_engine.py
----------------------------
Turns due recurring templates into transactions and moves their schedule on.

Per pass and per user:
    1. Snapshot the due templates (next_due <= now, not past end_at),
       earliest first, ties by template id.
    2. For each one: store a transaction dated `now` together with
       next_due advanced by one calendar unit from its previous value.
       The two writes are atomic, so a due cycle is recorded exactly once.
    3. A template whose write fails keeps its next_due and is retried on
       the next pass. One failing template never stops the others.

A template that is many periods behind produces one transaction per pass,
catching up gradually instead of backfilling every missed occurrence.
"""

from dataclasses import replace
from datetime import datetime

from models.recurring import RecurringTemplate
from models.results import ProcessingResult, TemplateFailure
from models.transaction import RECURRING_NOTE, RECURRING_SUFFIX, Transaction
from repositories.ledger_store import LedgerStore
from utils.logger import get_logger

logger = get_logger(__name__)


def materialize(template: RecurringTemplate, now: datetime) -> Transaction:
    """Build the transaction a due template produces at `now`."""
    return Transaction(
        user_id=template.user_id,
        category=template.category,
        amount=template.amount,
        occurred_at=now,
        description=f"{template.description}{RECURRING_SUFFIX}",
        notes=RECURRING_NOTE,
        recurring_template_id=template.id,
    )


class RecurringScheduleEngine:
    """Processes the due templates of one user per call."""

    def __init__(self, store: LedgerStore):
        self.store = store

    def due_templates(self, user_id: int, now: datetime) -> list[RecurringTemplate]:
        """
        The deterministic snapshot a pass works on.

        The store is asked for due templates; the predicate and the order are
        applied again here so an expired template is never processed even if
        the store returns it.
        """
        fetched = self.store.find_due_templates(user_id, now)
        due = [t for t in fetched if t.user_id == user_id and t.is_due(now)]
        return sorted(due, key=lambda t: (t.next_due, t.id if t.id is not None else -1))

    def process_due(self, user_id: int, now: datetime) -> ProcessingResult:
        """
        Materialize and advance every due template of `user_id`.

        Raises:
            Whatever the store raises while listing due templates; that is
            the only failure that escapes, and the Coordinator turns it
            into a PassAbort.
        """
        templates = self.due_templates(user_id, now)
        result = ProcessingResult()
        if not templates:
            logger.debug(f"No due templates for user {user_id}")
            return result

        logger.info(f"Processing {len(templates)} due template(s) for user {user_id}")
        for template in templates:
            self._process_one(template, now, result)

        logger.info(
            f"User {user_id}: {len(result.materialized)} materialized, "
            f"{len(result.failures)} failed"
        )
        return result

    def _process_one(self, template: RecurringTemplate, now: datetime, result: ProcessingResult) -> None:
        tx = materialize(template, now)
        advanced = replace(template, next_due=template.following_due())
        try:
            tx.id = self.store.record_occurrence(tx, advanced)
        except Exception as e:
            logger.error(f"Template #{template.id}: not materialized, schedule kept: {e}")
            result.failures.append(TemplateFailure(template.id, str(e)))
            return
        result.materialized.append(tx)
        result.advanced_templates.append(advanced)
