"""
services/coordinator.py
-----------------------
Runs one processing pass for a user:

    due templates -> materialize + advance -> reconcile touched budgets
    -> notification intents

Only one pass per user runs at a time. A second trigger for the same user
waits for the first to finish (up to the configured timeout); passes for
different users never wait on each other. Intents are returned, not
delivered, so delivery happens after the lock is released.
"""

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from config import BATCHED_RECONCILIATION, PASS_LOCK_TIMEOUT_SECONDS
from models.results import BudgetReconciliationFailure, PassAbort, PassReport, ReconciliationResult
from repositories.ledger_store import LedgerStore, PostgresLedgerStore
from services.budget_reconciler import BudgetReconciler
from services.notification_intents import collect_intents
from services.recurring_engine import RecurringScheduleEngine
from utils.clock import Clock, SystemClock
from utils.logger import get_logger

logger = get_logger(__name__)


class OwnerLocks:
    """One mutex per user, created on first use."""

    def __init__(self):
        self._registry = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def lock_for(self, user_id: int) -> threading.Lock:
        with self._registry:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, user_id: int, timeout: Optional[float] = None):
        """
        Hold the user's lock for the duration of the block.

        Raises:
            PassAbort: If the lock could not be acquired within `timeout`.
        """
        lock = self.lock_for(user_id)
        acquired = lock.acquire(timeout=-1 if timeout is None else timeout)
        if not acquired:
            raise PassAbort(user_id, f"another pass is still running after {timeout}s")
        try:
            yield
        finally:
            lock.release()


class PassCoordinator:
    """Entry point for periodic and manual processing passes."""

    def __init__(
        self,
        schedule_engine: RecurringScheduleEngine,
        reconciler: BudgetReconciler,
        clock: Optional[Clock] = None,
        locks: Optional[OwnerLocks] = None,
        lock_timeout: Optional[float] = PASS_LOCK_TIMEOUT_SECONDS,
    ):
        self.schedule_engine = schedule_engine
        self.reconciler = reconciler
        self.clock = clock or SystemClock()
        self.locks = locks or OwnerLocks()
        self.lock_timeout = lock_timeout

    def run_pass_now(self, user_id: int) -> PassReport:
        """Manual trigger: run a pass at the clock's current instant."""
        return self.run_pass(user_id, self.clock.now())

    def run_pass(self, user_id: int, now: datetime) -> PassReport:
        """
        Run one pass for `user_id` at `now`. Never raises: a pass that
        cannot start comes back as an empty report carrying a PassAbort.
        """
        try:
            with self.locks.hold(user_id, self.lock_timeout):
                return self._run_locked(user_id, now)
        except PassAbort as abort:
            logger.warning(str(abort))
            return PassReport(owner=user_id, now=now, error=abort)

    def _run_locked(self, user_id: int, now: datetime) -> PassReport:
        try:
            processing = self.schedule_engine.process_due(user_id, now)
        except Exception as e:
            raise PassAbort(user_id, f"could not list due templates: {e}") from e

        report = PassReport(owner=user_id, now=now, processing=processing)
        touched = processing.touched_categories
        if touched:
            try:
                report.reconciliation = self.reconciler.reconcile(user_id, touched, now)
            except Exception as e:
                # Materializations are committed; keep them and retry the
                # budgets on the next pass.
                logger.error(f"Could not list budgets for user {user_id}: {e}")
                report.reconciliation = ReconciliationResult(failures=[
                    BudgetReconciliationFailure(None, category, str(e)) for category in sorted(touched)
                ])

        report.intents = collect_intents(report.processing, report.reconciliation)
        logger.info(
            f"Pass for user {user_id} at {now:%Y-%m-%d %H:%M}: "
            f"{len(processing.materialized)} inserted, {len(report.intents)} intent(s)"
        )
        return report

    def reconcile_now(self, user_id: int, categories=None) -> ReconciliationResult:
        """
        Reconcile budgets outside a pass (after a manual edit, or before
        showing status), under the same per-user lock as a pass.

        Raises:
            PassAbort: If a running pass holds the lock past the timeout.
        """
        with self.locks.hold(user_id, self.lock_timeout):
            return self.reconciler.reconcile(user_id, categories, self.clock.now())


def build_coordinator(store: Optional[LedgerStore] = None, clock: Optional[Clock] = None) -> PassCoordinator:
    """Wire a coordinator over the PostgreSQL ledger with configured batching."""
    store = store or PostgresLedgerStore()
    return PassCoordinator(
        RecurringScheduleEngine(store),
        BudgetReconciler(store, batched=BATCHED_RECONCILIATION),
        clock=clock,
    )
