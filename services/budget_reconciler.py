"""
services/budget_reconciler.py
-----------------------------
Keeps each budget's current_spent equal to the ledger.

For every budget in scope:
    - cycle elapsed (fixed 1/7/30 day lengths): reset to 0 from `now`;
    - otherwise: current_spent = sum of the category since last_reset.
Then a budget whose spent moved from below its alert threshold to at or
above it is reported in `threshold_crossed`.

Sums for several budgets are fetched with one grouped query when batching
is enabled, falling back to one query per budget if that fails.
"""

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from models.budget import Budget
from models.results import BudgetReconciliationFailure, ReconciliationResult
from repositories.ledger_store import LedgerStore
from utils.logger import get_logger

logger = get_logger(__name__)


class BudgetReconciler:
    """Recomputes spent-to-date for a user's budgets."""

    def __init__(self, store: LedgerStore, batched: bool = True):
        self.store = store
        self.batched = batched

    def reconcile(
        self,
        user_id: int,
        categories: Optional[Iterable[str]] = None,
        now: Optional[datetime] = None,
    ) -> ReconciliationResult:
        """
        Reconcile the user's budgets.

        Args:
            user_id: Owner whose budgets are reconciled.
            categories: Only budgets in these categories; None means all.
            now: Reference instant for cycle checks and resets.

        Raises:
            ValueError: If `now` is not given.
            Whatever the store raises while listing budgets.
        """
        if now is None:
            raise ValueError("reconcile() needs the reference instant `now`")

        result = ReconciliationResult()
        budgets = self.store.list_budgets(user_id)
        if categories is not None:
            wanted = set(categories)
            budgets = [b for b in budgets if b.category in wanted]
        if not budgets:
            return result

        to_sum: list[Budget] = []
        for budget in budgets:
            if budget.needs_reset(now):
                self._reset(budget, now, result)
            else:
                to_sum.append(budget)

        totals = self._batched_totals(user_id, to_sum)
        for budget in to_sum:
            self._recompute(budget, totals, result)

        logger.info(
            f"Reconciled user {user_id}: {len(result.updated_budgets)} updated, "
            f"{len(result.reset_budgets)} reset, {len(result.threshold_crossed)} at threshold, "
            f"{len(result.failures)} failed"
        )
        return result

    def _reset(self, budget: Budget, now: datetime, result: ReconciliationResult) -> None:
        fresh = replace(budget)
        fresh.reset(now)
        try:
            self.store.update_budget(fresh)
        except Exception as e:
            self._fail(budget, e, result)
            return
        logger.info(f"Budget '{budget.category}' ({budget.cycle_type.value}) reset for a new cycle")
        result.reset_budgets.append(fresh)

    def _batched_totals(self, user_id: int, budgets: list[Budget]) -> Optional[dict[str, Decimal]]:
        """
        One grouped aggregation for all budgets, or None to sum one by one.

        Each category keeps its own since-instant, so the totals equal the
        per-budget sums exactly.
        """
        if not self.batched or len(budgets) < 2:
            return None
        windows = {b.category: b.last_reset for b in budgets}
        try:
            return self.store.sum_transactions_by_category(user_id, windows)
        except Exception as e:
            logger.warning(f"Grouped sum failed for user {user_id}, summing per budget: {e}")
            return None

    def _recompute(
        self,
        budget: Budget,
        totals: Optional[dict[str, Decimal]],
        result: ReconciliationResult,
    ) -> None:
        was_at_threshold = budget.is_at_threshold()
        try:
            if totals is not None and budget.category in totals:
                spent = totals[budget.category]
            else:
                spent = self.store.sum_transactions(budget.user_id, budget.category, budget.last_reset)
            updated = replace(budget, current_spent=Decimal(spent))
            self.store.update_budget(updated)
        except Exception as e:
            self._fail(budget, e, result)
            return

        result.updated_budgets.append(updated)
        if not was_at_threshold and updated.is_at_threshold():
            logger.info(
                f"Budget '{updated.category}' reached {updated.threshold_percent}% "
                f"({updated.current_spent:.2f} / {updated.limit_amount:.2f})"
            )
            result.threshold_crossed.append(updated)

    @staticmethod
    def _fail(budget: Budget, error: Exception, result: ReconciliationResult) -> None:
        logger.error(f"Budget #{budget.id} '{budget.category}' reconciliation failed: {error}")
        result.failures.append(BudgetReconciliationFailure(budget.id, budget.category, str(error)))
