"""
models/results.py
-----------------
Outcome records produced by the processing engines and the Coordinator.
Failures are data here, not exceptions: callers log or retry them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.budget import Budget
from models.notification import NotificationIntent
from models.recurring import RecurringTemplate
from models.transaction import Transaction


class PassAbort(Exception):
    """A pass could not even begin (lock timeout, store unreachable)."""

    def __init__(self, owner: int, reason: str):
        super().__init__(f"Pass for user {owner} aborted: {reason}")
        self.owner = owner
        self.reason = reason


@dataclass
class TemplateFailure:
    """One template was not materialized; its schedule is unchanged."""
    template_id: Optional[int]
    cause: str


@dataclass
class BudgetReconciliationFailure:
    budget_id: Optional[int]
    category: str
    cause: str


@dataclass
class ProcessingResult:
    materialized: list[Transaction] = field(default_factory=list)
    advanced_templates: list[RecurringTemplate] = field(default_factory=list)
    failures: list[TemplateFailure] = field(default_factory=list)

    @property
    def touched_categories(self) -> set[str]:
        return {tx.category for tx in self.materialized}


@dataclass
class ReconciliationResult:
    reset_budgets: list[Budget] = field(default_factory=list)
    updated_budgets: list[Budget] = field(default_factory=list)
    threshold_crossed: list[Budget] = field(default_factory=list)
    failures: list[BudgetReconciliationFailure] = field(default_factory=list)


@dataclass
class PassReport:
    """Everything one Coordinator pass did, including what it could not do."""
    owner: int
    now: datetime
    processing: ProcessingResult = field(default_factory=ProcessingResult)
    reconciliation: ReconciliationResult = field(default_factory=ReconciliationResult)
    intents: list[NotificationIntent] = field(default_factory=list)
    error: Optional[PassAbort] = None

    @property
    def aborted(self) -> bool:
        return self.error is not None

    def summary(self) -> str:
        if self.error is not None:
            return f"⛔ Pass aborted: {self.error.reason}"
        lines = [
            f"🔁 Recurring inserted: {len(self.processing.materialized)}",
            f"💰 Budgets updated: {len(self.reconciliation.updated_budgets)}",
            f"♻️ Budgets reset: {len(self.reconciliation.reset_budgets)}",
        ]
        failures = len(self.processing.failures) + len(self.reconciliation.failures)
        if failures:
            lines.append(f"⚠️ Failures (retried next pass): {failures}")
        return "\n".join(lines)
