"""
repositories/ledger_store.py
----------------------------
The storage interface consumed by the processing engines, and its
PostgreSQL implementation on top of the table repositories.

Every method may block on I/O. Write methods raise on failure; the engines
turn those exceptions into per-item failure records.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from models.budget import Budget
from models.recurring import RecurringTemplate
from models.transaction import Transaction
from repositories.budget_repo import BudgetRepository
from repositories.recurring_repo import RecurringRepository
from repositories.transaction_repo import TransactionRepository


class LedgerStore(Protocol):
    """What the schedule and reconciliation engines need from storage."""

    def find_due_templates(self, user_id: int, as_of: datetime) -> list[RecurringTemplate]:
        ...

    def record_occurrence(self, tx: Transaction, advanced: RecurringTemplate) -> int:
        """
        Insert `tx` and save `advanced` (the template with its next_due moved
        on) atomically. Returns the new transaction id; on error neither
        change is kept.
        """
        ...

    def list_budgets(self, user_id: int) -> list[Budget]:
        ...

    def sum_transactions(self, user_id: int, category: str, since: datetime) -> Decimal:
        ...

    def sum_transactions_by_category(
        self, user_id: int, windows: dict[str, datetime]
    ) -> dict[str, Decimal]:
        ...

    def update_budget(self, budget: Budget) -> None:
        ...


class PostgresLedgerStore:
    """LedgerStore backed by the PostgreSQL repositories."""

    def __init__(
        self,
        transactions: TransactionRepository | None = None,
        templates: RecurringRepository | None = None,
        budgets: BudgetRepository | None = None,
    ):
        self.transactions = transactions or TransactionRepository()
        self.templates = templates or RecurringRepository()
        self.budgets = budgets or BudgetRepository()

    def find_due_templates(self, user_id: int, as_of: datetime) -> list[RecurringTemplate]:
        return self.templates.get_due(user_id, as_of)

    def record_occurrence(self, tx: Transaction, advanced: RecurringTemplate) -> int:
        return self.templates.record_occurrence(tx, advanced).id

    def list_budgets(self, user_id: int) -> list[Budget]:
        return self.budgets.get_all_budgets(user_id)

    def sum_transactions(self, user_id: int, category: str, since: datetime) -> Decimal:
        return self.transactions.sum_since(user_id, category, since)

    def sum_transactions_by_category(
        self, user_id: int, windows: dict[str, datetime]
    ) -> dict[str, Decimal]:
        return self.transactions.sum_by_category(user_id, windows)

    def update_budget(self, budget: Budget) -> None:
        self.budgets.update(budget)
