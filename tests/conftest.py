import threading
import time
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from models.budget import Budget, CycleType
from models.recurring import Frequency, RecurringTemplate
from models.transaction import Transaction
from services.budget_reconciler import BudgetReconciler
from services.coordinator import PassCoordinator
from services.recurring_engine import RecurringScheduleEngine
from utils.clock import FixedClock

OWNER = 1001
OTHER_OWNER = 2002
T0 = datetime(2026, 1, 10, 9, 0, tzinfo=timezone.utc)


class StoreError(RuntimeError):
    pass


class InMemoryLedgerStore:
    """LedgerStore kept in dicts, with switches to make individual calls fail."""

    def __init__(self):
        self._lock = threading.Lock()
        self.templates: dict[int, RecurringTemplate] = {}
        self.transactions: dict[int, Transaction] = {}
        self.budgets: dict[int, Budget] = {}
        self._next_id = 1
        self.fail_listing = False
        self.fail_list_budgets = False
        self.fail_grouped_sum = False
        self.fail_insert_for: set[int] = set()
        self.fail_advance_for: set[int] = set()
        self.fail_budget_update_for: set[int] = set()
        self.insert_delay = 0.0
        self.grouped_sum_calls = 0
        self.single_sum_calls = 0

    def _new_id(self) -> int:
        with self._lock:
            value = self._next_id
            self._next_id += 1
            return value

    # ── seeding ──

    def add_template(self, **kwargs) -> RecurringTemplate:
        defaults = dict(
            user_id=OWNER, category="rent", amount=Decimal("500.00"),
            description="Rent", frequency=Frequency.MONTHLY, start_at=T0,
        )
        defaults.update(kwargs)
        template = RecurringTemplate(**defaults)
        template.id = kwargs.get("id") or self._new_id()
        self.templates[template.id] = template
        return replace(template)

    def add_transaction(self, amount: str, occurred_at: datetime, category="food", user_id=OWNER) -> Transaction:
        tx = Transaction(user_id=user_id, category=category, amount=Decimal(amount), occurred_at=occurred_at)
        tx.id = self._new_id()
        self.transactions[tx.id] = tx
        return tx

    def add_budget(self, **kwargs) -> Budget:
        defaults = dict(
            user_id=OWNER, category="food", limit_amount=Decimal("100"),
            cycle_type=CycleType.MONTHLY, last_reset=T0,
        )
        defaults.update(kwargs)
        budget = Budget(**defaults)
        budget.id = self._new_id()
        self.budgets[budget.id] = budget
        return replace(budget)

    def transactions_for(self, user_id=OWNER) -> list[Transaction]:
        return [t for t in self.transactions.values() if t.user_id == user_id]

    # ── LedgerStore ──

    def find_due_templates(self, user_id, as_of):
        if self.fail_listing:
            raise StoreError("database unreachable")
        due = [
            replace(t) for t in self.templates.values()
            if t.user_id == user_id and t.next_due <= as_of and (t.end_at is None or t.end_at >= as_of)
        ]
        return sorted(due, key=lambda t: (t.next_due, t.id))

    def record_occurrence(self, tx, advanced):
        if tx.recurring_template_id in self.fail_insert_for:
            raise StoreError(f"insert failed for template {tx.recurring_template_id}")
        if self.insert_delay:
            time.sleep(self.insert_delay)
        tx_id = self._new_id()
        self.transactions[tx_id] = replace(tx, id=tx_id)
        if advanced.id in self.fail_advance_for or advanced.id not in self.templates:
            # the schedule write failed, so the insert is rolled back with it
            del self.transactions[tx_id]
            raise StoreError(f"update failed for template {advanced.id}")
        self.templates[advanced.id] = replace(advanced)
        return tx_id

    def list_budgets(self, user_id):
        if self.fail_list_budgets:
            raise StoreError("budgets unavailable")
        return [replace(b) for b in self.budgets.values() if b.user_id == user_id]

    def sum_transactions(self, user_id, category, since):
        self.single_sum_calls += 1
        return sum(
            (t.amount for t in self.transactions.values()
             if t.user_id == user_id and t.category == category and t.occurred_at >= since),
            Decimal("0"),
        )

    def sum_transactions_by_category(self, user_id, windows):
        self.grouped_sum_calls += 1
        if self.fail_grouped_sum:
            raise StoreError("grouped query failed")
        lower_bound = min(windows.values())
        totals = {category: Decimal("0") for category in windows}
        for t in self.transactions.values():
            if t.user_id != user_id or t.category not in windows or t.occurred_at < lower_bound:
                continue
            if t.occurred_at >= windows[t.category]:
                totals[t.category] += t.amount
        return totals

    def update_budget(self, budget):
        if budget.id in self.fail_budget_update_for:
            raise StoreError(f"update failed for budget {budget.id}")
        self.budgets[budget.id] = replace(budget)


@pytest.fixture
def store():
    return InMemoryLedgerStore()


@pytest.fixture
def clock():
    return FixedClock(T0)


@pytest.fixture
def engine(store):
    return RecurringScheduleEngine(store)


@pytest.fixture
def reconciler(store):
    return BudgetReconciler(store, batched=True)


@pytest.fixture
def coordinator(store, clock):
    return PassCoordinator(
        RecurringScheduleEngine(store),
        BudgetReconciler(store, batched=True),
        clock=clock,
        lock_timeout=5,
    )


def days(n: float) -> timedelta:
    return timedelta(days=n)
