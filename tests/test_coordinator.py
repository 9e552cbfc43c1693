import asyncio
import threading
import time
from decimal import Decimal

from main import run_passes

from models.notification import BudgetThresholdIntent, RecurringInsertedIntent
from models.recurring import Frequency
from services.budget_reconciler import BudgetReconciler
from services.coordinator import OwnerLocks, PassCoordinator
from services.recurring_engine import RecurringScheduleEngine
from tests.conftest import OTHER_OWNER, OWNER, T0, days


def test_pass_materializes_reconciles_and_emits_intents(store, coordinator):
    store.add_template(category="rent", description="Rent", amount=Decimal("900"), next_due=T0)
    rent = store.add_budget(category="rent", limit_amount=Decimal("1000"), last_reset=T0 - days(1))
    food = store.add_budget(category="food", last_reset=T0 - days(1))

    report = coordinator.run_pass(OWNER, T0)

    assert not report.aborted
    assert len(report.processing.materialized) == 1
    assert [b.id for b in report.reconciliation.updated_budgets] == [rent.id]
    assert store.budgets[rent.id].current_spent == Decimal("900")
    assert store.budgets[food.id].current_spent == Decimal("0")
    assert report.intents == [
        RecurringInsertedIntent(OWNER, "rent", "Rent (Recurring)"),
        BudgetThresholdIntent(OWNER, "rent", Decimal("900"), Decimal("1000")),
    ]


def test_pass_without_due_templates_skips_reconciliation(store, coordinator):
    budget = store.add_budget(current_spent=Decimal("3"))
    store.add_transaction("50", T0 + days(1))

    report = coordinator.run_pass(OWNER, T0 + days(2))

    assert report.intents == []
    assert report.reconciliation.updated_budgets == []
    assert store.budgets[budget.id].current_spent == Decimal("3")


def test_run_pass_now_uses_the_injected_clock(store, coordinator, clock):
    template = store.add_template(frequency=Frequency.DAILY, next_due=T0 + days(1))

    assert coordinator.run_pass_now(OWNER).processing.materialized == []

    clock.advance(days(1))
    report = coordinator.run_pass_now(OWNER)
    assert report.now == T0 + days(1)
    assert len(report.processing.materialized) == 1
    assert store.templates[template.id].next_due == T0 + days(2)


def test_listing_failure_aborts_with_empty_report(store, coordinator):
    store.add_template(next_due=T0)
    store.fail_listing = True

    report = coordinator.run_pass(OWNER, T0)

    assert report.aborted
    assert "could not list due templates" in report.error.reason
    assert report.processing.materialized == []
    assert report.intents == []
    assert store.transactions_for() == []


def test_budget_listing_failure_keeps_materializations(store, coordinator):
    store.add_template(category="rent", next_due=T0)
    store.fail_list_budgets = True

    report = coordinator.run_pass(OWNER, T0)

    assert not report.aborted
    assert len(report.processing.materialized) == 1
    assert [f.category for f in report.reconciliation.failures] == ["rent"]
    assert len(report.intents) == 1


def test_template_failure_is_reported_not_raised(store, coordinator):
    broken = store.add_template(next_due=T0)
    store.fail_insert_for.add(broken.id)

    report = coordinator.run_pass(OWNER, T0)

    assert not report.aborted
    assert [f.template_id for f in report.processing.failures] == [broken.id]
    assert report.intents == []
    assert "Failures" in report.summary()


def test_concurrent_passes_do_not_double_materialize(store, coordinator):
    for i in range(5):
        store.add_template(description=f"bill {i}", frequency=Frequency.DAILY, next_due=T0 - days(0.5))
    store.insert_delay = 0.01
    now = T0

    reports = []
    threads = [
        threading.Thread(target=lambda: reports.append(coordinator.run_pass(OWNER, now)))
        for _ in range(4)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert all(not r.aborted for r in reports)
    assert sum(len(r.processing.materialized) for r in reports) == 5
    assert len(store.transactions_for()) == 5
    descriptions = sorted(tx.description for tx in store.transactions_for())
    assert descriptions == sorted(f"bill {i} (Recurring)" for i in range(5))


def test_busy_owner_lock_times_out_into_pass_abort(store):
    locks = OwnerLocks()
    coordinator = PassCoordinator(
        RecurringScheduleEngine(store), BudgetReconciler(store), locks=locks, lock_timeout=0.05,
    )
    store.add_template(next_due=T0)

    with locks.hold(OWNER):
        report = coordinator.run_pass(OWNER, T0)

    assert report.aborted
    assert store.transactions_for() == []


def test_other_owners_are_not_blocked(store):
    locks = OwnerLocks()
    coordinator = PassCoordinator(
        RecurringScheduleEngine(store), BudgetReconciler(store), locks=locks, lock_timeout=0.05,
    )
    store.add_template(user_id=OTHER_OWNER, next_due=T0)

    with locks.hold(OWNER):
        report = coordinator.run_pass(OTHER_OWNER, T0)

    assert not report.aborted
    assert len(store.transactions_for(OTHER_OWNER)) == 1


def test_owner_locks_are_reused_per_owner():
    locks = OwnerLocks()
    assert locks.lock_for(OWNER) is locks.lock_for(OWNER)
    assert locks.lock_for(OWNER) is not locks.lock_for(OTHER_OWNER)


def test_reconcile_now_rolls_over_elapsed_cycles(store, coordinator, clock):
    budget = store.add_budget(current_spent=Decimal("40"), last_reset=T0)
    clock.advance(days(31))

    result = coordinator.reconcile_now(OWNER)

    assert [b.id for b in result.reset_budgets] == [budget.id]
    assert store.budgets[budget.id].last_reset == T0 + days(31)


def test_scheduled_passes_never_exceed_the_concurrency_limit():
    running = 0
    peak = 0
    guard = threading.Lock()

    class SlowCoordinator:
        def run_pass(self, owner, now):
            nonlocal running, peak
            with guard:
                running += 1
                peak = max(peak, running)
            time.sleep(0.02)
            with guard:
                running -= 1
            return owner

    owners = list(range(12))
    reports = asyncio.run(run_passes(SlowCoordinator(), owners, T0, limit=3))

    assert reports == owners
    assert 1 <= peak <= 3
