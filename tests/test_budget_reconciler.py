from decimal import Decimal

import pytest

from models.budget import CycleType
from services.budget_reconciler import BudgetReconciler
from tests.conftest import OWNER, T0, days


def test_spent_equals_ledger_sum_since_last_reset(store, reconciler):
    budget = store.add_budget(category="food", last_reset=T0)
    store.add_transaction("20.50", T0 - days(1))
    store.add_transaction("10.25", T0)
    store.add_transaction("5.00", T0 + days(2))
    store.add_transaction("99.00", T0 + days(2), category="travel")

    result = reconciler.reconcile(OWNER, now=T0 + days(3))

    assert store.budgets[budget.id].current_spent == Decimal("15.25")
    assert [b.id for b in result.updated_budgets] == [budget.id]
    assert result.reset_budgets == []


def test_threshold_crossing_is_reported_once(store, reconciler):
    budget = store.add_budget(limit_amount=Decimal("100"), threshold_percent=80, current_spent=Decimal("70"))
    store.add_transaction("85", T0 + days(1))

    result = reconciler.reconcile(OWNER, now=T0 + days(2))

    assert [b.id for b in result.threshold_crossed] == [budget.id]
    assert result.threshold_crossed[0].current_spent == Decimal("85")

    again = reconciler.reconcile(OWNER, now=T0 + days(3))
    assert again.threshold_crossed == []


def test_no_alert_when_already_above_threshold(store, reconciler):
    store.add_budget(limit_amount=Decimal("100"), threshold_percent=80, current_spent=Decimal("82"))
    store.add_transaction("95", T0 + days(1))

    result = reconciler.reconcile(OWNER, now=T0 + days(2))

    assert result.threshold_crossed == []


def test_landing_exactly_on_threshold_counts(store, reconciler):
    store.add_budget(limit_amount=Decimal("50"), threshold_percent=80)
    store.add_transaction("40", T0 + days(1))

    assert len(reconciler.reconcile(OWNER, now=T0 + days(1)).threshold_crossed) == 1


def test_monthly_budget_resets_after_31_days(store, reconciler):
    last_reset = T0
    now = T0 + days(31)
    budget = store.add_budget(cycle_type=CycleType.MONTHLY, last_reset=last_reset, current_spent=Decimal("60"))
    store.add_transaction("40", T0 + days(10))
    store.add_transaction("25", T0 + days(30))

    result = reconciler.reconcile(OWNER, now=now)

    saved = store.budgets[budget.id]
    assert saved.current_spent == Decimal("0")
    assert saved.last_reset == now
    assert [b.id for b in result.reset_budgets] == [budget.id]
    assert result.updated_budgets == []
    assert result.threshold_crossed == []


@pytest.mark.parametrize("cycle, elapsed, resets", [
    (CycleType.DAILY, 1, True),
    (CycleType.DAILY, 0.5, False),
    (CycleType.WEEKLY, 7, True),
    (CycleType.WEEKLY, 6.9, False),
    (CycleType.MONTHLY, 30, True),
    (CycleType.MONTHLY, 29.9, False),
])
def test_cycle_elapsed_uses_fixed_durations(store, reconciler, cycle, elapsed, resets):
    store.add_budget(cycle_type=cycle, last_reset=T0)

    result = reconciler.reconcile(OWNER, now=T0 + days(elapsed))

    assert bool(result.reset_budgets) is resets


def test_category_filter_limits_scope(store, reconciler):
    food = store.add_budget(category="food")
    travel = store.add_budget(category="travel")
    store.add_transaction("10", T0 + days(1), category="food")
    store.add_transaction("30", T0 + days(1), category="travel")

    result = reconciler.reconcile(OWNER, ["travel"], now=T0 + days(2))

    assert [b.id for b in result.updated_budgets] == [travel.id]
    assert store.budgets[food.id].current_spent == Decimal("0")
    assert store.budgets[travel.id].current_spent == Decimal("30")


def test_batched_and_per_budget_paths_agree(store):
    store.add_budget(category="food", last_reset=T0)
    store.add_budget(category="travel", last_reset=T0 + days(5))
    store.add_budget(category="fun", last_reset=T0 + days(2))
    for category in ("food", "travel", "fun"):
        store.add_transaction("10", T0 + days(1), category=category)
        store.add_transaction("7", T0 + days(6), category=category)

    now = T0 + days(7)
    batched = BudgetReconciler(store, batched=True).reconcile(OWNER, now=now)
    single = BudgetReconciler(store, batched=False).reconcile(OWNER, now=now)

    spent = lambda result: {b.category: b.current_spent for b in result.updated_budgets}
    assert spent(batched) == spent(single) == {
        "food": Decimal("17"), "travel": Decimal("7"), "fun": Decimal("7"),
    }


def test_batched_path_uses_one_grouped_query(store, reconciler):
    store.add_budget(category="food")
    store.add_budget(category="travel")

    reconciler.reconcile(OWNER, now=T0 + days(1))

    assert store.grouped_sum_calls == 1
    assert store.single_sum_calls == 0


def test_grouped_query_failure_falls_back_per_budget(store, reconciler):
    food = store.add_budget(category="food")
    travel = store.add_budget(category="travel")
    store.add_transaction("12", T0 + days(1), category="food")
    store.add_transaction("8", T0 + days(1), category="travel")
    store.fail_grouped_sum = True

    result = reconciler.reconcile(OWNER, now=T0 + days(2))

    assert result.failures == []
    assert store.single_sum_calls == 2
    assert store.budgets[food.id].current_spent == Decimal("12")
    assert store.budgets[travel.id].current_spent == Decimal("8")


def test_one_budget_failure_does_not_block_others(store, reconciler):
    broken = store.add_budget(category="food")
    healthy = store.add_budget(category="travel")
    store.add_transaction("15", T0 + days(1), category="travel")
    store.fail_budget_update_for.add(broken.id)

    result = reconciler.reconcile(OWNER, now=T0 + days(2))

    assert [f.budget_id for f in result.failures] == [broken.id]
    assert result.failures[0].category == "food"
    assert [b.id for b in result.updated_budgets] == [healthy.id]
    assert store.budgets[healthy.id].current_spent == Decimal("15")


def test_failed_reset_is_reported(store, reconciler):
    budget = store.add_budget(cycle_type=CycleType.DAILY, current_spent=Decimal("5"))
    store.fail_budget_update_for.add(budget.id)

    result = reconciler.reconcile(OWNER, now=T0 + days(2))

    assert result.reset_budgets == []
    assert [f.budget_id for f in result.failures] == [budget.id]
    assert store.budgets[budget.id].last_reset == T0


def test_reconcile_requires_now(reconciler):
    with pytest.raises(ValueError):
        reconciler.reconcile(OWNER)


def test_no_budgets_is_an_empty_result(reconciler):
    result = reconciler.reconcile(OWNER, now=T0)
    assert result.updated_budgets == [] and result.failures == []
