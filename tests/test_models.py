from datetime import datetime, timedelta, timezone
from decimal import Decimal

from models.budget import Budget, CycleType
from models.recurring import Frequency, RecurringTemplate
from tests.conftest import OWNER, T0


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_daily_and_weekly_advance():
    assert Frequency.DAILY.advance(utc(2026, 2, 28, 9)) == utc(2026, 3, 1, 9)
    assert Frequency.WEEKLY.advance(utc(2026, 12, 29, 9)) == utc(2027, 1, 5, 9)


def test_monthly_advance_is_calendar_based():
    assert Frequency.MONTHLY.advance(utc(2026, 1, 10, 9)) == utc(2026, 2, 10, 9)
    assert Frequency.MONTHLY.advance(utc(2026, 12, 15)) == utc(2027, 1, 15)


def test_monthly_advance_clamps_to_month_end():
    assert Frequency.MONTHLY.advance(utc(2026, 1, 31)) == utc(2026, 2, 28)
    assert Frequency.MONTHLY.advance(utc(2028, 1, 31)) == utc(2028, 2, 29)
    assert Frequency.MONTHLY.advance(utc(2026, 3, 31)) == utc(2026, 4, 30)


def test_unknown_values_default_to_monthly():
    assert Frequency.parse("YEARLY") is Frequency.MONTHLY
    assert Frequency.parse("weekly") is Frequency.WEEKLY
    assert CycleType.parse("fortnightly") is CycleType.MONTHLY
    assert CycleType.parse(CycleType.DAILY) is CycleType.DAILY


def test_template_next_due_starts_at_start():
    template = RecurringTemplate(
        user_id=OWNER, category="rent", amount=Decimal("800"),
        description="Rent", frequency="MONTHLY", start_at=T0,
    )
    assert template.next_due == T0
    assert template.frequency is Frequency.MONTHLY


def test_template_due_and_active():
    template = RecurringTemplate(
        user_id=OWNER, category="gym", amount=Decimal("30"), description="Gym",
        frequency=Frequency.WEEKLY, start_at=T0, end_at=T0 + timedelta(days=10),
    )
    assert not template.is_due(T0 - timedelta(seconds=1))
    assert template.is_due(T0)
    assert template.is_active(T0 + timedelta(days=10))
    assert not template.is_active(T0 + timedelta(days=10, seconds=1))
    assert not template.is_due(T0 + timedelta(days=11))


def test_cycle_durations_are_fixed_lengths():
    assert CycleType.DAILY.duration == timedelta(hours=24)
    assert CycleType.WEEKLY.duration == timedelta(days=7)
    assert CycleType.MONTHLY.duration == timedelta(days=30)


def test_budget_needs_reset_at_exact_cycle_boundary():
    budget = Budget(
        user_id=OWNER, category="food", limit_amount=Decimal("100"),
        cycle_type=CycleType.WEEKLY, last_reset=T0,
    )
    assert not budget.needs_reset(T0 + timedelta(days=7) - timedelta(seconds=1))
    assert budget.needs_reset(T0 + timedelta(days=7))


def test_budget_threshold_and_progress():
    budget = Budget(
        user_id=OWNER, category="food", limit_amount=Decimal("100"),
        cycle_type=CycleType.MONTHLY, last_reset=T0, current_spent=Decimal("79.99"),
    )
    assert budget.threshold_percent == 80
    assert not budget.is_at_threshold()
    assert budget.is_at_threshold(Decimal("80"))
    assert budget.progress_percent == 79
    assert budget.remaining == Decimal("20.01")
    assert not budget.is_over_limit


def test_budget_reset_clears_spent():
    budget = Budget(
        user_id=OWNER, category="food", limit_amount=Decimal("100"),
        cycle_type=CycleType.DAILY, last_reset=T0, current_spent=Decimal("42"),
    )
    later = T0 + timedelta(days=2)
    budget.reset(later)
    assert budget.current_spent == Decimal("0")
    assert budget.last_reset == later
