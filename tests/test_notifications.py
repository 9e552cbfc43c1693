import asyncio
from decimal import Decimal

import pytest

from models.budget import Budget, CycleType
from models.notification import BudgetThresholdIntent, RecurringInsertedIntent
from models.results import ProcessingResult, ReconciliationResult
from models.transaction import Transaction
from services.notification_intents import collect_intents, recurring_inserted, threshold_reached
from services.notifier import TelegramNotifier, render
from tests.conftest import OWNER, T0


def make_budget(spent="85"):
    return Budget(
        user_id=OWNER, category="food", limit_amount=Decimal("100"),
        cycle_type=CycleType.MONTHLY, last_reset=T0, current_spent=Decimal(spent),
    )


def test_intent_mapping_is_pure():
    tx = Transaction(user_id=OWNER, category="rent", amount=Decimal("800"), occurred_at=T0,
                     description="Rent (Recurring)")
    budget = make_budget()

    assert recurring_inserted(tx) == RecurringInsertedIntent(OWNER, "rent", "Rent (Recurring)")
    assert threshold_reached(budget) == BudgetThresholdIntent(OWNER, "food", Decimal("85"), Decimal("100"))
    assert budget.current_spent == Decimal("85")


def test_collect_intents_orders_inserts_before_alerts():
    tx = Transaction(user_id=OWNER, category="food", amount=Decimal("5"), occurred_at=T0, description="Coffee")
    intents = collect_intents(
        ProcessingResult(materialized=[tx]),
        ReconciliationResult(threshold_crossed=[make_budget()]),
    )
    assert [type(i) for i in intents] == [RecurringInsertedIntent, BudgetThresholdIntent]


def test_render_threshold_message():
    text = render(BudgetThresholdIntent(OWNER, "food", Decimal("85"), Decimal("100")))
    assert "food" in text
    assert "85.00 of 100.00 (85%)" in text


def test_render_rejects_unknown_intents():
    with pytest.raises(TypeError):
        render("not an intent")


class FlakyBot:
    def __init__(self):
        self.sent = []

    async def send_message(self, chat_id, text, parse_mode=None):
        if "rent" in text:
            raise ConnectionError("telegram unreachable")
        self.sent.append((chat_id, text))


def test_delivery_failures_are_not_fatal():
    bot = FlakyBot()
    notifier = TelegramNotifier(bot)
    intents = [
        RecurringInsertedIntent(OWNER, "rent", "Rent (Recurring)"),
        RecurringInsertedIntent(OWNER, "gym", "Gym (Recurring)"),
    ]

    delivered = asyncio.run(notifier.deliver_all(intents))

    assert delivered == 1
    assert bot.sent[0][0] == OWNER
