"""
services/notification_intents.py
--------------------------------
Pure mapping from engine outcomes to notification intents.
Nothing here sends anything; delivery belongs to the notifier.
"""

from models.budget import Budget
from models.notification import BudgetThresholdIntent, NotificationIntent, RecurringInsertedIntent
from models.results import ProcessingResult, ReconciliationResult
from models.transaction import Transaction


def recurring_inserted(tx: Transaction) -> RecurringInsertedIntent:
    return RecurringInsertedIntent(user_id=tx.user_id, category=tx.category, description=tx.description)


def threshold_reached(budget: Budget) -> BudgetThresholdIntent:
    return BudgetThresholdIntent(
        user_id=budget.user_id,
        category=budget.category,
        spent=budget.current_spent,
        limit=budget.limit_amount,
    )


def collect_intents(
    processing: ProcessingResult, reconciliation: ReconciliationResult
) -> list[NotificationIntent]:
    """One intent per materialized transaction, then one per budget crossing its threshold."""
    intents: list[NotificationIntent] = [recurring_inserted(tx) for tx in processing.materialized]
    intents.extend(threshold_reached(b) for b in reconciliation.threshold_crossed)
    return intents
