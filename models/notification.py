"""
models/notification.py
----------------------
Notification intents: what should be told to the user, not how.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Union


@dataclass(frozen=True)
class RecurringInsertedIntent:
    user_id: int
    category: str
    description: str


@dataclass(frozen=True)
class BudgetThresholdIntent:
    user_id: int
    category: str
    spent: Decimal
    limit: Decimal


NotificationIntent = Union[RecurringInsertedIntent, BudgetThresholdIntent]
