"""
models/recurring.py
-------------------
Domain model for recurring transaction templates and their frequency.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from dateutil.relativedelta import relativedelta


class Frequency(Enum):
    """How often a template produces a transaction."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"

    @classmethod
    def parse(cls, value) -> "Frequency":
        """Map a stored value to a member. Unrecognized values mean MONTHLY."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.MONTHLY

    def advance(self, instant: datetime) -> datetime:
        """
        Add exactly one calendar unit to ``instant``.

        Month addition clamps the day to the last day of the target month
        (Jan 31 -> Feb 28/29), which is how relativedelta behaves.
        """
        if self is Frequency.DAILY:
            return instant + relativedelta(days=1)
        if self is Frequency.WEEKLY:
            return instant + relativedelta(weeks=1)
        return instant + relativedelta(months=1)


@dataclass
class RecurringTemplate:
    """
    A recipe for producing transactions on a schedule.

    Attributes:
        id: Database primary key (None for new records).
        user_id: Owner (Telegram user ID).
        category: Category copied into each generated transaction.
        amount: Amount copied into each generated transaction.
        description: Description copied (with a marker) into each transaction.
        frequency: DAILY, WEEKLY or MONTHLY.
        start_at: First scheduled occurrence.
        next_due: Next scheduled occurrence; only ever moves forward.
        end_at: Last instant the template is active (None = open-ended).
        created_at: Timestamp when the record was created.
    """
    user_id: int
    category: str
    amount: Decimal
    description: str
    frequency: Frequency
    start_at: datetime
    next_due: Optional[datetime] = None
    end_at: Optional[datetime] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.frequency = Frequency.parse(self.frequency)
        if self.next_due is None:
            self.next_due = self.start_at

    def is_active(self, at: datetime) -> bool:
        return self.end_at is None or at <= self.end_at

    def is_due(self, at: datetime) -> bool:
        return self.next_due <= at and self.is_active(at)

    def following_due(self) -> datetime:
        """The occurrence after ``next_due``, by calendar arithmetic."""
        return self.frequency.advance(self.next_due)

    def __str__(self) -> str:
        end = f" until {self.end_at:%Y-%m-%d}" if self.end_at else ""
        return (
            f"{self.description}: {self.amount:.2f} [{self.category}] "
            f"({self.frequency.value.lower()}) - next: {self.next_due:%Y-%m-%d}{end}"
        )
