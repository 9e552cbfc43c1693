"""
models/budget.py
----------------
Domain model for per-category spending budgets and their cycles.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

DEFAULT_THRESHOLD_PERCENT = 80


class CycleType(Enum):
    """Window over which a budget accumulates spending before it resets."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"

    @classmethod
    def parse(cls, value) -> "CycleType":
        """Map a stored value to a member. Unrecognized values mean MONTHLY."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.MONTHLY

    @property
    def duration(self) -> timedelta:
        """Fixed-length approximation of the cycle (a month is 30 days)."""
        if self is CycleType.DAILY:
            return timedelta(days=1)
        if self is CycleType.WEEKLY:
            return timedelta(days=7)
        return timedelta(days=30)


@dataclass
class Budget:
    """
    A spending cap for one (owner, category) pair.

    Attributes:
        id: Database primary key (None for new records).
        user_id: Owner (Telegram user ID).
        category: Category the cap applies to; unique per owner.
        limit_amount: The cap, strictly positive.
        cycle_type: DAILY, WEEKLY or MONTHLY.
        last_reset: Start of the current cycle.
        current_spent: Spending since ``last_reset`` as of the last reconcile.
        threshold_percent: Alert level, 0-100.
    """
    user_id: int
    category: str
    limit_amount: Decimal
    cycle_type: CycleType
    last_reset: datetime
    current_spent: Decimal = Decimal("0")
    threshold_percent: int = DEFAULT_THRESHOLD_PERCENT
    id: Optional[int] = None

    def __post_init__(self):
        self.cycle_type = CycleType.parse(self.cycle_type)

    def needs_reset(self, now: datetime) -> bool:
        return now - self.last_reset >= self.cycle_type.duration

    def reset(self, now: datetime) -> None:
        self.current_spent = Decimal("0")
        self.last_reset = now

    def is_at_threshold(self, spent: Optional[Decimal] = None) -> bool:
        """
        True when ``spent`` (default: current_spent) is at or above the alert
        level. Compared as spent * 100 >= threshold * limit to stay exact.
        """
        if self.limit_amount <= 0:
            return False
        if spent is None:
            spent = self.current_spent
        return spent * 100 >= self.threshold_percent * self.limit_amount

    @property
    def progress_percent(self) -> int:
        if self.limit_amount <= 0:
            return 0
        return int(self.current_spent * 100 / self.limit_amount)

    @property
    def is_over_limit(self) -> bool:
        return self.current_spent > self.limit_amount

    @property
    def remaining(self) -> Decimal:
        return self.limit_amount - self.current_spent

    def __str__(self) -> str:
        return (
            f"{self.category}: {self.current_spent:.2f} / {self.limit_amount:.2f} "
            f"({self.cycle_type.value.lower()}, alert at {self.threshold_percent}%)"
        )
