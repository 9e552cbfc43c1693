"""
models/transaction.py
---------------------
Domain model for spending transactions.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

RECURRING_SUFFIX = " (Recurring)"
RECURRING_NOTE = "Auto-generated from recurring expense"


@dataclass
class Transaction:
    """
    Represents a single spending record.

    Attributes:
        id: Database primary key (None for new records).
        user_id: Owner (Telegram user ID).
        category: Free-form spending label; matched to budgets by equality.
        amount: Non-negative amount, currency-agnostic.
        occurred_at: Instant the spending happened.
        description: Human-readable text.
        notes: Optional free text; provenance marker for generated rows.
        recurring_template_id: Set when the row was materialized from a
            recurring template. Informational only.
        created_at: Timestamp when the record was created.
    """
    user_id: int
    category: str
    amount: Decimal
    occurred_at: datetime
    description: str = ""
    notes: Optional[str] = None
    recurring_template_id: Optional[int] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def is_generated(self) -> bool:
        """True if a recurring template produced this transaction."""
        return self.recurring_template_id is not None

    def __str__(self) -> str:
        marker = "🔁 " if self.is_generated else ""
        return f"{marker}{self.amount:.2f} | {self.category} | {self.occurred_at:%Y-%m-%d}"
