"""
utils/validators.py
-------------------
Checks for user-typed values that are about to be stored.

The limits mirror the column types in db/init_db.py: amounts are
NUMERIC(12,2) and categories VARCHAR(50). A value the database would round
or reject is refused here, so the stored ledger always equals what the user
was told was saved.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation

MAX_CATEGORY_LENGTH = 50
AMOUNT_PLACES = Decimal("0.01")
MAX_AMOUNT = Decimal("9999999999.99")


def parse_amount(text: str, allow_zero: bool = True) -> Decimal:
    """
    Parse a money amount with at most two decimal places.

    Raises:
        ValueError: With a message fit to show the user.
    """
    try:
        value = Decimal(str(text).strip())
    except InvalidOperation:
        raise ValueError(f"'{text}' is not a valid amount.") from None
    if not value.is_finite():
        raise ValueError(f"'{text}' is not a valid amount.")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValueError("Amount must be zero or positive." if allow_zero else "Amount must be positive.")
    if value != value.quantize(AMOUNT_PLACES):
        raise ValueError("Amounts can have at most two decimal places.")
    if value > MAX_AMOUNT:
        raise ValueError("That amount is too large.")
    return value


def clean_category(text: str) -> str:
    """
    Normalize a category name (trimmed, lower case).

    Raises:
        ValueError: If the name is empty or longer than the column allows.
    """
    category = text.strip().lower()
    if not category:
        raise ValueError("A category is required.")
    if len(category) > MAX_CATEGORY_LENGTH:
        raise ValueError(f"Category names can be at most {MAX_CATEGORY_LENGTH} characters.")
    return category


def parse_day(text: str) -> datetime:
    """YYYY-MM-DD as midnight UTC. Raises ValueError on bad input."""
    return datetime.combine(date.fromisoformat(text.strip()), time.min, tzinfo=timezone.utc)
