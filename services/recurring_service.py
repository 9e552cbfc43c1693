"""
services/recurring_service.py
------------------------------
Business logic for creating, listing and deleting recurring templates.
Processing of due templates lives in services/recurring_engine.py.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from models.recurring import Frequency, RecurringTemplate
from repositories.recurring_repo import RecurringRepository
from utils.logger import get_logger
from utils.validators import clean_category, parse_amount

logger = get_logger(__name__)

_FREQUENCY_NAMES = {
    "daily": Frequency.DAILY, "day": Frequency.DAILY,
    "weekly": Frequency.WEEKLY, "week": Frequency.WEEKLY,
    "monthly": Frequency.MONTHLY, "month": Frequency.MONTHLY,
}


def parse_frequency(text: str) -> Optional[Frequency]:
    """Strict user-input lookup; stored values go through Frequency.parse instead."""
    return _FREQUENCY_NAMES.get(text.strip().lower())


class RecurringService:
    """
    Handles all business logic for recurring templates.

    Responsibilities:
        - Validate and create templates.
        - List the templates that are still active.
        - Delete templates.
    """

    def __init__(self, repo: Optional[RecurringRepository] = None):
        self.repo = repo or RecurringRepository()

    def add_manual(
        self,
        user_id: int,
        category: str,
        amount: str,
        frequency: str,
        description: str,
        start_at: datetime,
        end_at: Optional[datetime] = None,
    ) -> dict:
        """
        Create a template whose first occurrence is `start_at`.

        Returns:
            Dict with 'success' and 'message'.
        """
        freq = parse_frequency(frequency)
        if freq is None:
            return {"success": False, "message": "⚠️ Frequency must be daily, weekly or monthly."}
        try:
            value = parse_amount(amount, allow_zero=False)
            category = clean_category(category)
        except ValueError as e:
            return {"success": False, "message": f"⚠️ {e}"}
        if end_at is not None and end_at < start_at:
            return {"success": False, "message": "⚠️ End date is before the start date."}

        saved = self.repo.add(RecurringTemplate(
            user_id=user_id,
            category=category,
            amount=value,
            description=description.strip() or category.strip(),
            frequency=freq,
            start_at=start_at,
            end_at=end_at,
        ))
        msg = (
            f"🔁 Recurring expense added:\n"
            f"  📌 {saved.description}\n"
            f"  📂 Category: {saved.category}\n"
            f"  💶 Amount: {saved.amount:.2f}\n"
            f"  🔄 Every: {saved.frequency.value.lower()}\n"
            f"  📅 First run: {saved.next_due:%Y-%m-%d}\n"
        )
        if saved.end_at:
            msg += f"  🏁 Ends: {saved.end_at:%Y-%m-%d}\n"
        msg += f"  🔖 ID: #{saved.id}"
        return {"success": True, "message": msg}

    def list_active(self, user_id: int, now: datetime) -> str:
        """Formatted list of templates that have not passed their end date."""
        templates = self.repo.get_all(user_id, active_at=now)
        if not templates:
            return "📭 No recurring expenses yet."

        lines = ["🔁 Active recurring expenses:\n"]
        monthly_total = Decimal("0")
        for t in templates:
            lines.append(f"  #{t.id} {t}")
            if t.frequency is Frequency.MONTHLY:
                monthly_total += t.amount

        if monthly_total > 0:
            lines.append(f"\n💶 Monthly commitments: {monthly_total:.2f}")
        return "\n".join(lines)

    def delete_template(self, template_id: int, user_id: int) -> str:
        """Delete a recurring template by ID."""
        if self.repo.delete(template_id, user_id):
            return f"🗑️ Deleted recurring expense #{template_id}."
        return f"⚠️ Recurring expense #{template_id} not found."
