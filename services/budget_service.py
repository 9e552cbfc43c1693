"""
services/budget_service.py
---------------------------
Business logic for defining budgets and presenting their status.
Keeping current_spent in line with the ledger is services/budget_reconciler.py.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from config import DEFAULT_THRESHOLD_PERCENT
from models.budget import Budget, CycleType
from repositories.budget_repo import BudgetRepository
from utils.logger import get_logger
from utils.validators import clean_category, parse_amount

logger = get_logger(__name__)

_CYCLE_NAMES = {
    "daily": CycleType.DAILY,
    "weekly": CycleType.WEEKLY,
    "monthly": CycleType.MONTHLY,
}


class BudgetService:
    """Manages budget limits and renders their progress."""

    def __init__(self, repo: Optional[BudgetRepository] = None):
        self.budget_repo = repo or BudgetRepository()

    def set_budget(
        self,
        user_id: int,
        category: str,
        limit: str,
        now: datetime,
        cycle: str = "monthly",
        threshold: Optional[str] = None,
    ) -> dict:
        """
        Create or redefine the budget for a category.

        A new budget starts its first cycle at `now`; redefining an existing
        one keeps its running cycle.

        Returns:
            Dict with 'success', 'message' and, on success, 'category'.
        """
        try:
            limit_amount = parse_amount(limit, allow_zero=False)
            category = clean_category(category)
        except ValueError as e:
            return {"success": False, "message": f"⚠️ {e}"}

        cycle_type = _CYCLE_NAMES.get(cycle.strip().lower())
        if cycle_type is None:
            return {"success": False, "message": "⚠️ Cycle must be daily, weekly or monthly."}

        threshold_percent = DEFAULT_THRESHOLD_PERCENT
        if threshold is not None:
            try:
                threshold_percent = int(threshold.rstrip("%"))
            except ValueError:
                return {"success": False, "message": f"⚠️ '{threshold}' is not a percentage."}
        if not 0 <= threshold_percent <= 100:
            return {"success": False, "message": "⚠️ The alert threshold must be between 0 and 100."}

        existing = self.budget_repo.get_budget(user_id, category)
        saved = self.budget_repo.upsert(Budget(
            user_id=user_id,
            category=category,
            limit_amount=limit_amount,
            cycle_type=cycle_type,
            last_reset=now,
            threshold_percent=threshold_percent,
        ))
        logger.info(f"Budget set for user {user_id}: {saved}")
        msg = (
            f"✅ Budget for \"{saved.category}\":\n"
            f"  💰 Limit: {saved.limit_amount:.2f} ({saved.cycle_type.value.lower()})\n"
            f"  🔔 Alert at {saved.threshold_percent}%"
        )
        if existing is not None:
            # Redefining keeps the running cycle
            msg += f"\n  ↪️ Current cycle kept: {saved.current_spent:.2f} spent since {saved.last_reset:%Y-%m-%d}"
        return {"success": True, "category": saved.category, "message": msg}

    def delete_budget(self, user_id: int, category: str) -> str:
        """Delete a budget limit."""
        category = category.strip().lower()
        if self.budget_repo.delete_budget(user_id, category):
            return f"🗑️ Deleted budget \"{category}\"."
        return f"⚠️ No budget set for \"{category}\"."

    def get_budget_status(self, user_id: int) -> str:
        """Current spending vs limit for every budget, as last reconciled."""
        budgets = self.budget_repo.get_all_budgets(user_id)
        if not budgets:
            return (
                "📭 No budgets yet.\n\n"
                "💡 Use `/budget set <category> <limit> [daily|weekly|monthly] [alert%]`.\n"
                "Example: `/budget set food 200 monthly 80`"
            )
        return "\n\n".join(["💰 *Budget status*"] + [self.format_budget(b) for b in budgets])

    @classmethod
    def format_budget(cls, budget: Budget) -> str:
        pct = budget.progress_percent
        if budget.is_over_limit:
            icon, status = "🔴", "over limit!"
        elif budget.is_at_threshold():
            icon, status = "🟡", "warning"
        else:
            icon, status = "🟢", "ok"

        remaining = max(Decimal("0"), budget.remaining)
        return (
            f"{icon} *{budget.category}* ({budget.cycle_type.value.lower()}): "
            f"{budget.current_spent:.2f} / {budget.limit_amount:.2f} ({pct}%)\n"
            f"  {cls._progress_bar(pct, budget.threshold_percent)}\n"
            f"  Remaining: {remaining:.2f} | {status} | cycle since {budget.last_reset:%Y-%m-%d}"
        )

    @staticmethod
    def _progress_bar(pct: float, threshold: int = 80, length: int = 15) -> str:
        """Generate a text progress bar."""
        filled = int(min(pct, 100) / 100 * length)
        empty = length - filled
        if pct >= 100:
            return "█" * length + " ⚠️"
        elif pct >= threshold:
            return "█" * filled + "░" * empty + " ⚡"
        else:
            return "█" * filled + "░" * empty
