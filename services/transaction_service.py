"""
services/transaction_service.py
-------------------------------
Business logic for transactions the user records by hand.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from models.transaction import Transaction
from repositories.transaction_repo import TransactionRepository
from utils.logger import get_logger
from utils.validators import clean_category, parse_amount

logger = get_logger(__name__)


class TransactionService:
    """Validates and records manual transactions."""

    def __init__(self, repo: Optional[TransactionRepository] = None):
        self.repo = repo or TransactionRepository()

    def add_transaction(
        self, user_id: int, amount: str, category: str, description: str, now: datetime
    ) -> dict:
        """
        Record a transaction dated `now`.

        Returns:
            Dict with 'success' and 'message' (and 'category' on success).
        """
        try:
            value = parse_amount(amount)
            category = clean_category(category)
        except ValueError as e:
            return {"success": False, "message": f"⚠️ {e}"}

        saved = self.repo.add(Transaction(
            user_id=user_id,
            category=category,
            amount=value,
            occurred_at=now,
            description=description.strip(),
        ))
        msg = (
            f"💸 Recorded:\n"
            f"  📂 Category: {saved.category}\n"
            f"  💶 Amount: {saved.amount:.2f}\n"
            f"  📅 Date: {saved.occurred_at:%Y-%m-%d}\n"
        )
        if saved.description:
            msg += f"  📝 Note: {saved.description}\n"
        msg += f"  🔖 ID: #{saved.id}"
        return {"success": True, "message": msg, "category": saved.category}

    def delete_transaction(self, tx_id: int, user_id: int) -> tuple[str, Optional[str]]:
        """
        Delete a transaction.

        Returns:
            (reply text, category of the deleted row or None).
        """
        deleted = self.repo.delete(tx_id, user_id)
        if deleted is None:
            return f"⚠️ Transaction #{tx_id} not found.", None
        return f"🗑️ Deleted transaction #{tx_id} ({deleted.category}, {deleted.amount:.2f}).", deleted.category

    def edit_transaction(
        self,
        tx_id: int,
        user_id: int,
        amount: Optional[str] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> dict:
        """
        Edit an existing transaction's fields. Unset fields are kept.

        Returns:
            Dict with 'success' and 'message'; on success also 'categories',
            the budgets to reconcile (old and new category when it moved).
        """
        tx = self.repo.get_by_id(tx_id, user_id)
        if tx is None:
            return {"success": False, "message": f"⚠️ Transaction #{tx_id} not found."}

        old_category = tx.category
        changes = []
        try:
            if amount is not None:
                tx.amount = parse_amount(amount)
                changes.append(f"💶 Amount: {tx.amount:.2f}")
            if category is not None:
                tx.category = clean_category(category)
                changes.append(f"📂 Category: {tx.category}")
        except ValueError as e:
            return {"success": False, "message": f"⚠️ {e}"}
        if description is not None:
            tx.description = description.strip()
            changes.append(f"📝 Description: {tx.description}")
        if occurred_at is not None:
            tx.occurred_at = occurred_at
            changes.append(f"📅 Date: {tx.occurred_at:%Y-%m-%d}")
        if notes is not None:
            tx.notes = notes.strip() or None
            changes.append(f"🗒️ Notes: {tx.notes or '-'}")

        if not changes:
            return {"success": False, "message": "⚠️ Nothing to change. Give at least one field."}

        if not self.repo.update(tx):
            return {"success": False, "message": f"⚠️ Transaction #{tx_id} not found."}
        logger.info(f"User {user_id} edited transaction #{tx_id}")
        return {
            "success": True,
            "message": f"✏️ Updated transaction #{tx_id}:\n" + "\n".join(f"  {c}" for c in changes),
            "categories": sorted({old_category, tx.category}),
        }

    def list_recent(self, user_id: int, limit: int = 10) -> str:
        """Formatted list of the latest transactions, with their ids."""
        transactions = self.repo.get_recent(user_id, limit)
        if not transactions:
            return "📭 No transactions yet."

        lines = [f"🧾 Last {len(transactions)} transaction(s):\n"]
        for t in transactions:
            marker = " 🔁" if t.is_generated else ""
            note = f" - {t.description}" if t.description else ""
            lines.append(f"  #{t.id} {t.occurred_at:%Y-%m-%d} {t.category}: {t.amount:.2f}{note}{marker}")

        total = sum((t.amount for t in transactions), Decimal("0"))
        lines.append(f"\n💸 Total shown: {total:.2f}")
        return "\n".join(lines)
