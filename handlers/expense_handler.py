"""
handlers/expense_handler.py
----------------------------
Handles manual spending entries (record, list, edit, delete). Every change
is followed by a reconciliation of the affected budgets.
"""

import re

from telegram import Update
from telegram.ext import ContextTypes

from handlers.pass_handler import get_coordinator, reconcile_and_alert
from repositories.user_repo import UserRepository
from services.transaction_service import TransactionService
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger
from utils.validators import parse_day

logger = get_logger(__name__)
transaction_service = TransactionService()
user_repo = UserRepository()

_DEFAULT_RECENT = 10
_MAX_RECENT = 50

_EDIT_FIELDS = {
    "amount": "amount",
    "category": "category",
    "description": "description",
    "desc": "description",
    "date": "occurred_at",
    "notes": "notes",
    "note": "notes",
}
_EDIT_KEY = re.compile(r"\b(amount|category|description|desc|date|notes|note):", re.IGNORECASE)

_EDIT_USAGE = (
    "✏️ *Edit a transaction*\n\n"
    "*Format:*\n"
    "`/edit <id> amount:<value> category:<name> date:<YYYY-MM-DD> desc:<text> note:<text>`\n\n"
    "*Examples:*\n"
    "• `/edit 5 amount:75`\n"
    "• `/edit 3 category:food`\n"
    "• `/edit 10 amount:100 desc:Taxi home`\n\n"
    "💡 Give at least one field. Use /recent to find ids."
)


def _parse_edit(text: str) -> dict | None:
    """
    Split `amount:75 desc:Taxi home` into keyword arguments for
    TransactionService.edit_transaction. Values run until the next key.

    Returns None when the text has no keys, starts with something that is
    not a key, or carries a date that is not YYYY-MM-DD.
    """
    matches = list(_EDIT_KEY.finditer(text))
    if not matches or text[:matches[0].start()].strip():
        return None

    fields = {}
    for match, following in zip(matches, matches[1:] + [None]):
        end = following.start() if following else len(text)
        fields[_EDIT_FIELDS[match.group(1).lower()]] = text[match.end():end].strip()

    if "occurred_at" in fields:
        try:
            fields["occurred_at"] = parse_day(fields["occurred_at"])
        except ValueError:
            return None
    return fields


@authorized_only
@rate_limited
async def spend_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /spend <amount> <category> [note].
    Example: /spend 12.50 food lunch with friends
    """
    user = update.effective_user

    if not context.args or len(context.args) < 2:
        await update.message.reply_text(
            "⚠️ Usage: /spend <amount> <category> [note]\nExample: /spend 12.50 food lunch"
        )
        return

    user_repo.ensure_user(user.id, user.first_name)
    amount, category, *note = context.args
    result = transaction_service.add_transaction(
        user.id, amount, category, " ".join(note), get_coordinator(context).clock.now()
    )
    await update.message.reply_text(result["message"])

    if result.get("success"):
        await reconcile_and_alert(context, user.id, [result["category"]])


@authorized_only
@rate_limited
async def delete_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /delete <id> command - delete a transaction.
    Usage: /delete 5
    """
    user = update.effective_user

    if not context.args:
        await update.message.reply_text("⚠️ Usage: /delete <transaction id>\nExample: /delete 5")
        return

    try:
        tx_id = int(context.args[0])
    except ValueError:
        await update.message.reply_text("⚠️ The transaction id must be a whole number.")
        return

    msg, category = transaction_service.delete_transaction(tx_id, user.id)
    await update.message.reply_text(msg)

    if category is not None:
        await reconcile_and_alert(context, user.id, [category])


@authorized_only
@rate_limited
async def recent_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /recent [n] - list the latest transactions with their ids.
    Usage: /recent or /recent 20
    """
    user = update.effective_user
    limit = _DEFAULT_RECENT
    if context.args:
        try:
            limit = max(1, min(int(context.args[0]), _MAX_RECENT))
        except ValueError:
            await update.message.reply_text("⚠️ Usage: /recent [count]\nExample: /recent 20")
            return

    await update.message.reply_text(transaction_service.list_recent(user.id, limit))


@authorized_only
@rate_limited
async def edit_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /edit <id> field:value ... - edit an existing transaction.

    Examples:
        /edit 5 amount:75
        /edit 3 category:food
        /edit 10 amount:100 date:2026-03-01 desc:Taxi home
    """
    user = update.effective_user

    if not context.args or len(context.args) < 2:
        await update.message.reply_text(_EDIT_USAGE, parse_mode="Markdown")
        return

    try:
        tx_id = int(context.args[0])
    except ValueError:
        await update.message.reply_text("⚠️ The first thing after /edit must be the transaction id.")
        return

    fields = _parse_edit(" ".join(context.args[1:]))
    if fields is None:
        await update.message.reply_text(_EDIT_USAGE, parse_mode="Markdown")
        return

    result = transaction_service.edit_transaction(tx_id, user.id, **fields)
    await update.message.reply_text(result["message"])

    if result.get("success"):
        # A category change moves spending from one budget to another
        await reconcile_and_alert(context, user.id, result["categories"])
