"""
handlers/recurring_handler.py
------------------------------
Handles recurring expense commands.
"""

from datetime import datetime

from telegram import Update
from telegram.ext import ContextTypes

from handlers.pass_handler import get_coordinator
from repositories.user_repo import UserRepository
from services.recurring_service import RecurringService
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger
from utils.validators import parse_day

logger = get_logger(__name__)
recurring_service = RecurringService()
user_repo = UserRepository()

_USAGE = (
    "📝 *Add a recurring expense*\n\n"
    "*Format:*\n"
    "`/add_recurring category | amount | frequency | note`\n"
    "`/add_recurring category | amount | frequency | note | start | end`\n\n"
    "*Examples:*\n"
    "• `/add_recurring subscriptions | 15 | monthly | Netflix`\n"
    "• `/add_recurring rent | 800 | monthly | Rent | 2026-03-01`\n"
    "• `/add_recurring transport | 2.5 | daily | Bus | 2026-03-01 | 2026-06-30`\n\n"
    "*Frequency:* daily, weekly, monthly. Dates are YYYY-MM-DD."
)


def _parse_manual(text: str, now: datetime) -> dict | None:
    """
    Parse the pipe-separated format:
      category | amount | frequency | note [| start] [| end]

    An empty or missing start means `now`; an empty or missing end means
    open-ended. Returns None when the text does not fit the format.
    """
    parts = [p.strip() for p in text.split("|")]
    if len(parts) < 3 or not parts[0]:
        return None

    try:
        start_at = parse_day(parts[4]) if len(parts) > 4 and parts[4] else now
        end_at = parse_day(parts[5]) if len(parts) > 5 and parts[5] else None
    except ValueError:
        return None

    return {
        "category": parts[0],
        "amount": parts[1],
        "frequency": parts[2],
        "description": parts[3] if len(parts) > 3 else "",
        "start_at": start_at,
        "end_at": end_at,
    }


@authorized_only
@rate_limited
async def recurring_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /recurring command - list active recurring expenses."""
    user = update.effective_user
    now = get_coordinator(context).clock.now()
    await update.message.reply_text(recurring_service.list_active(user.id, now))


@authorized_only
@rate_limited
async def add_recurring_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /add_recurring - create a recurring expense template."""
    user = update.effective_user

    if not context.args:
        await update.message.reply_text(_USAGE, parse_mode="Markdown")
        return

    parsed = _parse_manual(" ".join(context.args), get_coordinator(context).clock.now())
    if parsed is None:
        await update.message.reply_text(_USAGE, parse_mode="Markdown")
        return

    user_repo.ensure_user(user.id, user.first_name)
    result = recurring_service.add_manual(user_id=user.id, **parsed)
    await update.message.reply_text(result["message"])


@authorized_only
@rate_limited
async def delete_recurring_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /delete_recurring <id> - delete a recurring expense.
    Usage: /delete_recurring 3
    """
    user = update.effective_user

    if not context.args:
        await update.message.reply_text("⚠️ Usage: /delete_recurring <id>\nExample: /delete_recurring 3")
        return

    try:
        template_id = int(context.args[0])
    except ValueError:
        await update.message.reply_text("⚠️ The id must be a whole number.")
        return

    await update.message.reply_text(recurring_service.delete_template(template_id, user.id))
