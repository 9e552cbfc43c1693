"""
handlers/budget_handler.py
---------------------------
Handles budget management commands.
"""

from telegram import Update
from telegram.ext import ContextTypes

from handlers.pass_handler import get_coordinator, reconcile_and_alert
from repositories.user_repo import UserRepository
from services.budget_service import BudgetService
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
budget_service = BudgetService()
user_repo = UserRepository()

_USAGE = (
    "💰 *Budgets*\n\n"
    "• `/budget` → status\n"
    "• `/budget set <category> <limit> [daily|weekly|monthly] [alert%]`\n"
    "• `/budget delete <category>`\n\n"
    "*Example:* `/budget set food 200 monthly 80`"
)


@authorized_only
@rate_limited
async def budget_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /budget command.

    Usage:
        /budget                             → reconcile, then show status
        /budget set food 200 weekly 75      → set a weekly food budget, alert at 75%
        /budget delete food                 → remove budget
    """
    user = update.effective_user

    if not context.args:
        # Status also rolls over any budget whose cycle has elapsed
        await reconcile_and_alert(context, user.id)
        msg = budget_service.get_budget_status(user.id)
        await update.message.reply_text(msg, parse_mode="Markdown")
        return

    action = context.args[0].lower()

    if action == "set":
        if len(context.args) < 3:
            await update.message.reply_text(_USAGE, parse_mode="Markdown")
            return

        user_repo.ensure_user(user.id, user.first_name)
        category, limit, *rest = context.args[1:]
        result = budget_service.set_budget(
            user.id,
            category,
            limit,
            now=get_coordinator(context).clock.now(),
            cycle=rest[0] if rest else "monthly",
            threshold=rest[1] if len(rest) > 1 else None,
        )
        await update.message.reply_text(result["message"])
        if result["success"]:
            await reconcile_and_alert(context, user.id, [result["category"]])

    elif action == "delete":
        if len(context.args) < 2:
            await update.message.reply_text("⚠️ Usage: `/budget delete <category>`", parse_mode="Markdown")
            return
        await update.message.reply_text(budget_service.delete_budget(user.id, context.args[1]))

    else:
        await update.message.reply_text(_USAGE, parse_mode="Markdown")
