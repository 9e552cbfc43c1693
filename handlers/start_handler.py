"""
handlers/start_handler.py
--------------------------
Handles /start, /help and /myid.
Registers the user and shows available commands.
"""

from telegram import Update
from telegram.ext import ContextTypes

from repositories.user_repo import UserRepository
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
user_repo = UserRepository()

HELP_TEXT = """
🤖 *BudgetCycle*
Budgets per category and recurring expenses that add themselves 💶

*📝 Spending:*
/spend <amount> <category> [note] - record an expense
/recent [n] - latest expenses with their ids
/edit <id> amount:<v> category:<c> date:<YYYY-MM-DD> desc:<text> note:<text>
/delete <id> - delete an expense

*💰 Budgets:*
/budget - status of all budgets
/budget set <category> <limit> [daily|weekly|monthly] [alert%]
/budget delete <category>

*🔁 Recurring:*
/recurring - list recurring expenses
/add\\_recurring category | amount | frequency | note [| start YYYY-MM-DD] [| end YYYY-MM-DD]
/delete\\_recurring <id>
/run\\_now - process due recurring expenses now

/myid - show your Telegram ID
"""


@authorized_only
@rate_limited
async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command - register user and show welcome message."""
    user = update.effective_user
    user_repo.ensure_user(user.id, user.first_name)
    logger.info(f"User {user.id} started the bot.")

    await update.message.reply_text(
        f"Hi {user.first_name}! 👋\n"
        f"I keep your budgets in sync with your spending and add recurring expenses for you.\n\n"
        f"Type /help to see every command.",
    )


@authorized_only
@rate_limited
async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command - show all available commands."""
    await update.message.reply_text(HELP_TEXT, parse_mode="Markdown")


@authorized_only
async def myid_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /myid command - show user's Telegram ID for whitelisting."""
    user = update.effective_user
    await update.message.reply_text(
        f"🆔 Your ID: `{user.id}`\n"
        f"Add it to `ALLOWED_USER_IDS` in `.env` to lock the bot down.",
        parse_mode="Markdown",
    )
