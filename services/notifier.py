"""
services/notifier.py
--------------------
Delivers notification intents to users through the Telegram bot.

Delivery is best effort: a failed send is logged and never propagates,
so nothing that already happened in a pass is undone by it.
"""

from telegram import Bot

from models.notification import BudgetThresholdIntent, NotificationIntent, RecurringInsertedIntent
from utils.logger import get_logger

logger = get_logger(__name__)


def render(intent: NotificationIntent) -> str:
    """Message text for an intent."""
    if isinstance(intent, RecurringInsertedIntent):
        return (
            f"🔁 *Recurring expense added*\n\n"
            f"📂 {intent.category}\n"
            f"📌 {intent.description}"
        )
    if isinstance(intent, BudgetThresholdIntent):
        pct = int(intent.spent * 100 / intent.limit) if intent.limit > 0 else 0
        return (
            f"🟡 *Budget alert: {intent.category}*\n\n"
            f"You have spent {intent.spent:.2f} of {intent.limit:.2f} ({pct}%)."
        )
    raise TypeError(f"Unknown notification intent: {intent!r}")


class TelegramNotifier:
    """Sends intents as chat messages; the owner ID is the chat ID."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def deliver(self, intent: NotificationIntent) -> bool:
        """Send one intent. Returns False instead of raising when sending fails."""
        try:
            await self.bot.send_message(
                chat_id=intent.user_id,
                text=render(intent),
                parse_mode="Markdown",
            )
            return True
        except Exception as e:
            logger.error(f"Failed to deliver {type(intent).__name__} to user {intent.user_id}: {e}")
            return False

    async def deliver_all(self, intents: list[NotificationIntent]) -> int:
        """Send intents in order. Returns how many were delivered."""
        delivered = 0
        for intent in intents:
            if await self.deliver(intent):
                delivered += 1
        return delivered
