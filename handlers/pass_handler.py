"""
handlers/pass_handler.py
------------------------
Manual trigger for a processing pass, plus the helpers other handlers use
to reach the shared Coordinator.

The Coordinator lives in `application.bot_data` so the periodic job and
every command share one set of per-user locks.
"""

import asyncio

from telegram import Update
from telegram.ext import ContextTypes

from models.results import PassAbort
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from services.coordinator import PassCoordinator
from services.notification_intents import threshold_reached
from services.notifier import TelegramNotifier
from utils.logger import get_logger

logger = get_logger(__name__)

COORDINATOR_KEY = "coordinator"


def get_coordinator(context: ContextTypes.DEFAULT_TYPE) -> PassCoordinator:
    return context.bot_data[COORDINATOR_KEY]


async def reconcile_and_alert(context: ContextTypes.DEFAULT_TYPE, user_id: int, categories=None) -> None:
    """
    Reconcile budgets after a manual change and send any threshold alert.
    A busy lock only means the next pass will pick the change up.
    """
    coordinator = get_coordinator(context)
    try:
        result = await asyncio.to_thread(coordinator.reconcile_now, user_id, categories)
    except PassAbort as e:
        logger.warning(f"Reconciliation skipped: {e}")
        return
    intents = [threshold_reached(b) for b in result.threshold_crossed]
    if intents:
        await TelegramNotifier(context.bot).deliver_all(intents)


@authorized_only
@rate_limited
async def run_now_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /run_now - process due recurring expenses immediately,
    without waiting for the periodic job.
    """
    user = update.effective_user
    coordinator = get_coordinator(context)

    report = await asyncio.to_thread(coordinator.run_pass_now, user.id)
    await update.message.reply_text(report.summary())

    # The per-user lock is released by now
    delivered = await TelegramNotifier(context.bot).deliver_all(report.intents)
    logger.info(f"Manual pass for user {user.id}: {delivered}/{len(report.intents)} notification(s) sent")
