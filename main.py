"""
main.py
-------
Entry point for the BudgetCycle Telegram bot.

Responsibilities:
    - Initialize the database connection pool and schema.
    - Build the shared pass Coordinator.
    - Configure and start the Telegram bot with all handlers.
    - Schedule the periodic recurring/budget processing pass.
"""

import asyncio
from datetime import datetime

from telegram import BotCommand
from telegram.ext import Application, CommandHandler, ContextTypes

from config import PASS_INTERVAL_SECONDS, PASS_MAX_CONCURRENCY, TELEGRAM_BOT_TOKEN
from db.connection import init_pool, close_pool
from db.init_db import create_tables
from handlers.budget_handler import budget_command
from handlers.expense_handler import delete_command, edit_command, recent_command, spend_command
from handlers.pass_handler import COORDINATOR_KEY, get_coordinator, run_now_command
from handlers.recurring_handler import (
    recurring_command,
    add_recurring_command,
    delete_recurring_command,
)
from handlers.start_handler import start_command, help_command, myid_command
from models.results import PassReport
from repositories.recurring_repo import RecurringRepository
from security.auth import is_authorized
from services.coordinator import PassCoordinator, build_coordinator
from services.notifier import TelegramNotifier
from utils.logger import get_logger

logger = get_logger(__name__)
recurring_repo = RecurringRepository()


async def run_passes(
    coordinator: PassCoordinator, owners: list[int], now: datetime, limit: int = PASS_MAX_CONCURRENCY
) -> list[PassReport]:
    """Run one pass per owner in worker threads, at most `limit` at a time."""
    gate = asyncio.Semaphore(limit)

    async def run_one(owner: int) -> PassReport:
        async with gate:
            return await asyncio.to_thread(coordinator.run_pass, owner, now)

    return await asyncio.gather(*(run_one(owner) for owner in owners))


async def process_due_passes(context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Scheduled job: run a pass for every user with due recurring expenses,
    then deliver the resulting notifications.

    Users are processed concurrently, bounded by PASS_MAX_CONCURRENCY; each
    pass holds only its own user's lock, and one user's failure does not
    affect the others.
    """
    coordinator = get_coordinator(context)
    notifier = TelegramNotifier(context.bot)
    now = coordinator.clock.now()

    try:
        owners = await asyncio.to_thread(recurring_repo.get_owners_with_due, now)
    except Exception as e:
        logger.error(f"Scheduled pass skipped, could not list users: {e}")
        return

    owners = [o for o in owners if is_authorized(o)]
    if not owners:
        return
    logger.info(f"Scheduled pass for {len(owners)} user(s)")

    reports = await run_passes(coordinator, owners, now)
    for report in reports:
        if report.aborted:
            continue
        await notifier.deliver_all(report.intents)


async def post_init(application: Application) -> None:
    """Register the bot command menu in Telegram on startup."""
    commands = [
        BotCommand("start", "🚀 Start"),
        BotCommand("help", "📖 Help"),
        BotCommand("spend", "💸 Record an expense"),
        BotCommand("recent", "🧾 Latest expenses"),
        BotCommand("edit", "✏️ Edit an expense"),
        BotCommand("delete", "🗑️ Delete an expense"),
        BotCommand("budget", "💰 Budgets"),
        BotCommand("recurring", "🔁 Recurring expenses"),
        BotCommand("add_recurring", "➕ Add a recurring expense"),
        BotCommand("delete_recurring", "❌ Delete a recurring expense"),
        BotCommand("run_now", "⏩ Process due recurring expenses now"),
        BotCommand("myid", "🆔 Your Telegram ID"),
    ]
    await application.bot.set_my_commands(commands)
    logger.info("Bot commands menu registered successfully.")


def main() -> None:
    """Initialize and run the bot."""

    # ── 1. Database setup ─────────────────────────────────
    logger.info("Initializing database...")
    init_pool()
    create_tables()

    # ── 2. Build the Telegram application ─────────────────
    logger.info("Starting Telegram bot...")
    app = Application.builder().token(TELEGRAM_BOT_TOKEN).post_init(post_init).build()
    app.bot_data[COORDINATOR_KEY] = build_coordinator()

    # ── 3. Register command handlers ──────────────────────
    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("help", help_command))
    app.add_handler(CommandHandler("myid", myid_command))
    app.add_handler(CommandHandler("spend", spend_command))
    app.add_handler(CommandHandler("recent", recent_command))
    app.add_handler(CommandHandler("edit", edit_command))
    app.add_handler(CommandHandler("delete", delete_command))
    app.add_handler(CommandHandler("budget", budget_command))
    app.add_handler(CommandHandler("recurring", recurring_command))
    app.add_handler(CommandHandler("add_recurring", add_recurring_command))
    app.add_handler(CommandHandler("delete_recurring", delete_recurring_command))
    app.add_handler(CommandHandler("run_now", run_now_command))

    # ── 4. Schedule the periodic pass ─────────────────────
    job_queue = app.job_queue
    if job_queue:
        job_queue.run_repeating(
            process_due_passes,
            interval=PASS_INTERVAL_SECONDS,
            first=10,
            name="recurring_pass",
        )
        logger.info(f"Scheduled processing pass every {PASS_INTERVAL_SECONDS}s")
    else:
        logger.warning("JobQueue unavailable; install python-telegram-bot[job-queue]. Use /run_now instead.")

    # ── 5. Start polling ──────────────────────────────────
    logger.info("🚀 BudgetCycle is running! Press Ctrl+C to stop.")
    app.run_polling(drop_pending_updates=True, allowed_updates=["message"])

    # ── 6. Cleanup on shutdown ────────────────────────────
    close_pool()
    logger.info("BudgetCycle stopped.")


if __name__ == "__main__":
    main()
