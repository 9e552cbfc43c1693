"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ── Telegram ──────────────────────────────────────────────
TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "budget_cycle")
DB_USER: str = os.getenv("DB_USER", "budgetcycle_user")
DB_PASS: str = os.getenv("DB_PASS", "")

DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "10"))

DATABASE_URL: str = (
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
)

# ── Security ──────────────────────────────────────────────
_raw_ids = os.getenv("ALLOWED_USER_IDS", "")
ALLOWED_USER_IDS: list[int] = (
    [int(uid.strip()) for uid in _raw_ids.split(",") if uid.strip()]
    if _raw_ids
    else []
)

# ── Rate Limiting ─────────────────────────────────────────
RATE_LIMIT_MESSAGES: int = int(os.getenv("RATE_LIMIT_MESSAGES", "30"))
RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

# ── Processing passes ─────────────────────────────────────
# Periodic trigger interval; the default mirrors a once-a-day worker.
PASS_INTERVAL_SECONDS: int = int(os.getenv("PASS_INTERVAL_SECONDS", "86400"))
# How long a second trigger for the same owner waits for the running pass.
PASS_LOCK_TIMEOUT_SECONDS: float = float(os.getenv("PASS_LOCK_TIMEOUT_SECONDS", "30"))
BATCHED_RECONCILIATION: bool = _env_bool("BATCHED_RECONCILIATION", "true")
# Passes run in worker threads and each holds one pooled connection at a time,
# so the scheduler never runs more of them at once than the pool can serve.
PASS_MAX_CONCURRENCY: int = max(1, min(int(os.getenv("PASS_MAX_CONCURRENCY", "4")), DB_POOL_MAX))

# ── Budgets ───────────────────────────────────────────────
DEFAULT_THRESHOLD_PERCENT: int = int(os.getenv("DEFAULT_THRESHOLD_PERCENT", "80"))

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
