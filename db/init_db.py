"""
db/init_db.py
-------------
Creates the ledger schema (tables) if it does not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db
"""

from db.connection import get_connection, release_connection
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
-- Users: the tenant boundary, keyed by Telegram ID
CREATE TABLE IF NOT EXISTS users (
    id              SERIAL PRIMARY KEY,
    telegram_id     BIGINT UNIQUE NOT NULL,
    first_name      VARCHAR(100),
    created_at      TIMESTAMPTZ DEFAULT NOW()
);

-- Recurring templates: recipes that materialize into transactions
CREATE TABLE IF NOT EXISTS recurring_templates (
    id              SERIAL PRIMARY KEY,
    user_id         BIGINT NOT NULL REFERENCES users(telegram_id) ON DELETE CASCADE,
    category        VARCHAR(50) NOT NULL,
    amount          NUMERIC(12,2) NOT NULL CHECK (amount >= 0),
    description     TEXT NOT NULL DEFAULT '',
    frequency       VARCHAR(10) NOT NULL,
    start_at        TIMESTAMPTZ NOT NULL,
    end_at          TIMESTAMPTZ,
    next_due        TIMESTAMPTZ NOT NULL,
    created_at      TIMESTAMPTZ DEFAULT NOW(),
    CHECK (next_due >= start_at)
);

-- Transactions: the spending ledger
CREATE TABLE IF NOT EXISTS transactions (
    id              SERIAL PRIMARY KEY,
    user_id         BIGINT NOT NULL REFERENCES users(telegram_id) ON DELETE CASCADE,
    category        VARCHAR(50) NOT NULL,
    description     TEXT NOT NULL DEFAULT '',
    amount          NUMERIC(12,2) NOT NULL CHECK (amount >= 0),
    occurred_at     TIMESTAMPTZ NOT NULL,
    notes           TEXT,
    recurring_template_id INT REFERENCES recurring_templates(id) ON DELETE SET NULL,
    created_at      TIMESTAMPTZ DEFAULT NOW()
);

-- Budgets: one spending cap per user and category
CREATE TABLE IF NOT EXISTS budgets (
    id                  SERIAL PRIMARY KEY,
    user_id             BIGINT NOT NULL REFERENCES users(telegram_id) ON DELETE CASCADE,
    category            VARCHAR(50) NOT NULL,
    limit_amount        NUMERIC(12,2) NOT NULL CHECK (limit_amount > 0),
    current_spent       NUMERIC(12,2) NOT NULL DEFAULT 0,
    cycle_type          VARCHAR(10) NOT NULL DEFAULT 'MONTHLY',
    last_reset          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    threshold_percent   INT NOT NULL DEFAULT 80 CHECK (threshold_percent BETWEEN 0 AND 100),
    UNIQUE(user_id, category)
);

-- Indexes for the due query and the spent aggregation
CREATE INDEX IF NOT EXISTS idx_transactions_user_cat_time
    ON transactions(user_id, category, occurred_at);
CREATE INDEX IF NOT EXISTS idx_recurring_user_due
    ON recurring_templates(user_id, next_due);
"""


def create_tables() -> None:
    """
    Execute the schema SQL to create all tables.
    Safe to call multiple times (uses IF NOT EXISTS).
    """
    conn = get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        conn.commit()
        logger.info("Database schema initialized successfully.")
    except Exception as e:
        conn.rollback()
        logger.error(f"Failed to initialize schema: {e}")
        raise
    finally:
        release_connection(conn)


if __name__ == "__main__":
    from db.connection import init_pool
    init_pool()
    create_tables()
    print("✅ Database schema created successfully.")
