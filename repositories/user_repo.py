"""
repositories/user_repo.py
--------------------------
Data access layer for user records (the tenant boundary of the ledger).
"""

from db.connection import get_connection, release_connection
from utils.logger import get_logger

logger = get_logger(__name__)


class UserRepository:
    """Repository for the users table."""

    def ensure_user(self, telegram_id: int, first_name: str | None = None) -> int:
        """
        Register a user if they don't exist yet, refreshing the stored name.
        Every ledger table references users, so handlers call this before
        their first write for a user.

        Returns:
            The user's Telegram ID, which is the owner key everywhere else.
        """
        sql = """
            INSERT INTO users (telegram_id, first_name)
            VALUES (%s, %s)
            ON CONFLICT (telegram_id) DO UPDATE SET first_name = EXCLUDED.first_name
            RETURNING telegram_id;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (telegram_id, first_name))
                row = cur.fetchone()
            conn.commit()
            return row[0]
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to ensure user {telegram_id}: {e}")
            raise
        finally:
            release_connection(conn)
