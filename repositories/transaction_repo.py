"""
repositories/transaction_repo.py
--------------------------------
Data access layer for spending transactions.
All SQL queries related to the `transactions` table live here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from db.connection import get_connection, release_connection
from models.transaction import Transaction
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = (
    "id, user_id, category, description, amount, occurred_at, "
    "notes, recurring_template_id, created_at"
)


class TransactionRepository:
    """Repository for CRUD and aggregate queries on the transactions table."""

    # ── CREATE ────────────────────────────────────────────

    def add(self, tx: Transaction) -> Transaction:
        """
        Insert a new transaction.

        Args:
            tx: The Transaction to persist.

        Returns:
            The same Transaction with its `id` and `created_at` populated.
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                self.insert_row(cur, tx)
            conn.commit()
            logger.info(f"Added transaction #{tx.id} [{tx.category}] for user {tx.user_id}")
            return tx
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to add transaction: {e}")
            raise
        finally:
            release_connection(conn)

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, tx_id: int, user_id: int) -> Optional[Transaction]:
        """Fetch a single transaction by ID, scoped to a user."""
        sql = f"SELECT {_COLUMNS} FROM transactions WHERE id = %s AND user_id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (tx_id, user_id))
                row = cur.fetchone()
                return self._row_to_transaction(row) if row else None
        finally:
            release_connection(conn)

    def get_recent(self, user_id: int, limit: int = 10) -> list[Transaction]:
        """
        The user's latest transactions.

        Returns:
            Up to `limit` Transaction objects, newest first.
        """
        sql = f"""
            SELECT {_COLUMNS} FROM transactions
            WHERE user_id = %s
            ORDER BY occurred_at DESC, id DESC
            LIMIT %s;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (user_id, limit))
                return [self._row_to_transaction(r) for r in cur.fetchall()]
        finally:
            release_connection(conn)

    def sum_since(self, user_id: int, category: str, since: datetime) -> Decimal:
        """
        Total amount a user spent in one category at or after `since`.

        Returns:
            The sum, or Decimal 0 when there are no matching rows.
        """
        sql = """
            SELECT COALESCE(SUM(amount), 0)
            FROM transactions
            WHERE user_id = %s AND category = %s AND occurred_at >= %s;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (user_id, category, since))
                return Decimal(cur.fetchone()[0])
        finally:
            release_connection(conn)

    def sum_by_category(
        self, user_id: int, windows: dict[str, datetime]
    ) -> dict[str, Decimal]:
        """
        Per-category totals in one grouped query.

        Each category is summed from its own start instant; the scan as a
        whole is bounded by the earliest of them.

        Args:
            user_id: Telegram user ID.
            windows: {category: since}.

        Returns:
            {category: total} with a 0 entry for every requested category.
        """
        if not windows:
            return {}
        categories = list(windows)
        sql = """
            SELECT w.category, COALESCE(SUM(t.amount), 0)
            FROM unnest(%s::text[], %s::timestamptz[]) AS w(category, since)
            LEFT JOIN transactions t
                   ON t.user_id = %s
                  AND t.category = w.category
                  AND t.occurred_at >= w.since
                  AND t.occurred_at >= %s
            GROUP BY w.category;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    categories, [windows[c] for c in categories],
                    user_id, min(windows.values()),
                ))
                totals = {category: Decimal("0") for category in categories}
                totals.update({r[0]: Decimal(r[1]) for r in cur.fetchall()})
                return totals
        finally:
            release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, tx: Transaction) -> bool:
        """
        Apply a user edit to an existing transaction.

        Returns:
            True if a row was updated, False otherwise.
        """
        sql = """
            UPDATE transactions
            SET amount = %s, category = %s, description = %s, occurred_at = %s, notes = %s
            WHERE id = %s AND user_id = %s;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    tx.amount, tx.category, tx.description, tx.occurred_at,
                    tx.notes, tx.id, tx.user_id,
                ))
                updated = cur.rowcount > 0
            conn.commit()
            return updated
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to update transaction #{tx.id}: {e}")
            raise
        finally:
            release_connection(conn)

    # ── DELETE ────────────────────────────────────────────

    def delete(self, tx_id: int, user_id: int) -> Optional[Transaction]:
        """
        Delete a transaction by ID, scoped to a user.

        Returns:
            The deleted Transaction (so callers can reconcile its category),
            or None if nothing matched.
        """
        sql = f"DELETE FROM transactions WHERE id = %s AND user_id = %s RETURNING {_COLUMNS};"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (tx_id, user_id))
                row = cur.fetchone()
            conn.commit()
            if row:
                logger.info(f"Deleted transaction #{tx_id} for user {user_id}")
                return self._row_to_transaction(row)
            return None
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to delete transaction #{tx_id}: {e}")
            raise
        finally:
            release_connection(conn)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def insert_row(cur, tx: Transaction) -> None:
        """
        INSERT `tx` on an open cursor and fill in its `id` and `created_at`.
        The caller owns the connection and decides when to commit.
        """
        cur.execute(
            """
            INSERT INTO transactions
                (user_id, category, description, amount, occurred_at, notes, recurring_template_id)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at;
            """,
            (
                tx.user_id, tx.category, tx.description, tx.amount,
                tx.occurred_at, tx.notes, tx.recurring_template_id,
            ),
        )
        row = cur.fetchone()
        tx.id = row[0]
        tx.created_at = row[1]

    @staticmethod
    def _row_to_transaction(row: tuple) -> Transaction:
        """Convert a database row tuple to a Transaction domain object."""
        return Transaction(
            id=row[0],
            user_id=row[1],
            category=row[2],
            description=row[3],
            amount=Decimal(row[4]),
            occurred_at=row[5],
            notes=row[6],
            recurring_template_id=row[7],
            created_at=row[8],
        )
