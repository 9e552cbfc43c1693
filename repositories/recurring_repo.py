"""
repositories/recurring_repo.py
-------------------------------
Data access layer for recurring transaction templates.
All SQL queries related to the `recurring_templates` table live here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from db.connection import get_connection, release_connection
from models.recurring import Frequency, RecurringTemplate
from models.transaction import Transaction
from repositories.transaction_repo import TransactionRepository
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = (
    "id, user_id, category, amount, description, frequency, "
    "start_at, end_at, next_due, created_at"
)


class RecurringRepository:
    """Repository for CRUD operations on the recurring_templates table."""

    # ── CREATE ────────────────────────────────────────────

    def add(self, template: RecurringTemplate) -> RecurringTemplate:
        """
        Insert a new recurring template.

        Args:
            template: The RecurringTemplate to persist.

        Returns:
            The same object with its `id` and `created_at` populated.
        """
        sql = """
            INSERT INTO recurring_templates
                (user_id, category, amount, description, frequency, start_at, end_at, next_due)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    template.user_id, template.category, template.amount,
                    template.description, template.frequency.value,
                    template.start_at, template.end_at, template.next_due,
                ))
                row = cur.fetchone()
                template.id = row[0]
                template.created_at = row[1]
            conn.commit()
            logger.info(f"Added recurring template '{template.description}' #{template.id}")
            return template
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to add recurring template: {e}")
            raise
        finally:
            release_connection(conn)

    # ── READ ──────────────────────────────────────────────

    def get_all(self, user_id: int, active_at: Optional[datetime] = None) -> list[RecurringTemplate]:
        """
        Get all recurring templates for a user.

        Args:
            user_id: Telegram user ID.
            active_at: If given, drop templates whose end date is before it.

        Returns:
            List of RecurringTemplate objects, soonest first.
        """
        sql = f"SELECT {_COLUMNS} FROM recurring_templates WHERE user_id = %s"
        params: list = [user_id]
        if active_at is not None:
            sql += " AND (end_at IS NULL OR end_at >= %s)"
            params.append(active_at)
        sql += " ORDER BY next_due ASC, id ASC;"

        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [self._row_to_template(r) for r in cur.fetchall()]
        finally:
            release_connection(conn)

    def get_due(self, user_id: int, as_of: datetime) -> list[RecurringTemplate]:
        """
        Get a user's templates that are due at `as_of` and not past their end.

        Returns:
            List ordered by next_due, then id.
        """
        sql = f"""
            SELECT {_COLUMNS} FROM recurring_templates
            WHERE user_id = %s
              AND next_due <= %s
              AND (end_at IS NULL OR end_at >= %s)
            ORDER BY next_due ASC, id ASC;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (user_id, as_of, as_of))
                return [self._row_to_template(r) for r in cur.fetchall()]
        finally:
            release_connection(conn)

    def get_owners_with_due(self, as_of: datetime) -> list[int]:
        """Distinct users that have at least one due template. Used by the scheduler."""
        sql = """
            SELECT DISTINCT user_id FROM recurring_templates
            WHERE next_due <= %s AND (end_at IS NULL OR end_at >= %s)
            ORDER BY user_id;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (as_of, as_of))
                return [r[0] for r in cur.fetchall()]
        finally:
            release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def record_occurrence(self, tx: Transaction, advanced: RecurringTemplate) -> Transaction:
        """
        Insert the transaction a due template produced and save the
        template's advanced next_due, in one database transaction.

        Either both rows change or neither does, so a due cycle can never be
        recorded without its schedule moving on.

        Raises:
            LookupError: If the template no longer exists (nothing is kept).
        """
        sql = """
            UPDATE recurring_templates
            SET next_due = %s
            WHERE id = %s AND user_id = %s;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                TransactionRepository.insert_row(cur, tx)
                cur.execute(sql, (advanced.next_due, advanced.id, advanced.user_id))
                if cur.rowcount == 0:
                    raise LookupError(f"recurring template #{advanced.id} not found")
            conn.commit()
            logger.info(
                f"Template #{advanced.id} -> transaction #{tx.id}, "
                f"next due {advanced.next_due:%Y-%m-%d %H:%M}"
            )
            return tx
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to record occurrence of template #{advanced.id}: {e}")
            raise
        finally:
            release_connection(conn)

    # ── DELETE ────────────────────────────────────────────

    def delete(self, template_id: int, user_id: int) -> bool:
        """Delete a recurring template by ID, scoped to user."""
        sql = "DELETE FROM recurring_templates WHERE id = %s AND user_id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (template_id, user_id))
                deleted = cur.rowcount > 0
            conn.commit()
            if deleted:
                logger.info(f"Deleted recurring template #{template_id}")
            return deleted
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to delete recurring template #{template_id}: {e}")
            raise
        finally:
            release_connection(conn)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_template(row: tuple) -> RecurringTemplate:
        """Convert a database row tuple to a RecurringTemplate domain object."""
        return RecurringTemplate(
            id=row[0],
            user_id=row[1],
            category=row[2],
            amount=Decimal(row[3]),
            description=row[4],
            frequency=Frequency.parse(row[5]),
            start_at=row[6],
            end_at=row[7],
            next_due=row[8],
            created_at=row[9],
        )
