"""
repositories/budget_repo.py
-----------------------------
Data access layer for category budgets.
"""

from decimal import Decimal
from typing import Optional

from db.connection import get_connection, release_connection
from models.budget import Budget, CycleType
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = (
    "id, user_id, category, limit_amount, current_spent, "
    "cycle_type, last_reset, threshold_percent"
)


class BudgetRepository:
    """Repository for CRUD operations on the budgets table."""

    def upsert(self, budget: Budget) -> Budget:
        """
        Create a budget, or redefine the existing one for the same category.

        Redefining keeps the running cycle (current_spent and last_reset)
        and only replaces the limit, cycle type and threshold.
        """
        sql = f"""
            INSERT INTO budgets
                (user_id, category, limit_amount, current_spent, cycle_type, last_reset, threshold_percent)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (user_id, category)
            DO UPDATE SET limit_amount = EXCLUDED.limit_amount,
                          cycle_type = EXCLUDED.cycle_type,
                          threshold_percent = EXCLUDED.threshold_percent
            RETURNING {_COLUMNS};
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    budget.user_id, budget.category, budget.limit_amount,
                    budget.current_spent, budget.cycle_type.value,
                    budget.last_reset, budget.threshold_percent,
                ))
                row = cur.fetchone()
            conn.commit()
            return self._row_to_budget(row)
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to set budget: {e}")
            raise
        finally:
            release_connection(conn)

    def get_budget(self, user_id: int, category: str) -> Optional[Budget]:
        """Get the budget for a specific category."""
        sql = f"SELECT {_COLUMNS} FROM budgets WHERE user_id = %s AND category = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (user_id, category))
                row = cur.fetchone()
                return self._row_to_budget(row) if row else None
        finally:
            release_connection(conn)

    def get_all_budgets(self, user_id: int) -> list[Budget]:
        """Get all budgets for a user, ordered by category."""
        sql = f"SELECT {_COLUMNS} FROM budgets WHERE user_id = %s ORDER BY category;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (user_id,))
                return [self._row_to_budget(r) for r in cur.fetchall()]
        finally:
            release_connection(conn)

    def update(self, budget: Budget) -> None:
        """
        Persist a budget's reconciled state and definition.

        Raises:
            LookupError: If the budget no longer exists.
        """
        sql = """
            UPDATE budgets
            SET limit_amount = %s, current_spent = %s, cycle_type = %s,
                last_reset = %s, threshold_percent = %s
            WHERE id = %s AND user_id = %s;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    budget.limit_amount, budget.current_spent, budget.cycle_type.value,
                    budget.last_reset, budget.threshold_percent, budget.id, budget.user_id,
                ))
                if cur.rowcount == 0:
                    raise LookupError(f"budget #{budget.id} not found")
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to update budget #{budget.id}: {e}")
            raise
        finally:
            release_connection(conn)

    def delete_budget(self, user_id: int, category: str) -> bool:
        """Delete a budget. Returns True if deleted."""
        sql = "DELETE FROM budgets WHERE user_id = %s AND category = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (user_id, category))
                deleted = cur.rowcount > 0
            conn.commit()
            return deleted
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to delete budget: {e}")
            raise
        finally:
            release_connection(conn)

    @staticmethod
    def _row_to_budget(row: tuple) -> Budget:
        return Budget(
            id=row[0],
            user_id=row[1],
            category=row[2],
            limit_amount=Decimal(row[3]),
            current_spent=Decimal(row[4]),
            cycle_type=CycleType.parse(row[5]),
            last_reset=row[6],
            threshold_percent=row[7],
        )
