from app.database.connection import get_connection
from app.documents.models import ReferenceData


class ReferenceDataRepository:
    """Reads the categories and payment methods owned by the budgeting service."""

    def load(self) -> ReferenceData:
        """Fetch live expense/income categories and payment methods."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id, name, COALESCE(description, '')
                    FROM expense_category
                    WHERE NOT isdeleted
                    ORDER BY id
                    """
                )
                expense = [(int(r[0]), r[1], r[2]) for r in cur.fetchall()]
                cur.execute(
                    """
                    SELECT id, name, COALESCE(description, '')
                    FROM income_category
                    WHERE NOT isdeleted
                    ORDER BY id
                    """
                )
                income = [(int(r[0]), r[1], r[2]) for r in cur.fetchall()]
                cur.execute(
                    """
                    SELECT id, method_name
                    FROM payment_methods
                    WHERE NOT isdeleted
                    ORDER BY id
                    """
                )
                methods = [(int(r[0]), r[1]) for r in cur.fetchall()]

        return ReferenceData(
            expense_categories=expense,
            income_categories=income,
            payment_methods=methods,
        )
