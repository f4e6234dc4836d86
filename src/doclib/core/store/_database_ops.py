"""Database operation helpers to reduce boilerplate in the flag store.

Consolidates the repeated `with self._db.connection() as conn:` pattern.
"""

from typing import TYPE_CHECKING, Any

from sqlalchemy import Executable
from sqlalchemy.engine import Row

if TYPE_CHECKING:
    from doclib.core.store.database import DoclibDB


class DatabaseOps:
    """Helper for common database operations.

    Each call opens its own transaction, so every statement is atomic
    on its own and nothing spans two calls.
    """

    def __init__(self, db: "DoclibDB") -> None:
        self._db = db

    def execute_fetchall(self, query: Executable) -> list[Row[Any]]:
        """Execute query and return all rows."""
        with self._db.connection() as conn:
            result = conn.execute(query)
            return list(result.fetchall())

    def execute_conditional(self, stmt: Executable) -> int:
        """Execute a filtered insert/update/delete and return affected rows.

        Zero is a legitimate outcome here: the filter did not match,
        usually because another writer got there first.
        """
        with self._db.connection() as conn:
            result = conn.execute(stmt)
            rowcount: int = result.rowcount
            return rowcount
