"""Flag store: persistence for documents and their flag records.

Uses SQLAlchemy Core against SQLite (development, tests) or PostgreSQL.
"""

from doclib.core.store.database import DoclibDB, SchemaCompatibilityError
from doclib.core.store.flag_store import FlagStore
from doclib.core.store.schema import documents_table, flags_table, metadata

__all__ = [
    "DoclibDB",
    "FlagStore",
    "SchemaCompatibilityError",
    "documents_table",
    "flags_table",
    "metadata",
]
