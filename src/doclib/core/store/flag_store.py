# src/doclib/core/store/flag_store.py
"""Flag store adapter.

Issues the atomic conditional statements the flag state machine relies on.
Every method is a single statement in its own transaction (except document
insert, which writes the document and its initial flags together). Nothing
here decides *which* transition to make; that belongs to FlagContext.

Flags are addressed by (document_id, key). When duplicates exist, updates
hit the first record in collection order (position, then flag_id), which
mirrors a "match and update first matching element" array update.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, exists, func, literal, or_, select

from doclib.contracts import Document, DocumentNotFoundError, FlagRecord, UpdatedResult
from doclib.core.store._database_ops import DatabaseOps
from doclib.core.store.repositories import DocumentRepository, FlagRepository, as_utc
from doclib.core.store.schema import documents_table, flags_table

if TYPE_CHECKING:
    from doclib.core.store.database import DoclibDB


class FlagStore:
    """Conditional read/update access to documents and their flags.

    Safe to share between threads and FlagContext instances: it holds no
    state besides the database handle.
    """

    def __init__(self, db: DoclibDB) -> None:
        self._db = db
        self._ops = DatabaseOps(db)
        self._flag_repo = FlagRepository()
        self._document_repo = DocumentRepository()

    # === Documents ===

    def insert_document(self, document: Document) -> None:
        """Insert a document together with its initial flags, in order."""
        with self._db.connection() as conn:
            conn.execute(documents_table.insert().values(**self._document_repo.dump(document)))
            for position, flag in enumerate(document.flags):
                conn.execute(
                    flags_table.insert().values(
                        document_id=document.id,
                        position=position,
                        **self._flag_repo.dump(flag),
                    )
                )

    def get_document(self, document_id: str) -> Document:
        """Load a document and its ordered flag collection.

        Raises:
            DocumentNotFoundError: If no document has this id
        """
        with self._db.connection() as conn:
            row = conn.execute(select(documents_table).where(documents_table.c.id == document_id)).fetchone()
            if row is None:
                raise DocumentNotFoundError(document_id)
            flag_rows = conn.execute(
                select(flags_table)
                .where(flags_table.c.document_id == document_id)
                .order_by(flags_table.c.position, flags_table.c.flag_id)
            ).fetchall()
        return self._document_repo.load(row, [self._flag_repo.load(r) for r in flag_rows])

    def delete_document(self, document_id: str) -> int:
        """Delete a document; its flags go with it."""
        with self._db.connection() as conn:
            conn.execute(delete(flags_table).where(flags_table.c.document_id == document_id))
            result = conn.execute(delete(documents_table).where(documents_table.c.id == document_id))
            rowcount: int = result.rowcount
            return rowcount

    # === Flags ===

    def get_flags(self, document_id: str, key: str) -> list[FlagRecord]:
        """Return every flag with ``key`` on the document, in collection order."""
        rows = self._ops.execute_fetchall(
            select(flags_table)
            .where(flags_table.c.document_id == document_id, flags_table.c.key == key)
            .order_by(flags_table.c.position, flags_table.c.flag_id)
        )
        return [self._flag_repo.load(row) for row in rows]

    def append_flag(self, document_id: str, flag: FlagRecord) -> UpdatedResult:
        """Append ``flag`` to the document only if it has no flag with that key.

        A single INSERT ... SELECT ... WHERE EXISTS(document) AND NOT
        EXISTS(flag) statement. Returns nothing() when the document is
        missing or already carries the key.
        """
        existing = flags_table.alias("existing")
        values = self._flag_repo.dump(flag)

        next_position = (
            select(func.coalesce(func.max(existing.c.position), -1) + 1)
            .where(existing.c.document_id == document_id)
            .scalar_subquery()
        )
        source = select(
            literal(document_id, flags_table.c.document_id.type),
            next_position,
            *(literal(value, flags_table.c[name].type) for name, value in values.items()),
        ).where(
            exists().where(documents_table.c.id == document_id),
            ~exists().where(existing.c.document_id == document_id, existing.c.key == flag.key),
        )
        stmt = flags_table.insert().from_select(["document_id", "position", *values], source)
        return UpdatedResult.from_rowcount(self._ops.execute_conditional(stmt))

    def update_flag(self, document_id: str, key: str, values: Mapping[str, Any]) -> UpdatedResult:
        """Set ``values`` (column name -> value) on the first flag with ``key``.

        Returns nothing() when the document has no flag with that key.
        """
        target = flags_table.alias("target")
        first_match = (
            select(target.c.flag_id)
            .where(target.c.document_id == document_id, target.c.key == key)
            .order_by(target.c.position, target.c.flag_id)
            .limit(1)
            .scalar_subquery()
        )
        normalised = {name: as_utc(value) if isinstance(value, datetime) else value for name, value in values.items()}
        stmt = flags_table.update().where(flags_table.c.flag_id == first_match).values(**normalised)
        return UpdatedResult.from_rowcount(self._ops.execute_conditional(stmt))

    def remove_flags(
        self,
        document_id: str,
        key: str,
        *,
        started: Iterable[datetime] = (),
        include_unstarted: bool = False,
        keep_flag_id: int | None = None,
    ) -> int:
        """Bulk-remove flags with ``key`` whose started value is listed.

        Args:
            document_id: Document owning the flags
            key: Flag key to match
            started: Exact started timestamps to remove
            include_unstarted: Also remove flags that were never started
            keep_flag_id: Row that must survive even if its started value matches

        Returns:
            Number of flags removed
        """
        conditions = []
        started_values = [as_utc(value) for value in started]
        if started_values:
            conditions.append(flags_table.c.started.in_(started_values))
        if include_unstarted:
            conditions.append(flags_table.c.started.is_(None))
        if not conditions:
            return 0

        stmt = delete(flags_table).where(
            flags_table.c.document_id == document_id,
            flags_table.c.key == key,
            or_(*conditions),
        )
        if keep_flag_id is not None:
            stmt = stmt.where(flags_table.c.flag_id != keep_flag_id)
        return self._ops.execute_conditional(stmt)
