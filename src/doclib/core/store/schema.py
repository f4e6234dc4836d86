# src/doclib/core/store/schema.py
"""SQLAlchemy table definitions for the flag store.

Uses SQLAlchemy Core (not ORM) for explicit control over the conditional
statements the flag state machine depends on.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

# Shared metadata for all tables
metadata = MetaData()

# === Documents ===

documents_table = Table(
    "documents",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("source", Text, nullable=False),
    Column("hash", String(128), nullable=False),
    Column("mimetype", String(128), nullable=False),
    Column("created", DateTime(timezone=True), nullable=False),
    Column("updated", DateTime(timezone=True), nullable=False),
    Column("uuid", String(36)),  # Nullable - older documents have none
)

# === Flags ===
# Owned, ordered collection of flag records per document. Records are
# addressed by (document_id, key); position only fixes collection order.
# (document_id, key) is deliberately NOT unique: concurrent writers can
# briefly create duplicates, which deduplication removes. Two racing
# appends may also share a position; flag_id breaks the tie.

flags_table = Table(
    "flags",
    metadata,
    Column("flag_id", Integer, primary_key=True, autoincrement=True),
    Column("document_id", String(64), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False),
    Column("position", Integer, nullable=False),
    Column("key", String(128), nullable=False),
    Column("version_number", String(64), nullable=False),
    Column("version_major", Integer, nullable=False),
    Column("version_minor", Integer, nullable=False),
    Column("version_patch", Integer, nullable=False),
    Column("version_hash", String(64), nullable=False),
    Column("started", DateTime(timezone=True)),
    Column("ended", DateTime(timezone=True)),
    Column("errored", DateTime(timezone=True)),
    Column("reset", DateTime(timezone=True)),
    Column("queued", Boolean, nullable=False, default=False),
    Column("summary", String(16)),  # started, ended, errored (FlagSummary)
    Column("state_json", Text),  # Canonical JSON of FlagState.value
    Column("state_updated", DateTime(timezone=True)),
)

Index("ix_flags_document_key", flags_table.c.document_id, flags_table.c.key)
