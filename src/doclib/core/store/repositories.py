"""Repository layer for flag store records.

Handles the seam between SQLAlchemy rows (strings, naive datetimes from
SQLite) and domain objects (enums, aware datetimes). This is NOT a trust
boundary - if the database has bad data, we crash.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy.engine import Row as SARow

from doclib.contracts import Document, FlagRecord, FlagState, FlagSummary, Version
from doclib.core.canonical import canonical_json, load_canonical


def as_utc(value: datetime | None) -> datetime | None:
    """Normalise a timestamp for storage or after a read.

    SQLite drops the offset on write, so every value is stored as UTC and
    naive values read back are UTC by construction.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def version_columns(version: Version) -> dict[str, Any]:
    """Column values for a flag's version."""
    return {
        "version_number": version.number,
        "version_major": version.major,
        "version_minor": version.minor,
        "version_patch": version.patch,
        "version_hash": version.hash,
    }


def state_columns(state: FlagState | None) -> dict[str, Any]:
    """Column values for a flag's state payload (None clears it)."""
    if state is None:
        return {"state_json": None, "state_updated": None}
    return {"state_json": canonical_json(state.value), "state_updated": as_utc(state.updated)}


class FlagRepository:
    """Repository for FlagRecord rows."""

    def load(self, row: SARow[Any]) -> FlagRecord:
        """Load FlagRecord from database row.

        Converts summary strings to FlagSummary and rebuilds the state
        payload. Crashes on invalid data.
        """
        state: FlagState | None = None
        if row.state_json is not None:
            updated = as_utc(row.state_updated)
            if updated is None:
                raise ValueError(f"Flag {row.flag_id} has state_json but no state_updated")
            state = FlagState(value=load_canonical(row.state_json), updated=updated)

        return FlagRecord(
            key=row.key,
            version=Version(
                number=row.version_number,
                major=row.version_major,
                minor=row.version_minor,
                patch=row.version_patch,
                hash=row.version_hash,
            ),
            started=as_utc(row.started),
            ended=as_utc(row.ended),
            errored=as_utc(row.errored),
            reset=as_utc(row.reset),
            queued=bool(row.queued),
            # Use explicit is not None check - empty string should raise, not become None
            summary=FlagSummary(row.summary) if row.summary is not None else None,
            state=state,
            flag_id=row.flag_id,
        )

    def dump(self, flag: FlagRecord) -> dict[str, Any]:
        """Column values for a new flag row (excluding document_id and position)."""
        return {
            "key": flag.key,
            **version_columns(flag.version),
            "started": as_utc(flag.started),
            "ended": as_utc(flag.ended),
            "errored": as_utc(flag.errored),
            "reset": as_utc(flag.reset),
            "queued": flag.queued,
            "summary": flag.summary.value if flag.summary is not None else None,
            **state_columns(flag.state),
        }


class DocumentRepository:
    """Repository for Document rows."""

    def load(self, row: SARow[Any], flags: list[FlagRecord]) -> Document:
        created = as_utc(row.created)
        updated = as_utc(row.updated)
        if created is None or updated is None:
            raise ValueError(f"Document {row.id} is missing created/updated timestamps")
        return Document(
            id=row.id,
            source=row.source,
            hash=row.hash,
            mimetype=row.mimetype,
            created=created,
            updated=updated,
            uuid=row.uuid,
            flags=tuple(flags),
        )

    def dump(self, document: Document) -> dict[str, Any]:
        return {
            "id": document.id,
            "source": document.source,
            "hash": document.hash,
            "mimetype": document.mimetype,
            "created": as_utc(document.created),
            "updated": as_utc(document.updated),
            "uuid": document.uuid,
        }
