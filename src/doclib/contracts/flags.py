"""Document and flag contracts.

These are strict contracts - summary fields use the FlagSummary enum and
all timestamps are timezone-aware. The repository layer handles the
string/naive-datetime conversion for database reads.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from doclib.contracts.enums import FlagSummary

_VERSION_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)")


def _validate_aware(value: datetime | None, field_name: str) -> None:
    """Reject naive datetimes - ordering naive against aware values crashes later."""
    if value is not None and value.tzinfo is None:
        raise ValueError(f"{field_name} must be timezone-aware, got naive datetime {value!r}")


@dataclass(frozen=True)
class Version:
    """Version of the processing stage that last touched a flag."""

    number: str
    major: int = 0
    minor: int = 0
    patch: int = 0
    hash: str = ""

    @classmethod
    def parse(cls, number: str, hash: str = "") -> "Version":
        """Build a Version from a semantic version string.

        Pre-release suffixes are kept in ``number`` but ignored for the
        numeric parts, e.g. "2.0.6-SNAPSHOT" gives major=2, minor=0, patch=6.

        Raises:
            ValueError: If the string does not start with MAJOR.MINOR.PATCH
        """
        match = _VERSION_PATTERN.match(number)
        if match is None:
            raise ValueError(f"Invalid version '{number}': expected MAJOR.MINOR.PATCH")
        major, minor, patch = (int(part) for part in match.groups())
        return cls(number=number, major=major, minor=minor, patch=patch, hash=hash)

    def __str__(self) -> str:
        return f"{self.number}+{self.hash}" if self.hash else self.number


@dataclass(frozen=True)
class FlagState:
    """Opaque stage-specific payload attached to a flag.

    ``value`` is stored as canonical JSON. JSON-native values (dict with
    string keys, list, str, int of any size, finite float, bool, None)
    come back unchanged. A few other types are normalised on write and
    come back in their JSON form:

    - tuple: list
    - datetime: ISO 8601 string in UTC (naive values are taken as UTC)
    - Decimal: string
    - bytes: ``{"__bytes__": <base64>}``

    NaN and Infinity raise ValueError; any other type raises TypeError.
    """

    value: Any
    updated: datetime

    def __post_init__(self) -> None:
        _validate_aware(self.updated, "updated")


@dataclass(frozen=True)
class FlagRecord:
    """Status of one processing stage on one document.

    ``flag_id`` is the storage row identity. It is not part of the record's
    value and is ignored by equality.
    """

    key: str
    version: Version
    started: datetime | None = None
    ended: datetime | None = None
    errored: datetime | None = None
    reset: datetime | None = None
    queued: bool = False
    summary: FlagSummary | None = None
    state: FlagState | None = None
    flag_id: int | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.summary is not None and not isinstance(self.summary, FlagSummary):
            raise TypeError(f"summary must be FlagSummary, got {type(self.summary).__name__}: {self.summary!r}")
        _validate_aware(self.started, "started")
        _validate_aware(self.ended, "ended")
        _validate_aware(self.errored, "errored")
        _validate_aware(self.reset, "reset")

    @property
    def is_queued(self) -> bool:
        return self.queued

    @property
    def is_not_queued(self) -> bool:
        return not self.queued


@dataclass(frozen=True)
class Document:
    """A document whose processing is tracked by flags.

    ``flags`` is the owned, ordered collection of flag records.
    """

    id: str
    source: str
    hash: str
    mimetype: str
    created: datetime
    updated: datetime
    uuid: str | None = None
    flags: tuple[FlagRecord, ...] = ()

    def __post_init__(self) -> None:
        _validate_aware(self.created, "created")
        _validate_aware(self.updated, "updated")

    def has_flag(self, key: str) -> bool:
        return any(flag.key == key for flag in self.flags)

    def get_flags(self, key: str) -> list[FlagRecord]:
        """Return every flag with ``key``, in collection order."""
        return [flag for flag in self.flags if flag.key == key]

    def get_flag(self, key: str) -> FlagRecord | None:
        """Return the first flag with ``key`` or None."""
        for flag in self.flags:
            if flag.key == key:
                return flag
        return None
