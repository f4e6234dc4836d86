# src/doclib/flags/dedup.py
"""Self-healing removal of duplicate flags.

Two writers racing to append the same flag key can both succeed, leaving
the document with several records for one (document, key) pair. Before
every transition the duplicates are collapsed to the most recently
started record; everything recorded on the others (state, errored, ...)
is discarded. This is a lossy recovery policy, not a merge.

Ordering relies on distinct started timestamps. When the most recent
record has no started value at all (two first-time queues racing), there
is nothing to order by and the duplicates are left until one of them is
started.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from doclib.contracts import FlagRecord
from doclib.core.logging import get_logger

if TYPE_CHECKING:
    from doclib.core.store import FlagStore

logger = get_logger(__name__)

_NEVER_STARTED = datetime.min.replace(tzinfo=UTC)


@dataclass(frozen=True)
class DeduplicationResult:
    """Outcome of a deduplication pass.

    Attributes:
        survivor: The record kept for the key, or None if the document has none
        removed: Number of duplicate records deleted
    """

    survivor: FlagRecord | None
    removed: int = 0


def _started_sort_key(flag: FlagRecord) -> tuple[bool, datetime]:
    # Unstarted flags sort lowest
    return (flag.started is not None, flag.started or _NEVER_STARTED)


def order_by_started(flags: Sequence[FlagRecord]) -> list[FlagRecord]:
    """Most recently started first, never-started last.

    Stable: records with equal started values keep collection order.
    """
    return sorted(flags, key=_started_sort_key, reverse=True)


class FlagDeduplicator:
    """Collapses duplicate flags for one key down to a single record."""

    def __init__(self, store: FlagStore, key: str) -> None:
        self._store = store
        self._key = key

    def deduplicate(self, document_id: str) -> DeduplicationResult:
        """Remove every flag for the key except the most recently started.

        Returns:
            The surviving record (as read before the removal) and the count removed
        """
        flags = self._store.get_flags(document_id, self._key)
        if not flags:
            return DeduplicationResult(survivor=None)
        if len(flags) == 1:
            return DeduplicationResult(survivor=flags[0])

        survivor, *superseded = order_by_started(flags)
        if survivor.started is None:
            logger.warning(
                "Duplicate flags cannot be ordered - none has been started",
                flag_key=self._key,
                document_id=document_id,
                duplicates=len(flags),
            )
            return DeduplicationResult(survivor=survivor)

        removed = self._store.remove_flags(
            document_id,
            self._key,
            started=[flag.started for flag in superseded if flag.started is not None],
            include_unstarted=any(flag.started is None for flag in superseded),
            keep_flag_id=survivor.flag_id,
        )
        logger.info(
            "Removed duplicate flags",
            flag_key=self._key,
            document_id=document_id,
            removed=removed,
            kept_started=survivor.started.isoformat(),
        )
        return DeduplicationResult(survivor=survivor, removed=removed)
