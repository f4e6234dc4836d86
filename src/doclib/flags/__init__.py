"""Flag state machine, deduplication and recently-run guard."""

from doclib.flags.context import FlagContext
from doclib.flags.dedup import DeduplicationResult, FlagDeduplicator, order_by_started
from doclib.flags.guard import DEFAULT_TOLERANCE, any_started_recently, started_recently

__all__ = [
    "DEFAULT_TOLERANCE",
    "DeduplicationResult",
    "FlagContext",
    "FlagDeduplicator",
    "any_started_recently",
    "order_by_started",
    "started_recently",
]
