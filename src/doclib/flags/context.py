# src/doclib/flags/context.py
"""Flag context: the processing-status state machine for one stage.

A FlagContext is bound to one flag key (normally the consumer name) and
the consumer's version. Many worker processes run their own contexts
against the same store concurrently; no locks are taken.

Every transition follows the same two steps:
1. Deduplicate the key on the document (best effort, see below)
2. Issue exactly one conditional statement, filtered on the key being
   present (update) or absent (append)

The two steps are separate store calls, so another writer can land in
between. A lost race shows up as a statement matching nothing, reported
as UpdatedResult.nothing(), and any duplicate it leaves behind is removed
by the next transition on that document by any worker.

Logical states per (document, key):
    Absent -> Queued -> Started -> {Ended | Errored} -> Reset -> Queued -> ...
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from doclib.contracts import FlagOperation, FlagRecord, FlagState, FlagSummary, NotStartedError, UpdatedResult, Version
from doclib.core.clock import DEFAULT_CLOCK, Clock
from doclib.core.logging import get_logger
from doclib.core.store.repositories import state_columns, version_columns
from doclib.flags.dedup import FlagDeduplicator
from doclib.flags.guard import DEFAULT_TOLERANCE, any_started_recently

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from doclib.core.config import FlagSettings
    from doclib.core.store import FlagStore

logger = get_logger(__name__)


class FlagContext:
    """Records the lifecycle of one processing stage on documents.

    Example:
        context = FlagContext("ner", Version.parse("1.2.0"), store)

        context.queue(doc_id)        # supervisor asks for the work
        context.start(doc_id)        # consumer picks it up
        try:
            ...
        except Exception:
            context.error(doc_id)
            raise
        context.end(doc_id, state=FlagState(value={"entities": 12}, updated=now))
    """

    def __init__(
        self,
        key: str,
        version: Version,
        store: FlagStore,
        *,
        clock: Clock = DEFAULT_CLOCK,
        tolerance: timedelta = DEFAULT_TOLERANCE,
    ) -> None:
        """Initialize a flag context.

        Args:
            key: Flag key, normally the consumer name
            version: Version of the consumer recorded on the flag
            store: Shared flag store
            clock: Time source for transition timestamps
            tolerance: Window for is_run_recently()

        Raises:
            ValueError: If key is empty or tolerance is not positive
        """
        if not key:
            raise ValueError("Flag key must not be empty")
        if tolerance <= timedelta(0):
            raise ValueError(f"Tolerance must be positive, got {tolerance}")
        self.key = key
        self.version = version
        self.tolerance = tolerance
        self._store = store
        self._clock = clock
        self._deduplicator = FlagDeduplicator(store, key)

    @classmethod
    def from_settings(cls, settings: FlagSettings, store: FlagStore, *, clock: Clock = DEFAULT_CLOCK) -> FlagContext:
        """Build a context from the ``flags`` section of the settings."""
        return cls(settings.key, settings.to_version(), store, clock=clock, tolerance=settings.tolerance)

    @property
    def _log(self) -> BoundLogger:
        """Logger bound to this flag key, built from the logging configuration in effect now."""
        return logger.bind(flag_key=self.key)

    # === Guard ===

    def is_run_recently(self, document_id: str) -> bool:
        """True if the stage was started on the document within the tolerance.

        Pure read, no deduplication.
        """
        flags = self._store.get_flags(document_id, self.key)
        return any_started_recently(flags, self.tolerance, self._clock.now())

    # === Transitions ===

    def queue(self, document_id: str) -> UpdatedResult:
        """Mark the stage as pending pickup.

        Appends a queued flag if there is none, sets queued on an existing
        flag that is not queued, and does nothing if it is already queued.
        """
        flag = self._current_flag(document_id)
        if flag is None:
            result = self._store.append_flag(
                document_id,
                FlagRecord(key=self.key, version=self.version, queued=True),
            )
        elif flag.is_queued:
            result = UpdatedResult.nothing()
        else:
            result = self._store.update_flag(document_id, self.key, {"queued": True})
        self._log.debug("flag_transition", operation=FlagOperation.QUEUE, document_id=document_id, modified=result.modified_count)
        return result

    def start(self, document_id: str) -> UpdatedResult:
        """Record that the stage has started on the document.

        Appends a started flag if there is none; otherwise restarts the
        existing one.
        """
        flag = self._current_flag(document_id)
        if flag is not None:
            return self._restart(document_id, flag)

        result = self._store.append_flag(
            document_id,
            FlagRecord(
                key=self.key,
                version=self.version,
                started=self._clock.now(),
                summary=FlagSummary.STARTED,
                queued=True,
            ),
        )
        self._log.debug("flag_transition", operation=FlagOperation.START, document_id=document_id, modified=result.modified_count)
        return result

    def _restart(self, document_id: str, flag: FlagRecord | None) -> UpdatedResult:
        """Start an existing flag again, clearing its previous outcome.

        Only reached from start() with a freshly read flag; deduplication
        has already run.
        """
        if flag is None:
            raise self._not_started(FlagOperation.RESTART, document_id)
        result = self._store.update_flag(
            document_id,
            self.key,
            {
                "started": self._clock.now(),
                **version_columns(self.version),
                "ended": None,
                "errored": None,
                "summary": FlagSummary.STARTED.value,
                "queued": True,
            },
        )
        self._log.debug("flag_transition", operation=FlagOperation.RESTART, document_id=document_id, modified=result.modified_count)
        return result

    def end(self, document_id: str, state: FlagState | None = None, *, no_check: bool = False) -> UpdatedResult:
        """Record successful completion.

        Args:
            document_id: Document the stage ran on
            state: Replaces the flag's state payload; None leaves it untouched
            no_check: Issue the update even if no flag exists (matches nothing)

        Raises:
            NotStartedError: If no flag exists and no_check is False
            ValueError: If the state payload holds NaN or Infinity
            TypeError: If the state payload cannot be serialised
        """
        # Serialise first: a bad payload must fail before dedup deletes rows
        state_values = state_columns(state) if state is not None else {}

        flag = self._current_flag(document_id)
        if flag is None and not no_check:
            raise self._not_started(FlagOperation.END, document_id)

        values: dict[str, Any] = {
            "ended": self._clock.now(),
            "reset": None,
            "errored": None,
            "summary": FlagSummary.ENDED.value,
            "queued": False,
            **state_values,
        }
        result = self._store.update_flag(document_id, self.key, values)
        self._log.debug("flag_transition", operation=FlagOperation.END, document_id=document_id, modified=result.modified_count)
        return result

    def error(self, document_id: str, *, no_check: bool = False) -> UpdatedResult:
        """Record failed completion.

        Raises:
            NotStartedError: If no flag exists and no_check is False
        """
        flag = self._current_flag(document_id)
        if flag is None and not no_check:
            raise self._not_started(FlagOperation.ERROR, document_id)

        result = self._store.update_flag(
            document_id,
            self.key,
            {
                "errored": self._clock.now(),
                "ended": None,
                "reset": None,
                "summary": FlagSummary.ERRORED.value,
                "queued": False,
            },
        )
        self._log.debug("flag_transition", operation=FlagOperation.ERROR, document_id=document_id, modified=result.modified_count)
        return result

    def reset(self, document_id: str) -> UpdatedResult:
        """Mark the flag for re-processing without erasing its history.

        Clears the state payload and queues the flag; started, ended and
        errored keep their values.

        Raises:
            NotStartedError: If no flag exists
        """
        flag = self._current_flag(document_id)
        if flag is None:
            raise self._not_started(FlagOperation.RESET, document_id)

        result = self._store.update_flag(
            document_id,
            self.key,
            {
                "reset": self._clock.now(),
                **state_columns(None),
                **version_columns(self.version),
                "queued": True,
            },
        )
        self._log.debug("flag_transition", operation=FlagOperation.RESET, document_id=document_id, modified=result.modified_count)
        return result

    # === Helpers ===

    def _current_flag(self, document_id: str) -> FlagRecord | None:
        """Deduplicate the key and return the surviving flag.

        A failed deduplication does not block the transition: the flag is
        read directly and duplicates are left for the next call. If that
        read fails as well, the error propagates.
        """
        try:
            return self._deduplicator.deduplicate(document_id).survivor
        except SQLAlchemyError as e:
            self._log.warning(
                "Flag deduplication failed, continuing without it",
                document_id=document_id,
                error=str(e),
                error_type=type(e).__name__,
            )
        flags = self._store.get_flags(document_id, self.key)
        return flags[0] if flags else None

    def _not_started(self, operation: FlagOperation, document_id: str) -> NotStartedError:
        error = NotStartedError(operation.value, self.key, document_id)
        self._log.error(str(error), operation=operation, document_id=document_id)
        return error
