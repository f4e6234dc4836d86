# tests/flags/test_dedup.py
"""Tests for duplicate flag removal."""

from collections.abc import Callable

from structlog.testing import capture_logs

from doclib.contracts import FlagState
from doclib.core.store import FlagStore
from doclib.flags import FlagDeduplicator, order_by_started
from tests.fixtures.flags import CURRENT, EARLIER, FLAG_KEY, LATER, make_flag

MakeDocument = Callable[..., str]


class TestOrderByStarted:
    """Ordering used to choose the surviving record."""

    def test_most_recent_first(self) -> None:
        flags = [make_flag(started=EARLIER), make_flag(started=LATER), make_flag(started=CURRENT)]

        assert [flag.started for flag in order_by_started(flags)] == [LATER, CURRENT, EARLIER]

    def test_unstarted_last(self) -> None:
        flags = [make_flag(started=None), make_flag(started=EARLIER)]

        assert [flag.started for flag in order_by_started(flags)] == [EARLIER, None]

    def test_does_not_mutate_input(self) -> None:
        flags = [make_flag(started=EARLIER), make_flag(started=LATER)]

        order_by_started(flags)

        assert [flag.started for flag in flags] == [EARLIER, LATER]


class TestFlagDeduplicator:
    """FlagDeduplicator against the store."""

    def test_no_flags(self, store: FlagStore, make_document: MakeDocument) -> None:
        result = FlagDeduplicator(store, FLAG_KEY).deduplicate(make_document())

        assert result.survivor is None
        assert result.removed == 0

    def test_single_flag_untouched(self, store: FlagStore, make_document: MakeDocument) -> None:
        document_id = make_document(make_flag(started=CURRENT))

        result = FlagDeduplicator(store, FLAG_KEY).deduplicate(document_id)

        assert result.survivor is not None
        assert result.survivor.started == CURRENT
        assert result.removed == 0

    def test_keeps_most_recently_started(self, store: FlagStore, make_document: MakeDocument) -> None:
        state = FlagState(value="12345", updated=CURRENT)
        document_id = make_document(
            make_flag(started=CURRENT),
            make_flag(started=None),
            make_flag(started=LATER, state=state),
            make_flag(started=EARLIER),
            make_flag(key="keep", started=CURRENT),
        )

        result = FlagDeduplicator(store, FLAG_KEY).deduplicate(document_id)

        assert result.removed == 3
        assert result.survivor is not None
        assert result.survivor.started == LATER
        remaining = store.get_flags(document_id, FLAG_KEY)
        assert len(remaining) == 1
        assert remaining[0].state == state
        assert remaining[0].flag_id == result.survivor.flag_id
        assert len(store.get_flags(document_id, "keep")) == 1

    def test_equal_started_keeps_first_in_collection(self, store: FlagStore, make_document: MakeDocument) -> None:
        document_id = make_document(make_flag(started=CURRENT), make_flag(started=CURRENT))
        first = store.get_flags(document_id, FLAG_KEY)[0]

        result = FlagDeduplicator(store, FLAG_KEY).deduplicate(document_id)

        assert result.removed == 1
        assert result.survivor is not None
        assert result.survivor.flag_id == first.flag_id
        assert [flag.flag_id for flag in store.get_flags(document_id, FLAG_KEY)] == [first.flag_id]

    def test_all_unstarted_left_alone(self, store: FlagStore, make_document: MakeDocument) -> None:
        document_id = make_document(make_flag(queued=True), make_flag(queued=True))

        with capture_logs() as logs:
            result = FlagDeduplicator(store, FLAG_KEY).deduplicate(document_id)

        assert result.removed == 0
        assert result.survivor is not None
        assert len(store.get_flags(document_id, FLAG_KEY)) == 2
        assert any(entry["log_level"] == "warning" for entry in logs)

    def test_removal_is_logged(self, store: FlagStore, make_document: MakeDocument) -> None:
        document_id = make_document(make_flag(started=EARLIER), make_flag(started=LATER))

        with capture_logs() as logs:
            FlagDeduplicator(store, FLAG_KEY).deduplicate(document_id)

        entry = next(entry for entry in logs if entry["event"] == "Removed duplicate flags")
        assert entry["removed"] == 1
        assert entry["document_id"] == document_id
        assert entry["kept_started"] == LATER.isoformat()
