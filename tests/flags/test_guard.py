# tests/flags/test_guard.py
"""Tests for the recently-run guard."""

from collections.abc import Callable
from datetime import timedelta

import pytest

from doclib.core.clock import MockClock
from doclib.core.store import FlagStore
from doclib.flags import FlagContext, any_started_recently, started_recently
from tests.fixtures.flags import CONTEXT_VERSION, CURRENT, EARLIER, FLAG_KEY, make_flag

MakeDocument = Callable[..., str]

TEN_SECONDS = timedelta(seconds=10)


class TestStartedRecently:
    """Pure window arithmetic."""

    def test_never_started(self) -> None:
        assert not started_recently(make_flag(), TEN_SECONDS, CURRENT)

    def test_inside_window(self) -> None:
        flag = make_flag(started=CURRENT - timedelta(seconds=9))

        assert started_recently(flag, TEN_SECONDS, CURRENT)

    def test_window_end_is_exclusive(self) -> None:
        flag = make_flag(started=CURRENT - TEN_SECONDS)

        assert not started_recently(flag, TEN_SECONDS, CURRENT)

    def test_started_in_future_counts(self) -> None:
        """Clock skew between workers: a start "ahead" of now is still recent."""
        flag = make_flag(started=CURRENT + timedelta(seconds=1))

        assert started_recently(flag, TEN_SECONDS, CURRENT)

    def test_any_over_duplicates(self) -> None:
        flags = [make_flag(started=EARLIER), make_flag(started=CURRENT)]

        assert any_started_recently(flags, TEN_SECONDS, CURRENT + timedelta(seconds=1))

    def test_any_of_nothing(self) -> None:
        assert not any_started_recently([], TEN_SECONDS, CURRENT)


class TestIsRunRecently:
    """FlagContext.is_run_recently against the store."""

    @pytest.fixture
    def mock_clock(self) -> MockClock:
        return MockClock(CURRENT)

    @pytest.fixture
    def guarded(self, store: FlagStore, mock_clock: MockClock) -> FlagContext:
        return FlagContext(FLAG_KEY, CONTEXT_VERSION, store, clock=mock_clock)

    def test_true_right_after_start(self, guarded: FlagContext, make_document: MakeDocument) -> None:
        document_id = make_document()
        guarded.start(document_id)

        assert guarded.is_run_recently(document_id)

    def test_expires_after_tolerance(self, guarded: FlagContext, mock_clock: MockClock, make_document: MakeDocument) -> None:
        document_id = make_document()
        guarded.start(document_id)

        mock_clock.advance(5.0)
        assert guarded.is_run_recently(document_id)

        mock_clock.advance(6.0)
        assert not guarded.is_run_recently(document_id)

    def test_false_for_queued_only(self, guarded: FlagContext, make_document: MakeDocument) -> None:
        document_id = make_document()
        guarded.queue(document_id)

        assert not guarded.is_run_recently(document_id)

    def test_false_without_flag(self, guarded: FlagContext, make_document: MakeDocument) -> None:
        assert not guarded.is_run_recently(make_document(make_flag(key="other", started=CURRENT)))

    def test_custom_tolerance(self, store: FlagStore, mock_clock: MockClock, make_document: MakeDocument) -> None:
        context = FlagContext(FLAG_KEY, CONTEXT_VERSION, store, clock=mock_clock, tolerance=timedelta(minutes=5))
        document_id = make_document()
        context.start(document_id)

        mock_clock.advance(240)

        assert context.is_run_recently(document_id)

    def test_does_not_deduplicate(self, guarded: FlagContext, store: FlagStore, make_document: MakeDocument) -> None:
        document_id = make_document(make_flag(started=EARLIER), make_flag(started=CURRENT))

        assert guarded.is_run_recently(document_id)
        assert len(store.get_flags(document_id, FLAG_KEY)) == 2
