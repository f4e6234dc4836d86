# tests/conftest.py
"""Shared test fixtures and helpers.

Fixture Scoping Strategy
========================
- db: Function-scoped in-memory SQLite. Flag tests mutate documents heavily
  and assert exact record counts, so every test gets a clean store.
- clock: AdvancingClock starting at CURRENT. Each read moves time forward
  by 1ms, so successive transitions always get strictly increasing
  timestamps, and all timestamps are after CURRENT.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Callable, Iterator
from datetime import timedelta
from uuid import uuid4

import pytest
from hypothesis import Verbosity, settings

from doclib.contracts import Document, FlagRecord
from doclib.core.clock import AdvancingClock
from doclib.core.store import DoclibDB, FlagStore
from doclib.flags import FlagContext
from tests.fixtures.flags import CONTEXT_VERSION, CURRENT, FLAG_KEY

settings.register_profile("ci", max_examples=100, deadline=None)
settings.register_profile("nightly", max_examples=1000, deadline=None)
settings.register_profile("debug", max_examples=10, verbosity=Verbosity.verbose, deadline=None)
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "ci"))


@pytest.fixture
def db() -> Iterator[DoclibDB]:
    database = DoclibDB.in_memory()
    yield database
    database.close()


@pytest.fixture
def store(db: DoclibDB) -> FlagStore:
    return FlagStore(db)


@pytest.fixture
def clock() -> AdvancingClock:
    return AdvancingClock(CURRENT, step=timedelta(milliseconds=1))


@pytest.fixture
def context(store: FlagStore, clock: AdvancingClock) -> FlagContext:
    return FlagContext(FLAG_KEY, CONTEXT_VERSION, store, clock=clock)


@pytest.fixture
def make_document(store: FlagStore) -> Callable[..., str]:
    """Insert a document carrying the given flags and return its id."""

    def _make(*flags: FlagRecord, source: str = "/path/to/doc.txt") -> str:
        document_id = uuid4().hex
        store.insert_document(
            Document(
                id=document_id,
                source=source,
                hash="0123456789",
                mimetype="text/plain",
                created=CURRENT,
                updated=CURRENT,
                flags=flags,
            )
        )
        return document_id

    return _make
