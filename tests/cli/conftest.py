# tests/cli/conftest.py
"""Shared fixtures for CLI tests."""

import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest
import structlog
import yaml

from doclib.contracts import Document, FlagRecord
from doclib.core.store import DoclibDB, FlagStore
from tests.fixtures.flags import CURRENT, FLAG_KEY


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Commands call configure_logging, which points the root handler at the runner's stdout."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'flags.db'}"


@pytest.fixture
def write_settings(tmp_path: Path) -> Callable[[str], Path]:
    """Write a settings YAML for the given database url and return its path."""

    def _write(url: str) -> Path:
        data: dict[str, Any] = {
            "database": {"url": url},
            "flags": {"key": FLAG_KEY, "version": "2.0.6", "version_hash": "20837d29", "tolerance_seconds": 60},
            "logging": {"level": "WARNING"},
        }
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


@pytest.fixture
def settings_file(write_settings: Callable[[str], Path], db_url: str) -> Path:
    """Settings YAML pointing at a file database under tmp_path."""
    return write_settings(db_url)


@pytest.fixture
def seed_document(db_url: str) -> Callable[..., str]:
    """Insert a document into the CLI's database and return its id."""

    def _seed(*flags: FlagRecord) -> str:
        document_id = uuid4().hex
        with DoclibDB(db_url) as db:
            FlagStore(db).insert_document(
                Document(
                    id=document_id,
                    source="/path/to/doc.txt",
                    hash="0123",
                    mimetype="text/plain",
                    created=CURRENT,
                    updated=CURRENT,
                    flags=flags,
                )
            )
        return document_id

    return _seed


@pytest.fixture
def read_flags(db_url: str) -> Callable[..., list[FlagRecord]]:
    def _read(document_id: str, key: str = FLAG_KEY) -> list[FlagRecord]:
        with DoclibDB(db_url) as db:
            return FlagStore(db).get_flags(document_id, key)

    return _read
