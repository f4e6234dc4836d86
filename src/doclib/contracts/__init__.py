"""Shared contracts for doclib.

Everything that crosses a module boundary (records, outcomes, errors and
status enums) lives here so that the store and the flag state machine
agree on one vocabulary.
"""

from doclib.contracts.enums import FlagOperation, FlagSummary
from doclib.contracts.errors import DocumentNotFoundError, NotStartedError
from doclib.contracts.flags import Document, FlagRecord, FlagState, Version
from doclib.contracts.results import UpdatedResult

__all__ = [
    "Document",
    "DocumentNotFoundError",
    "FlagOperation",
    "FlagRecord",
    "FlagState",
    "FlagSummary",
    "NotStartedError",
    "UpdatedResult",
    "Version",
]
