"""Status labels stored on flag records."""

from enum import StrEnum


class FlagSummary(StrEnum):
    """Human-readable status label of a flag record.

    Stored in the database (flags.summary).
    """

    STARTED = "started"
    ENDED = "ended"
    ERRORED = "errored"


class FlagOperation(StrEnum):
    """Names of the flag transitions.

    Used in NotStartedError messages and log events.
    """

    QUEUE = "queue"
    START = "start"
    RESTART = "restart"
    END = "end"
    ERROR = "error"
    RESET = "reset"
