"""Recently-run guard.

Message brokers can deliver the same trigger several times in quick
succession. Callers ask whether a stage was started within a tolerance
window before re-queueing it.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

from doclib.contracts import FlagRecord

DEFAULT_TOLERANCE = timedelta(seconds=10)


def started_recently(flag: FlagRecord, tolerance: timedelta, now: datetime) -> bool:
    """True if ``flag`` was started less than ``tolerance`` before ``now``."""
    if flag.started is None:
        return False
    return flag.started + tolerance > now


def any_started_recently(flags: Iterable[FlagRecord], tolerance: timedelta, now: datetime) -> bool:
    return any(started_recently(flag, tolerance, now) for flag in flags)
