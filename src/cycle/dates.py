"""Calendar-day arithmetic shared by the prediction engine and phase classifier.

Every date-like input is normalised to a local calendar date before any
subtraction, so that a timestamp logged at 23:30 and one logged at 00:10
land on the days the user saw them on.  Differences between two
normalised dates are whole days; the ceiling/floor helpers only matter
when a caller passes raw datetimes as "now".
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Union

DateLike = Union[date, datetime, str]

_SECONDS_PER_DAY = 86400


def to_local_date(value: DateLike) -> date:
    """Normalise a date, datetime or ISO-8601 string to a local calendar date.

    Date-only strings (``2024-01-05``) are taken as written.  Timezone-aware
    datetimes are converted to the local timezone first; naive datetimes are
    assumed to already be local.

    Raises:
        ValueError: If a string is not valid ISO-8601.
        TypeError:  If the value is not date-like at all.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        return to_local_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
    raise TypeError(f"Expected a date, datetime or ISO string, got {type(value).__name__}")


def local_midnight(value: DateLike) -> datetime:
    """Return naive local midnight of the day ``value`` falls on."""
    return datetime.combine(to_local_date(value), datetime.min.time())


def days_until(target: DateLike, now: DateLike) -> int:
    """Days remaining until ``target``, rounded up.

    At 10:00, tomorrow is 1 day away and today is 0.
    """
    delta = local_midnight(target) - _as_local_datetime(now)
    return math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)


def days_since(start: DateLike, now: DateLike) -> int:
    """Days elapsed since ``start``, rounded down."""
    delta = _as_local_datetime(now) - local_midnight(start)
    return math.floor(delta.total_seconds() / _SECONDS_PER_DAY)


def _as_local_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value
    return local_midnight(value)
