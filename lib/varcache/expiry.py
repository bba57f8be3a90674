"""
Expiry expression resolver, dood!

Turns the expiry argument accepted by the cache facade into an absolute
Unix timestamp, or 0 for "never expires". Accepted forms:

- "never", None, 0 or any negative number: never expires
- positive integers (or numeric strings): either a relative offset in
  seconds or an absolute timestamp, see resolveExpiry()
- datetime.timedelta: relative offset, datetime.datetime: absolute moment
- relative duration strings: "2 days", "1hour", "+1 week 2 days", "1d2h30m"
- keywords: "tomorrow" (next midnight), "next monday" .. "next sunday"
  (midnight of that day), "next hour", "next week", "next month" and so on
- date strings understood by dateutil: "2030-10-01", "2030-10-01 12:00:00+02:00"

Other free-form phrases ("last friday of next month", "in 3 days")
are not understood and raise InvalidExpiryError, as does any moment after
9999-12-31. A parsed moment in the past resolves to 0, so entries are never
created already expired.
"""

import datetime
import re
import time
from typing import Any, Dict, Optional

from dateutil import parser as dateParser
from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

import lib.utils as utils

from .exceptions import InvalidExpiryError

NEVER = "never"

_NUMERIC_PATTERN = re.compile(r"^[+-]?\d+$")
_RELATIVE_PART_PATTERN = re.compile(r"\s*([+-]?\d+)\s*([a-z]+)\s*")

# 9999-12-31 23:59:59 UTC, the last moment datetime can represent
MAX_TIMESTAMP = 253402300799

# Unit name -> (relativedelta argument, multiplier)
_RELATIVE_UNITS: Dict[str, tuple[str, int]] = {
    "sec": ("seconds", 1),
    "second": ("seconds", 1),
    "min": ("minutes", 1),
    "minute": ("minutes", 1),
    "hour": ("hours", 1),
    "day": ("days", 1),
    "week": ("weeks", 1),
    "fortnight": ("weeks", 2),
    "month": ("months", 1),
    "year": ("years", 1),
}

_WEEKDAYS = {
    "monday": MO,
    "tuesday": TU,
    "wednesday": WE,
    "thursday": TH,
    "friday": FR,
    "saturday": SA,
    "sunday": SU,
}


def _normalizeUnit(unit: str) -> Optional[str]:
    if unit in _RELATIVE_UNITS:
        return unit
    if unit.endswith("s") and unit[:-1] in _RELATIVE_UNITS:
        return unit[:-1]
    return None


def parseRelativeExpiry(text: str) -> Optional[relativedelta]:
    """
    Parse relative duration string into relativedelta, dood!

    Args:
        text: Duration such as "2 days", "1hour", "+1 week 3 days" or "-1 day"

    Returns:
        relativedelta for the duration, or None if text is not a relative
        duration made only of <number><unit> parts
    """
    text = text.strip().lower()
    if not text:
        return None

    kwargs: Dict[str, int] = {}
    pos = 0
    while pos < len(text):
        match = _RELATIVE_PART_PATTERN.match(text, pos)
        if match is None:
            return None
        unit = _normalizeUnit(match.group(2))
        if unit is None:
            return None
        argName, multiplier = _RELATIVE_UNITS[unit]
        kwargs[argName] = kwargs.get(argName, 0) + int(match.group(1)) * multiplier
        pos = match.end()

    return relativedelta(**kwargs)


def _parseKeywordMoment(text: str, nowDt: datetime.datetime) -> Optional[datetime.datetime]:
    """Handle "tomorrow", "next <unit>" and "next <weekday>", None for anything else."""
    words = text.lower().split()
    midnight = nowDt.replace(hour=0, minute=0, second=0, microsecond=0)

    if words == ["tomorrow"]:
        return midnight + relativedelta(days=1)

    if len(words) == 2 and words[0] == "next":
        if words[1] in _WEEKDAYS:
            return midnight + relativedelta(days=1, weekday=_WEEKDAYS[words[1]](+1))
        unit = _normalizeUnit(words[1])
        if unit is not None:
            argName, multiplier = _RELATIVE_UNITS[unit]
            return nowDt + relativedelta(**{argName: multiplier})

    return None


def _parseMoment(text: str, now: int) -> int:
    """Parse non-numeric expiry string into an absolute timestamp."""
    nowDt = datetime.datetime.fromtimestamp(now)

    try:
        moment = _parseKeywordMoment(text, nowDt)
        if moment is None:
            delta = parseRelativeExpiry(text)
            if delta is not None:
                moment = nowDt + delta
        if moment is not None:
            return int(moment.timestamp())
    except (ValueError, OverflowError) as e:
        raise InvalidExpiryError(f"Expiry out of range: {text!r}") from e

    # Compact delays like "1d2h30m15s"; "HH:MM" is a time of today and goes to dateutil
    if ":" not in text:
        try:
            return now + utils.parseDelay(text)
        except ValueError:
            pass

    try:
        moment = dateParser.parse(text, default=nowDt.replace(hour=0, minute=0, second=0, microsecond=0))
        return int(moment.timestamp())
    except (ValueError, OverflowError) as e:
        raise InvalidExpiryError(f"Invalid expiry date format: {text!r}") from e


def _checkRange(timestamp: int, expiry: Any) -> int:
    if timestamp > MAX_TIMESTAMP:
        raise InvalidExpiryError(f"Expiry out of range: {expiry!r}")
    return timestamp


def resolveExpiry(expiry: Any, now: Optional[int] = None) -> int:
    """
    Resolve expiry expression into absolute timestamp (0 means never), dood!

    Positive integers are ambiguous: a value greater than or equal to the
    current time is taken as an absolute Unix timestamp, anything smaller is
    an offset in seconds from now. A relative offset larger than the current
    Unix time is therefore misread as an absolute timestamp. Callers rely on
    this, so it stays; pass a timedelta or a duration string to be unambiguous.

    Args:
        expiry: Expiry expression (see module docstring for accepted forms)
        now: Current Unix timestamp, defaults to time.time()

    Returns:
        int: Absolute Unix timestamp or 0 for "never expires"

    Raises:
        InvalidExpiryError: If the expression cannot be parsed

    Example:
        >>> resolveExpiry(3600, now=1000000000)
        1000003600
        >>> resolveExpiry("never")
        0
        >>> resolveExpiry("1999-05-08")
        0
    """
    if now is None:
        now = int(time.time())

    if expiry is None:
        return 0

    # bool is an int subclass, True/False as an expiry is a caller bug
    if isinstance(expiry, bool):
        raise InvalidExpiryError(f"Invalid expiry value: {expiry!r}")

    if isinstance(expiry, datetime.timedelta):
        seconds = int(expiry.total_seconds())
        return _checkRange(now + seconds, expiry) if seconds > 0 else 0

    if isinstance(expiry, datetime.datetime):
        moment = int(expiry.timestamp())
        return 0 if moment < now else moment

    if isinstance(expiry, str):
        text = expiry.strip()
        if not text or text.lower() == NEVER:
            return 0
        if not _NUMERIC_PATTERN.match(text):
            moment = _checkRange(_parseMoment(text, now), expiry)
            return 0 if moment < now else moment
        expiry = int(text)

    if isinstance(expiry, (int, float)):
        try:
            seconds = int(expiry)
        except (ValueError, OverflowError) as e:
            raise InvalidExpiryError(f"Invalid expiry value: {expiry!r}") from e
        if seconds <= 0:
            return 0
        return _checkRange(seconds if seconds >= now else now + seconds, expiry)

    raise InvalidExpiryError(f"Unsupported expiry type: {type(expiry).__name__}")
