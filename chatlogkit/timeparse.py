"""Parsing of loosely formatted points in time."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from enum import IntEnum

__all__ = ["TimeGranularity", "time_of", "time_of_with_granularity", "is_valid_date"]


class TimeGranularity(IntEnum):
    """How precisely a parsed time was specified."""

    UNKNOWN = 0
    SECOND = 1
    MINUTE = 2
    HOUR = 3
    DAY = 4
    MONTH = 5
    QUARTER = 6
    YEAR = 7


_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_ATOI_RE = re.compile(r"[+-]?[0-9]+")
_DIGITS_RE = re.compile(r"[0-9]+")
_RELATIVE_RE = re.compile(r"([0-9]+)([hdwmy])")
_QUARTER_RE = re.compile(r"([0-9]{4})Q([1-4])")
_CLOCK_RE = re.compile(r"[0-9]{2}:[0-9]{2}")
_DURATION_PART_RE = re.compile(r"([0-9]*)(?:\.([0-9]*))?(ns|us|µs|μs|ms|s|m|h)")
_RFC3339_RE = re.compile(
    r"([0-9]{4})-([0-9]{2})-([0-9]{2})T([0-9]{2}):([0-9]{2})"
    r"(?::([0-9]{2})(?:\.([0-9]+))?)?"
    r"(Z|[+-][0-9]{2}:[0-9]{2})"
)

_DURATION_UNITS_NS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def _unsupported(text: str) -> ValueError:
    return ValueError(f"unsupported time format: {text!r}")


def _atoi(text: str) -> int:
    """Parse a signed decimal integer that must fit in 64 bits."""
    if not _ATOI_RE.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


def _is_digits(text: str) -> bool:
    return bool(_DIGITS_RE.fullmatch(text))


def _attach_local(naive: datetime) -> datetime:
    """Interpret a naive wall-clock time in the local zone."""
    try:
        return naive.astimezone()
    except (OSError, OverflowError, ValueError):
        return naive.replace(tzinfo=datetime.now().astimezone().tzinfo)


def _local(year: int, month: int = 1, day: int = 1, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    return _attach_local(datetime(year, month, day, hour, minute, second))


def _local_midnight(day: date) -> datetime:
    return _local(day.year, day.month, day.day)


def _from_unix(seconds: int) -> datetime:
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    try:
        return moment.astimezone()
    except (OSError, OverflowError, ValueError):
        return moment


def _add_date(moment: datetime, years: int = 0, months: int = 0, days: int = 0) -> datetime:
    """Shift a local time by calendar units, overflowing days into the next month."""
    naive = moment.replace(tzinfo=None)
    total = naive.month - 1 + months
    year = naive.year + years + total // 12
    month = total % 12 + 1
    shifted = datetime(
        year, month, 1, naive.hour, naive.minute, naive.second, naive.microsecond
    ) + timedelta(days=naive.day - 1 + days)
    return _attach_local(shifted)


def is_valid_date(year: int, month: int, day: int) -> bool:
    """Return whether ``day`` exists in the given month of the given year."""
    if month in (4, 6, 9, 11):
        days_in_month = 30
    elif month == 2:
        leap = (year % 4 == 0 and year % 100 != 0) or year % 400 == 0
        days_in_month = 29 if leap else 28
    else:
        days_in_month = 31
    return day <= days_in_month


def _check_date(text: str, year: int, month: int, day: int) -> None:
    if not (1970 <= year <= 9999 and 1 <= month <= 12 and 1 <= day <= 31):
        raise _unsupported(text)
    if not is_valid_date(year, month, day):
        raise _unsupported(text)


def _named_time(lowered: str) -> tuple[datetime, TimeGranularity] | None:
    if lowered == "now":
        return datetime.now().astimezone(), TimeGranularity.SECOND
    if lowered == "all":
        return _ZERO_TIME, TimeGranularity.YEAR

    today = date.today()
    if lowered == "today":
        return _local_midnight(today), TimeGranularity.DAY
    if lowered == "yesterday":
        return _local_midnight(today - timedelta(days=1)), TimeGranularity.DAY
    if lowered == "this-week":
        monday = today - timedelta(days=today.isoweekday() - 1)
        return _local_midnight(monday), TimeGranularity.DAY
    if lowered == "last-week":
        monday = today - timedelta(days=today.isoweekday() - 1 + 7)
        return _local_midnight(monday), TimeGranularity.DAY
    if lowered == "this-month":
        return _local(today.year, today.month), TimeGranularity.MONTH
    if lowered == "last-month":
        year, month = today.year, today.month - 1
        if month == 0:
            year, month = year - 1, 12
        return _local(year, month), TimeGranularity.MONTH
    if lowered == "this-year":
        return _local(today.year), TimeGranularity.YEAR
    if lowered == "last-year":
        return _local(today.year - 1), TimeGranularity.YEAR
    return None


def _parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``1h30m`` or ``1.5s``."""
    rest = text
    sign = 1
    if rest[:1] in ("+", "-"):
        if rest[0] == "-":
            sign = -1
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration: {text!r}")

    total_ns = 0
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART_RE.match(rest, pos)
        if match is None:
            raise ValueError(f"invalid duration: {text!r}")
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise ValueError(f"invalid duration: {text!r}")
        scale = _DURATION_UNITS_NS[unit]
        total_ns += int(whole or "0") * scale
        if fraction:
            total_ns += int(fraction) * scale // 10 ** len(fraction)
        if total_ns > 2**63:
            raise ValueError(f"invalid duration: {text!r}")
        pos = match.end()

    if total_ns > _INT64_MAX and sign > 0:
        raise ValueError(f"invalid duration: {text!r}")
    return timedelta(microseconds=sign * total_ns / 1000)


def _relative(text: str, original: str) -> tuple[datetime, TimeGranularity]:
    if text == "0d":
        return _local_midnight(date.today()), TimeGranularity.DAY

    match = _RELATIVE_RE.fullmatch(text)
    if match:
        num = _atoi(match.group(1))
        if num <= 0:
            raise _unsupported(original)
        now = datetime.now().astimezone()
        unit = match.group(2)
        try:
            if unit == "h":
                return now - timedelta(hours=num), TimeGranularity.HOUR
            if unit == "d":
                return _add_date(now, days=-num), TimeGranularity.DAY
            if unit == "w":
                return _add_date(now, days=-num * 7), TimeGranularity.DAY
            if unit == "m":
                return _add_date(now, months=-num), TimeGranularity.MONTH
            return _add_date(now, years=-num), TimeGranularity.YEAR
        except OverflowError as exc:
            raise _unsupported(original) from exc

    try:
        duration = _parse_duration(text)
        moment = datetime.now().astimezone() - duration
    except (ValueError, OverflowError) as exc:
        raise _unsupported(original) from exc

    hours = duration.total_seconds() / 3600
    if hours < 1:
        return moment, TimeGranularity.SECOND
    if hours < 24:
        return moment, TimeGranularity.HOUR
    return moment, TimeGranularity.DAY


def _parse_month(text: str) -> datetime:
    if len(text) == 6 and _is_digits(text):
        year, month = int(text[:4]), int(text[4:6])
    else:
        year_part, month_part = text.split("-")
        year, month = _atoi(year_part), _atoi(month_part)
    if not (1970 <= year <= 9999 and 1 <= month <= 12):
        raise _unsupported(text)
    return _local(year, month)


def _parse_date_part(text: str, original: str) -> tuple[int, int, int]:
    if len(text) == 8 and _is_digits(text):
        year, month, day = int(text[:4]), int(text[4:6]), int(text[6:8])
    elif len(text) == 10 and text.count("-") == 2:
        year, month, day = (_atoi(part) for part in text.split("-"))
    else:
        raise _unsupported(original)
    _check_date(original, year, month, day)
    return year, month, day


def _parse_date_with_clock(text: str) -> datetime:
    parts = text.split("/")
    if len(parts) != 2:
        raise _unsupported(text)
    date_part, clock_part = parts
    year, month, day = _parse_date_part(date_part, text)
    if not _CLOCK_RE.fullmatch(clock_part):
        raise _unsupported(text)
    hour, minute = (int(part) for part in clock_part.split(":"))
    if hour > 23 or minute > 59:
        raise _unsupported(text)
    return _local(year, month, day, hour, minute)


def _parse_compact(text: str) -> datetime:
    """Parse ``YYYYMMDDhhmm`` or ``YYYYMMDDhhmmss``."""
    year, month, day = int(text[:4]), int(text[4:6]), int(text[6:8])
    hour, minute = int(text[8:10]), int(text[10:12])
    second = int(text[12:14]) if len(text) == 14 else 0
    _check_date(text, year, month, day)
    if hour > 23 or minute > 59 or second > 59:
        raise _unsupported(text)
    return _local(year, month, day, hour, minute, second)


def _parse_rfc3339(text: str) -> datetime:
    match = _RFC3339_RE.fullmatch(text)
    if match is None:
        raise _unsupported(text)
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    if zone == "Z":
        tz = timezone.utc
    else:
        offset_hours, offset_minutes = int(zone[1:3]), int(zone[4:6])
        if offset_hours > 23 or offset_minutes > 59:
            raise _unsupported(text)
        offset = timedelta(hours=offset_hours, minutes=offset_minutes)
        tz = timezone(-offset if zone[0] == "-" else offset)
    microsecond = int((fraction or "").ljust(6, "0")[:6])
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second or 0), microsecond, tzinfo=tz
    )


def time_of_with_granularity(text: str) -> tuple[datetime, TimeGranularity]:
    """Parse a point in time and report how precisely it was given.

    Accepted forms include Unix seconds, ``20060102``, ``2006-01-02``,
    ``2006-01-02/15:04``, ``20060102150405``, ``200601021504``, RFC 3339,
    ``2006``, ``200601``, ``2006-01``, ``2006Q1``, ``5h-ago`` style
    relative times and the words ``now``, ``today``, ``yesterday``,
    ``this-week``, ``last-week``, ``this-month``, ``last-month``,
    ``this-year``, ``last-year`` and ``all``.  Raises ``ValueError``
    for anything else.
    """
    if not text:
        raise ValueError("empty time string")

    text = text.strip()

    named = _named_time(text.lower())
    if named is not None:
        return named

    if text.endswith("-ago"):
        return _relative(text[: -len("-ago")], text)

    quarter = _QUARTER_RE.fullmatch(text)
    if quarter:
        year, q = int(quarter.group(1)), int(quarter.group(2))
        if not 1970 <= year <= 9999:
            raise _unsupported(text)
        return _local(year, (q - 1) * 3 + 1), TimeGranularity.QUARTER

    if len(text) == 4 and _is_digits(text):
        year = int(text)
        if not 1970 <= year <= 9999:
            raise _unsupported(text)
        return _local(year), TimeGranularity.YEAR

    if (len(text) == 6 and _is_digits(text)) or (len(text) == 7 and text.count("-") == 1):
        return _parse_month(text), TimeGranularity.MONTH

    if (len(text) == 8 and _is_digits(text)) or (len(text) == 10 and text.count("-") == 2):
        year, month, day = _parse_date_part(text, text)
        return _local(year, month, day), TimeGranularity.DAY

    if len(text) == 12 and _is_digits(text):
        return _parse_compact(text), TimeGranularity.MINUTE

    if "/" in text:
        return _parse_date_with_clock(text), TimeGranularity.MINUTE

    if len(text) == 14 and _is_digits(text):
        return _parse_compact(text), TimeGranularity.SECOND

    if _is_digits(text):
        seconds = int(text)
        if 1_000_000_000 <= seconds <= 253_402_300_799:
            return _from_unix(seconds), TimeGranularity.SECOND
        raise _unsupported(text)

    if "T" in text and ("Z" in text or "+" in text or "-" in text):
        return _parse_rfc3339(text), TimeGranularity.SECOND

    raise _unsupported(text)


def time_of(text: str) -> datetime:
    """Parse a point in time; see :func:`time_of_with_granularity`."""
    moment, _ = time_of_with_granularity(text)
    return moment