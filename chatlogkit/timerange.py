"""Parsing of loosely formatted time ranges."""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, time, timedelta, timezone

from .timeparse import TimeGranularity, time_of_with_granularity

__all__ = ["time_range_of", "adjust_start_time", "adjust_end_time", "perfect_time_format"]

_INT64_MAX = 2**63 - 1
_LAST_RE = re.compile(r"last-([0-9]+)([dwmy])")
_SEPARATORS = ("~", ",", " to ")
_ALL_START = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ALL_END = datetime(9999, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)
_FINE = frozenset({TimeGranularity.SECOND, TimeGranularity.MINUTE, TimeGranularity.HOUR})


def _attach_local(naive: datetime) -> datetime:
    try:
        return naive.astimezone()
    except (OSError, OverflowError, ValueError):
        return naive.replace(tzinfo=datetime.now().astimezone().tzinfo)


def _is_local(moment: datetime) -> bool:
    if moment.tzinfo is None:
        return False
    try:
        return moment.utcoffset() == moment.astimezone().utcoffset()
    except (OSError, OverflowError, ValueError):
        return False


def _rebuild(
    moment: datetime,
    year: int,
    month: int,
    day: int,
    hour: int = 0,
    minute: int = 0,
    second: int = 0,
    microsecond: int = 0,
) -> datetime:
    """Build a wall-clock time in the same zone as ``moment``."""
    naive = datetime(year, month, day, hour, minute, second, microsecond)
    if moment.tzinfo is None:
        return naive
    if _is_local(moment):
        return _attach_local(naive)
    return naive.replace(tzinfo=moment.tzinfo)


def _day_start(moment: datetime) -> datetime:
    return _rebuild(moment, moment.year, moment.month, moment.day)


def _day_end(moment: datetime) -> datetime:
    return _rebuild(moment, moment.year, moment.month, moment.day, 23, 59, 59, 999999)


def _month_end(moment: datetime, month: int) -> datetime:
    last = calendar.monthrange(moment.year, month)[1]
    return _rebuild(moment, moment.year, month, last, 23, 59, 59, 999999)


def _quarter_start_month(month: int) -> int:
    return (month - 1) // 3 * 3 + 1


def adjust_start_time(moment: datetime, granularity: TimeGranularity) -> datetime:
    """Move ``moment`` to the start of the period its granularity names."""
    if granularity in _FINE:
        return moment
    if granularity == TimeGranularity.DAY:
        return _day_start(moment)
    if granularity == TimeGranularity.MONTH:
        return _rebuild(moment, moment.year, moment.month, 1)
    if granularity == TimeGranularity.QUARTER:
        return _rebuild(moment, moment.year, _quarter_start_month(moment.month), 1)
    if granularity == TimeGranularity.YEAR:
        return _rebuild(moment, moment.year, 1, 1)
    return _day_start(moment)


def adjust_end_time(moment: datetime, granularity: TimeGranularity) -> datetime:
    """Move ``moment`` to the last instant of the period its granularity names."""
    if granularity in _FINE:
        return moment
    if granularity == TimeGranularity.DAY:
        return _day_end(moment)
    if granularity == TimeGranularity.MONTH:
        return _month_end(moment, moment.month)
    if granularity == TimeGranularity.QUARTER:
        return _month_end(moment, _quarter_start_month(moment.month) + 2)
    if granularity == TimeGranularity.YEAR:
        return _rebuild(moment, moment.year, 12, 31, 23, 59, 59, 999999)
    return _day_end(moment)


def _shift_date(day: date, years: int = 0, months: int = 0, days: int = 0) -> date:
    """Shift a date by calendar units, overflowing days into the next month."""
    total = day.month - 1 + months
    year = day.year + years + total // 12
    month = total % 12 + 1
    return date(year, month, 1) + timedelta(days=day.day - 1 + days)


def _last_range(num: int, unit: str) -> tuple[datetime, datetime]:
    today = datetime.now().astimezone().date()
    end = _attach_local(datetime.combine(today, time(23, 59, 59, 999999)))
    if unit == "d":
        first = _shift_date(today, days=-num)
    elif unit == "w":
        first = _shift_date(today, days=-num * 7)
    elif unit == "m":
        first = _shift_date(today, months=-num)
    else:
        first = _shift_date(today, years=-num)
    return _attach_local(datetime.combine(first, time())), end


def _point_range(moment: datetime, granularity: TimeGranularity) -> tuple[datetime, datetime]:
    if granularity in _FINE or granularity == TimeGranularity.DAY:
        return _day_start(moment), _day_end(moment)
    return adjust_start_time(moment, granularity), adjust_end_time(moment, granularity)


def time_range_of(text: str) -> tuple[datetime, datetime]:
    """Parse a time range and return its first and last instant.

    Accepts ``all``, ``last-7d`` style ranges (``d``, ``w``, ``m``, ``y``),
    two points joined by ``~``, ``,`` or `` to `` (swapped if given in
    reverse), or a single point, which spans its whole day, month,
    quarter or year.  Raises ``ValueError`` for anything else.
    """
    if not text:
        raise ValueError("empty time range")

    text = text.strip()

    if text.lower() == "all":
        return _ALL_START, _ALL_END

    last = _LAST_RE.fullmatch(text)
    if last:
        num = int(last.group(1))
        if num <= 0 or num > _INT64_MAX:
            raise ValueError(f"unsupported time range: {text!r}")
        try:
            return _last_range(num, last.group(2))
        except (ValueError, OverflowError) as exc:
            raise ValueError(f"unsupported time range: {text!r}") from exc

    for sep in _SEPARATORS:
        if sep not in text:
            continue
        parts = text.split(sep)
        if len(parts) != 2:
            continue
        try:
            start_time, start_gran = time_of_with_granularity(parts[0].strip())
            end_time, end_gran = time_of_with_granularity(parts[1].strip())
        except ValueError:
            continue
        start = adjust_start_time(start_time, start_gran)
        end = adjust_end_time(end_time, end_gran)
        if start > end:
            start = adjust_start_time(end_time, end_gran)
            end = adjust_end_time(start_time, start_gran)
        return start, end

    moment, granularity = time_of_with_granularity(text)
    return _point_range(moment, granularity)


def perfect_time_format(start: datetime, end: datetime) -> str:
    """Return the shortest ``strftime`` format that tells apart times in a range.

    An end exactly at midnight counts as the end of the previous day.
    """
    end_time = end
    if end_time.hour == 0 and end_time.minute == 0 and end_time.second == 0 and end_time.microsecond == 0:
        end_time = end_time - timedelta(seconds=1)

    if start.year != end_time.year:
        return "%Y-%m-%d %H:%M:%S"
    if start.timetuple().tm_yday != end_time.timetuple().tm_yday:
        return "%m-%d %H:%M:%S"
    return "%H:%M:%S"