"""Broken-down time computed from a timestamp and an explicit UTC offset."""

from __future__ import annotations

from dataclasses import dataclass

_SECS_PER_HOUR = 60 * 60
_SECS_PER_DAY = _SECS_PER_HOUR * 24

_MON_YDAY = (
    (0, 31, 59, 90, 120, 151, 181, 212, 243, 273, 304, 334, 365),
    (0, 31, 60, 91, 121, 152, 182, 213, 244, 274, 305, 335, 366),
)

_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1


@dataclass(frozen=True)
class BrokenDownTime:
    """Calendar fields; month is 1-12, weekday 0 is Sunday, yday is 0-based."""

    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int
    weekday: int
    yday: int
    gmtoff: int


def is_leap(year: int) -> bool:
    """True for Gregorian leap years."""
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def _leaps_thru_end_of(year: int) -> int:
    return year // 4 - year // 100 + year // 400


def localtime(timestamp: int, gmtoff: int) -> BrokenDownTime:
    """Convert seconds since the epoch, shifted gmtoff seconds east of UTC.

    Raises OverflowError when the year does not fit a C int.
    """
    timestamp = int(timestamp)
    gmtoff = int(gmtoff)

    days, rem = divmod(timestamp, _SECS_PER_DAY)
    rem += gmtoff
    extra, rem = divmod(rem, _SECS_PER_DAY)
    days += extra

    hour, rem = divmod(rem, _SECS_PER_HOUR)
    minute, second = divmod(rem, 60)
    weekday = (4 + days) % 7  # 1970-01-01 was a Thursday

    year = 1970
    while days < 0 or days >= (366 if is_leap(year) else 365):
        guess = year + days // 365
        days -= (
            (guess - year) * 365
            + _leaps_thru_end_of(guess - 1)
            - _leaps_thru_end_of(year - 1)
        )
        year = guess

    if not _INT_MIN <= year - 1900 <= _INT_MAX:
        raise OverflowError(f"year {year} cannot be represented")

    table = _MON_YDAY[is_leap(year)]
    month = max(m for m in range(12) if days >= table[m])

    return BrokenDownTime(
        year=year,
        month=month + 1,
        day=days - table[month] + 1,
        hour=hour,
        minute=minute,
        second=second,
        weekday=weekday,
        yday=days,
        gmtoff=gmtoff,
    )