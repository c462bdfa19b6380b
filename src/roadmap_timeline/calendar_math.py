"""Calendar arithmetic for the timeline.

Every function works on calendar days. Inputs may be ``date`` or ``datetime``
values; the time of day is ignored wherever a day count is meant, and day
arithmetic moves calendar fields instead of adding a fixed duration, so a
DST transition can never shift a result onto the neighbouring day.
"""

import calendar
from datetime import date, datetime, timezone

_ISO_DATE_LENGTH = len("YYYY-MM-DD")


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def add_days(value: date, days: int) -> date:
    """Return a new value exactly ``days`` calendar days after ``value``.

    For a ``datetime`` the wall-clock time and tzinfo are kept, so midnight
    stays midnight even when the span crosses a DST transition.

    Args:
        value: The starting date or datetime
        days: Number of days to add (can be negative)

    Returns:
        A value of the same type; the argument is not modified
    """
    shifted = date.fromordinal(value.toordinal() + days)
    if isinstance(value, datetime):
        return value.replace(year=shifted.year, month=shifted.month, day=shifted.day)
    return shifted


def days_between(start: date, end: date) -> int:
    """Signed number of calendar days from ``start`` to ``end``.

    Both values are reduced to their calendar day first, so two times on the
    same day are 0 days apart and the result is antisymmetric.
    """
    return _as_date(end).toordinal() - _as_date(start).toordinal()


def parse_date(value) -> date | None:
    """Parse a host-supplied value into a calendar date.

    Accepts ``date``/``datetime`` objects, ISO strings (anything after the
    ``YYYY-MM-DD`` prefix is ignored) and epoch timestamps in milliseconds.
    Missing or unparseable values give ``None``; an undated row is normal.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, date):
        return _as_date(value)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    try:
        return date.fromisoformat(str(value).strip()[:_ISO_DATE_LENGTH])
    except (ValueError, TypeError):
        return None


def get_week_number(value: date) -> int:
    """ISO-8601 week number (1-53); weeks start on Monday."""
    return _as_date(value).isocalendar()[1]


def get_month_start(year: int, month: int) -> date:
    """First day of a month (``month`` is 1-12)."""
    return date(year, month, 1)


def get_month_end(year: int, month: int) -> date:
    """Last day of a month (``month`` is 1-12), leap years included."""
    return date(year, month, calendar.monthrange(year, month)[1])


def get_quarter(value: date) -> int:
    """Quarter (1-4) containing ``value``."""
    return (value.month - 1) // 3 + 1


def get_quarter_start(year: int, quarter: int) -> date:
    return date(year, (quarter - 1) * 3 + 1, 1)


def get_quarter_end(year: int, quarter: int) -> date:
    return get_month_end(year, quarter * 3)


def is_weekend(value: date) -> bool:
    return value.weekday() >= 5


def is_monday(value: date) -> bool:
    return value.weekday() == 0


def is_first_of_month(value: date) -> bool:
    return value.day == 1


def is_first_of_year(value: date) -> bool:
    return value.month == 1 and value.day == 1


def is_first_of_quarter(value: date) -> bool:
    return value.day == 1 and (value.month - 1) % 3 == 0


def today() -> date:
    """Today's calendar date."""
    return date.today()


def clamp(value: date, minimum: date, maximum: date) -> date:
    """Clamp ``value`` into ``[minimum, maximum]``."""
    if value < minimum:
        return minimum
    if value > maximum:
        return maximum
    return value


def next_monday(value: date) -> date:
    """The Monday on or after ``value``."""
    return add_days(value, (7 - value.weekday()) % 7)
