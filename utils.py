import calendar
from datetime import date

from constants import WEEKDAY_KEYS


def parse_year_month(year_month: str) -> tuple[int, int]:
    """Parse 'YYYY-MM' into (year, month)."""
    try:
        year_str, month_str = year_month.split('-')
        year, month = int(year_str), int(month_str)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid year-month '{year_month}', expected YYYY-MM")
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in '{year_month}'")
    return year, month


def format_year_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def days_in_month(year: int, month: int) -> list[date]:
    _, num_days = calendar.monthrange(year, month)
    return [date(year, month, d) for d in range(1, num_days + 1)]


def prev_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def next_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def weekday_key(day: date) -> str:
    """Pattern key ('mon'..'sun') for a date."""
    return WEEKDAY_KEYS[day.weekday()]


def parse_date(value) -> date:
    """Accept a date or an ISO 'YYYY-MM-DD' string (as stored in config.yaml)."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def carried_streak(last_off: date | None, first_day: date) -> int:
    """Working days already accumulated when the month starts.

    A last day off on the final day of the previous month (or later) means no streak.
    """
    if last_off is None:
        return 0
    gap = (first_day - last_off).days
    if gap > 1:
        return gap - 1
    return 0

