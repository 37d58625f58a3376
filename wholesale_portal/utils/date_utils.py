# wholesale_portal/utils/date_utils.py
from datetime import date, datetime, time, timedelta
from typing import Optional, Union


def add_days(start_date: date, days: int) -> date:
    """Add days to a date.

    Args:
        start_date: Start date
        days: Number of days to add (may be negative)

    Returns:
        New date
    """
    return start_date + timedelta(days=days)

def convert_to_date(date_string: str, format_string: str = "%Y-%m-%d") -> date:
    """Convert string to date.

    Args:
        date_string: Date string
        format_string: Format string

    Returns:
        Date object
    """
    return datetime.strptime(date_string, format_string).date()

def to_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    """Normalize a date-like value to a calendar date.

    Accepts dates, datetimes and ISO strings (a time part is ignored).
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return convert_to_date(str(value).strip()[:10])

def get_js_weekday(target_date: date) -> int:
    """Get weekday number with Sunday=0 ... Saturday=6.

    Args:
        target_date: Target date

    Returns:
        Weekday number
    """
    # date.weekday() is Monday=0 ... Sunday=6
    return (target_date.weekday() + 1) % 7

def days_until_weekday(target_weekday: int, current_weekday: int) -> int:
    """Days until the next occurrence of a weekday, never zero.

    Both weekdays use the Sunday=0 ... Saturday=6 numbering. A target equal to
    the current weekday resolves to the following week.
    """
    diff = (target_weekday - current_weekday + 7) % 7
    return 7 if diff == 0 else diff

def at_time(target_date: date, hours: int, minutes: int, tzinfo=None) -> datetime:
    """Combine a date with a wall-clock time (seconds zeroed)."""
    return datetime.combine(target_date, time(hours, minutes), tzinfo=tzinfo)

