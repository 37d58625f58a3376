# wholesale_portal/core/delivery.py
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Tuple, Union

from ..exceptions import (
    InvalidCutoffFormat, InvalidCutoffOffset, InvalidDeliveryDay,
    NoValidDeliveryDateFound
)
from ..utils.date_utils import add_days, at_time, days_until_weekday, get_js_weekday

DAY_TO_INDEX: Dict[str, int] = {
    'sunday': 0,
    'monday': 1,
    'tuesday': 2,
    'wednesday': 3,
    'thursday': 4,
    'friday': 5,
    'saturday': 6,
}

INDEX_TO_DAY: Dict[int, str] = {index: name for name, index in DAY_TO_INDEX.items()}

DEFAULT_SEARCH_WEEKS = 6

# HH:mm with an optional :ss suffix as returned by SQL time columns
_CUTOFF_PATTERN = re.compile(r'^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*$')


@dataclass(frozen=True)
class CutoffPolicy:
    """Organization-wide order cutoff.

    Orders for a delivery date must be placed by ``cutoff_time`` on
    ``delivery_date - cutoff_day_offset`` days.
    """
    cutoff_time: str
    cutoff_day_offset: int

    @classmethod
    def from_settings(cls, settings: Dict) -> 'CutoffPolicy':
        return cls(
            cutoff_time=settings['cutoff_time'],
            cutoff_day_offset=settings['cutoff_day_offset']
        )


def parse_cutoff_time(value: str) -> Tuple[int, int]:
    """Parse a 24h cutoff time into hours and minutes.

    Args:
        value: Time string such as ``"14:00"``

    Returns:
        Tuple with hours and minutes

    Raises:
        InvalidCutoffFormat if the value is not a valid 24h time
    """
    if not isinstance(value, str):
        raise InvalidCutoffFormat(value)

    match = _CUTOFF_PATTERN.match(value)
    if not match:
        raise InvalidCutoffFormat(value)

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidCutoffFormat(value)

    return hours, minutes


def validate_cutoff_offset(value) -> int:
    """Return the cutoff day offset as a non-negative int."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidCutoffOffset(value)
    return value


def normalize_day_name(day: str) -> str:
    return day.strip().lower()


def resolve_delivery_days(delivery_days: Iterable[Union[str, int]]) -> List[int]:
    """Map delivery day identifiers to sorted, unique weekday indices.

    Names are matched case-insensitively; integers 0-6 (Sunday=0) are taken
    as indices directly.

    Raises:
        InvalidDeliveryDay for an empty collection or an unknown identifier
    """
    if delivery_days is None:
        raise InvalidDeliveryDay([], "At least one delivery day is required")

    indices = set()
    for day in delivery_days:
        if isinstance(day, bool):
            raise InvalidDeliveryDay(day)
        if isinstance(day, int):
            if day not in INDEX_TO_DAY:
                raise InvalidDeliveryDay(day)
            indices.add(day)
            continue
        if not isinstance(day, str):
            raise InvalidDeliveryDay(day)

        index = DAY_TO_INDEX.get(normalize_day_name(day))
        if index is None:
            raise InvalidDeliveryDay(
                day,
                f'Unsupported delivery day: "{day}". Valid days: {", ".join(DAY_TO_INDEX)}'
            )
        indices.add(index)

    if not indices:
        raise InvalidDeliveryDay([], "At least one delivery day is required")

    return sorted(indices)


def compute_cutoff_instant(
    delivery_date: date,
    cutoff_day_offset: int,
    hours: int,
    minutes: int,
    tzinfo=None
) -> datetime:
    """Latest moment an order can still be placed for ``delivery_date``."""
    return at_time(add_days(delivery_date, -cutoff_day_offset), hours, minutes, tzinfo)


def get_delivery_candidates(
    weekday_indices: List[int],
    policy: CutoffPolicy,
    now: datetime,
    weeks: int = DEFAULT_SEARCH_WEEKS
) -> List[Tuple[date, datetime]]:
    """Build (delivery date, cutoff instant) pairs in chronological order.

    Args:
        weekday_indices: Delivery weekdays (Sunday=0)
        policy: Cutoff policy
        now: Current instant
        weeks: Number of weeks to search

    Returns:
        Sorted list of candidate pairs
    """
    hours, minutes = parse_cutoff_time(policy.cutoff_time)
    offset = validate_cutoff_offset(policy.cutoff_day_offset)
    # No candidate lies further than weeks * 7 days out
    if offset > weeks * 7:
        raise NoValidDeliveryDateFound(weeks)
    today = now.date()
    today_index = get_js_weekday(today)

    candidates = []
    for week_offset in range(weeks):
        for weekday in weekday_indices:
            total_days = week_offset * 7 + days_until_weekday(weekday, today_index)
            delivery_date = add_days(today, total_days)
            cutoff = compute_cutoff_instant(delivery_date, offset, hours, minutes, now.tzinfo)
            candidates.append((delivery_date, cutoff))

    candidates.sort()
    return candidates


def compute_next_delivery_date(
    delivery_days: Iterable[Union[str, int]],
    policy: CutoffPolicy,
    now: datetime,
    weeks: int = DEFAULT_SEARCH_WEEKS
) -> date:
    """Compute the next delivery date whose cutoff has not passed.

    A delivery on the current weekday is never same-day; it resolves to the
    following week. A candidate qualifies only when ``now`` is strictly
    before its cutoff instant.

    Args:
        delivery_days: Weekday names or indices the client receives deliveries on
        policy: Organization cutoff policy
        now: Current instant
        weeks: Search horizon in weeks

    Returns:
        Delivery date

    Raises:
        InvalidCutoffFormat, InvalidCutoffOffset, InvalidDeliveryDay,
        NoValidDeliveryDateFound
    """
    # Validate the cutoff before the day list so format errors win
    parse_cutoff_time(policy.cutoff_time)
    weekday_indices = resolve_delivery_days(delivery_days)

    for delivery_date, cutoff in get_delivery_candidates(weekday_indices, policy, now, weeks):
        if now < cutoff:
            return delivery_date

    raise NoValidDeliveryDateFound(weeks)


def get_order_deadline(delivery_date: date, policy: CutoffPolicy, tzinfo=None) -> datetime:
    """Deadline after which a pending order for ``delivery_date`` is locked."""
    hours, minutes = parse_cutoff_time(policy.cutoff_time)
    offset = validate_cutoff_offset(policy.cutoff_day_offset)
    try:
        return compute_cutoff_instant(delivery_date, offset, hours, minutes, tzinfo)
    except OverflowError:
        raise InvalidCutoffOffset(offset, f"Cutoff day offset {offset} is out of the calendar range")


def is_past_deadline(delivery_date: date, policy: CutoffPolicy, now: datetime) -> bool:
    """True once ``now`` is strictly after the order deadline."""
    return now > get_order_deadline(delivery_date, policy, now.tzinfo)
