from .delivery import (
    DAY_TO_INDEX, CutoffPolicy, parse_cutoff_time, resolve_delivery_days,
    compute_cutoff_instant, compute_next_delivery_date, get_order_deadline,
    is_past_deadline
)

__all__ = [
    'DAY_TO_INDEX',
    'CutoffPolicy',
    'parse_cutoff_time',
    'resolve_delivery_days',
    'compute_cutoff_instant',
    'compute_next_delivery_date',
    'get_order_deadline',
    'is_past_deadline'
]
