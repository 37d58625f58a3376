# wholesale_portal/batch/__init__.py
from .auto_confirm import (
    confirm_orders_past_deadline,
    auto_confirm_orders_past_deadline,
    run_auto_confirm_job
)

__all__ = [
    'confirm_orders_past_deadline',
    'auto_confirm_orders_past_deadline',
    'run_auto_confirm_job'
]
