# wholesale_portal/batch/auto_confirm.py
import logging
from datetime import datetime
from typing import Dict, Iterable, Optional

from wholesale_portal.core.delivery import CutoffPolicy, get_order_deadline
from wholesale_portal.db.interface import OrderStore, get_order_store
from wholesale_portal.logging_setup import get_logger, log_exception, logger as portal_logger
from wholesale_portal.models import OrderStatus
from wholesale_portal.utils.date_utils import to_date

logger = get_logger('auto_confirm')
logger.setLevel(logging.INFO)


def _order_field(order, name):
    if isinstance(order, dict):
        return order.get(name)
    return getattr(order, name, None)


def confirm_orders_past_deadline(
    pending_orders: Iterable,
    policy: CutoffPolicy,
    now: datetime,
    store: OrderStore
) -> int:
    """Confirm pending orders whose cutoff has elapsed.

    Each order's deadline is its delivery date minus the cutoff day offset, at
    the cutoff time. Orders strictly past the deadline are confirmed through a
    conditional store write that only applies while the order is still pending.
    A failure on one order is logged and the sweep moves on.

    Args:
        pending_orders: Orders (dicts or objects) with id, delivery_date, status
        policy: Organization cutoff policy
        now: Current instant
        store: Order store performing the conditional transition

    Returns:
        Number of orders transitioned by this call
    """
    confirmed_count = 0

    for order in pending_orders:
        order_id = _order_field(order, 'id')
        status = _order_field(order, 'status')
        if hasattr(status, 'value'):
            status = status.value

        if status != OrderStatus.PENDING.value:
            continue

        try:
            delivery_date = to_date(_order_field(order, 'delivery_date'))
        except ValueError:
            logger.warning(f"Skipping order {order_id}: unreadable delivery date")
            continue

        if delivery_date is None:
            continue

        # Config errors are not per-order failures and propagate
        deadline = get_order_deadline(delivery_date, policy, now.tzinfo)
        if not now > deadline:
            continue

        try:
            if store.confirm_if_pending(order_id):
                confirmed_count += 1
                logger.info(f"Auto-confirmed order {order_id} (deadline {deadline.isoformat()})")
            else:
                logger.debug(f"Order {order_id} no longer pending, skipped")
        except Exception as e:
            log_exception('auto_confirm', e, f"Error auto-confirming order {order_id}")

    return confirmed_count


def auto_confirm_orders_past_deadline(
    store,
    settings_service=None,
    now: Optional[datetime] = None
) -> int:
    """Load the cutoff policy and pending orders, then run the sweep.

    Args:
        store: Store implementing both order and settings access
        settings_service: Optional SettingsService (built from store if omitted)
        now: Current instant (defaults to datetime.now())

    Returns:
        Number of orders transitioned
    """
    from wholesale_portal.services.settings_service import SettingsService

    settings_service = settings_service or SettingsService(store)
    now = now or datetime.now()

    policy = settings_service.get_cutoff_policy()

    try:
        pending_orders = store.fetch_pending_orders()
    except Exception as e:
        logger.error(f"Error fetching pending orders for auto-confirmation: {str(e)}")
        return 0

    return confirm_orders_past_deadline(pending_orders, policy, now, store)


def run_auto_confirm_job(now: Optional[datetime] = None) -> Dict:
    """Run the auto-confirmation sweep against the configured database.

    Returns:
        Dictionary with job results
    """
    with portal_logger.batch_run('auto_confirm', {'now': now}) as results:
        store = get_order_store()
        try:
            confirmed = auto_confirm_orders_past_deadline(store, now=now)
        finally:
            store.close()
        results.update({'success': True, 'confirmed': confirmed})

    return results
