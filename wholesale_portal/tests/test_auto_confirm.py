"""
Tests for the auto-confirmation sweep.
"""
import unittest
from datetime import date, datetime
from unittest.mock import MagicMock, patch

from wholesale_portal.batch.auto_confirm import (
    auto_confirm_orders_past_deadline,
    confirm_orders_past_deadline,
    run_auto_confirm_job
)
from wholesale_portal.core.delivery import CutoffPolicy
from wholesale_portal.db.interface import OrderStore, SettingsStore
from wholesale_portal.exceptions import DatabaseError, InvalidCutoffFormat, InvalidCutoffOffset
from wholesale_portal.services.settings_service import SettingsService


class InMemoryStore(OrderStore, SettingsStore):
    """Order and settings store keeping rows in dicts."""

    def __init__(self, orders=None, settings=None):
        self.orders = {order['id']: dict(order) for order in (orders or [])}
        self.settings = dict(settings or {})
        self.confirm_calls = []

    def fetch_pending_orders(self):
        return [dict(order) for order in self.orders.values() if order['status'] == 'pending']

    def confirm_if_pending(self, order_id):
        self.confirm_calls.append(order_id)
        order = self.orders.get(order_id)
        if order is None or order['status'] != 'pending':
            return False
        order['status'] = 'confirmed'
        return True

    def get_setting(self, key):
        return self.settings.get(key)

    def get_all_settings(self):
        return dict(self.settings)

    def set_setting(self, key, value):
        self.settings[key] = value


class TestConfirmOrdersPastDeadline(unittest.TestCase):

    def setUp(self):
        self.policy = CutoffPolicy(cutoff_time="14:00", cutoff_day_offset=1)
        self.now = datetime(2024, 1, 3, 10, 0)  # Wednesday

    def test_order_delivered_yesterday_is_confirmed(self):
        store = InMemoryStore([{'id': 'o1', 'delivery_date': date(2024, 1, 2), 'status': 'pending'}])

        count = confirm_orders_past_deadline(store.fetch_pending_orders(), self.policy, self.now, store)

        self.assertEqual(count, 1)
        self.assertEqual(store.orders['o1']['status'], 'confirmed')

    def test_order_before_deadline_stays_pending(self):
        # Thursday delivery, deadline Wednesday 14:00
        store = InMemoryStore([{'id': 'o1', 'delivery_date': date(2024, 1, 4), 'status': 'pending'}])

        count = confirm_orders_past_deadline(store.fetch_pending_orders(), self.policy, self.now, store)

        self.assertEqual(count, 0)
        self.assertEqual(store.orders['o1']['status'], 'pending')
        self.assertEqual(store.confirm_calls, [])

    def test_deadline_instant_itself_is_not_past(self):
        store = InMemoryStore([{'id': 'o1', 'delivery_date': date(2024, 1, 4), 'status': 'pending'}])
        now = datetime(2024, 1, 3, 14, 0)

        self.assertEqual(confirm_orders_past_deadline(store.fetch_pending_orders(), self.policy, now, store), 0)

        later = datetime(2024, 1, 3, 14, 0, 1)
        self.assertEqual(confirm_orders_past_deadline(store.fetch_pending_orders(), self.policy, later, store), 1)

    def test_orders_without_delivery_date_are_skipped(self):
        store = InMemoryStore([
            {'id': 'o1', 'delivery_date': None, 'status': 'pending'},
            {'id': 'o2', 'delivery_date': '', 'status': 'pending'},
        ])

        count = confirm_orders_past_deadline(store.fetch_pending_orders(), self.policy, self.now, store)

        self.assertEqual(count, 0)
        self.assertEqual(store.confirm_calls, [])

    def test_second_run_is_a_no_op(self):
        orders = [
            {'id': 'o1', 'delivery_date': date(2024, 1, 1), 'status': 'pending'},
            {'id': 'o2', 'delivery_date': date(2024, 1, 2), 'status': 'pending'},
            {'id': 'o3', 'delivery_date': date(2024, 1, 10), 'status': 'pending'},
        ]
        store = InMemoryStore(orders)

        first = confirm_orders_past_deadline(orders, self.policy, self.now, store)
        # Same stale input list, the store guard refuses the second write
        second = confirm_orders_past_deadline(orders, self.policy, self.now, store)

        self.assertEqual(first, 2)
        self.assertEqual(second, 0)
        self.assertEqual(store.orders['o3']['status'], 'pending')

    def test_non_pending_input_is_ignored(self):
        store = InMemoryStore([{'id': 'o1', 'delivery_date': date(2024, 1, 1), 'status': 'cancelled'}])
        orders = [{'id': 'o1', 'delivery_date': date(2024, 1, 1), 'status': 'cancelled'}]

        self.assertEqual(confirm_orders_past_deadline(orders, self.policy, self.now, store), 0)
        self.assertEqual(store.orders['o1']['status'], 'cancelled')

    def test_store_failure_does_not_abort_batch(self):
        store = MagicMock(spec=OrderStore)
        store.confirm_if_pending.side_effect = [DatabaseError("connection reset"), True, True]
        orders = [
            {'id': 'o1', 'delivery_date': date(2024, 1, 1), 'status': 'pending'},
            {'id': 'o2', 'delivery_date': date(2024, 1, 1), 'status': 'pending'},
            {'id': 'o3', 'delivery_date': date(2024, 1, 2), 'status': 'pending'},
        ]

        count = confirm_orders_past_deadline(orders, self.policy, self.now, store)

        self.assertEqual(count, 2)
        self.assertEqual(store.confirm_if_pending.call_count, 3)

    def test_guard_miss_is_not_counted(self):
        store = MagicMock(spec=OrderStore)
        store.confirm_if_pending.return_value = False
        orders = [{'id': 'o1', 'delivery_date': date(2024, 1, 1), 'status': 'pending'}]

        self.assertEqual(confirm_orders_past_deadline(orders, self.policy, self.now, store), 0)

    def test_iso_string_and_datetime_dates(self):
        store = InMemoryStore([
            {'id': 'o1', 'delivery_date': '2024-01-02', 'status': 'pending'},
            {'id': 'o2', 'delivery_date': '2024-01-01T00:00:00+00:00', 'status': 'pending'},
            {'id': 'o3', 'delivery_date': datetime(2024, 1, 2, 0, 0), 'status': 'pending'},
        ])

        count = confirm_orders_past_deadline(store.fetch_pending_orders(), self.policy, self.now, store)

        self.assertEqual(count, 3)

    def test_unreadable_date_is_skipped(self):
        store = InMemoryStore([
            {'id': 'o1', 'delivery_date': 'not-a-date', 'status': 'pending'},
            {'id': 'o2', 'delivery_date': date(2024, 1, 1), 'status': 'pending'},
        ])

        count = confirm_orders_past_deadline(store.fetch_pending_orders(), self.policy, self.now, store)

        self.assertEqual(count, 1)
        self.assertEqual(store.orders['o1']['status'], 'pending')

    def test_invalid_cutoff_raises(self):
        store = InMemoryStore([{'id': 'o1', 'delivery_date': date(2024, 1, 1), 'status': 'pending'}])
        policy = CutoffPolicy(cutoff_time="noon", cutoff_day_offset=1)

        with self.assertRaises(InvalidCutoffFormat):
            confirm_orders_past_deadline(store.fetch_pending_orders(), policy, self.now, store)

    def test_offset_past_calendar_range_raises(self):
        store = InMemoryStore([{'id': 'o1', 'delivery_date': date(2024, 1, 1), 'status': 'pending'}])
        policy = CutoffPolicy(cutoff_time="14:00", cutoff_day_offset=10 ** 6)

        with self.assertRaises(InvalidCutoffOffset):
            confirm_orders_past_deadline(store.fetch_pending_orders(), policy, self.now, store)
        self.assertEqual(store.orders['o1']['status'], 'pending')

    def test_accepts_order_objects(self):
        order = MagicMock()
        order.id = 'o1'
        order.delivery_date = date(2024, 1, 1)
        order.status = 'pending'
        store = InMemoryStore([{'id': 'o1', 'delivery_date': date(2024, 1, 1), 'status': 'pending'}])

        self.assertEqual(confirm_orders_past_deadline([order], self.policy, self.now, store), 1)


class TestAutoConfirmDriver(unittest.TestCase):

    def test_uses_stored_cutoff_settings(self):
        store = InMemoryStore(
            orders=[
                {'id': 'o1', 'delivery_date': date(2024, 1, 5), 'status': 'pending'},
                {'id': 'o2', 'delivery_date': date(2024, 1, 8), 'status': 'pending'},
                {'id': 'o3', 'delivery_date': date(2024, 1, 1), 'status': 'confirmed'},
            ],
            settings={'order_cutoff_time': '09:00', 'order_cutoff_day_offset': 3}
        )

        # Friday delivery deadline is Tuesday 09:00
        count = auto_confirm_orders_past_deadline(store, now=datetime(2024, 1, 3, 10, 0))

        self.assertEqual(count, 1)
        self.assertEqual(store.orders['o1']['status'], 'confirmed')
        self.assertEqual(store.orders['o2']['status'], 'pending')

    def test_fetch_failure_returns_zero(self):
        store = InMemoryStore(settings={'order_cutoff_time': '09:00', 'order_cutoff_day_offset': 1})
        store.fetch_pending_orders = MagicMock(side_effect=DatabaseError("timeout"))

        self.assertEqual(auto_confirm_orders_past_deadline(store, now=datetime(2024, 1, 3, 10, 0)), 0)

    def test_explicit_settings_service(self):
        store = InMemoryStore(orders=[{'id': 'o1', 'delivery_date': date(2024, 1, 2), 'status': 'pending'}])
        settings_service = SettingsService(InMemoryStore(settings={'order_cutoff_time': '23:59',
                                                                   'order_cutoff_day_offset': 0}))

        count = auto_confirm_orders_past_deadline(store, settings_service, datetime(2024, 1, 2, 23, 0))

        self.assertEqual(count, 0)


class TestRunAutoConfirmJob(unittest.TestCase):

    @patch('wholesale_portal.batch.auto_confirm.get_order_store')
    def test_runs_against_configured_store(self, mock_get_store):
        store = InMemoryStore(
            orders=[{'id': 'o1', 'delivery_date': date(2024, 1, 2), 'status': 'pending'}],
            settings={'order_cutoff_time': '14:00', 'order_cutoff_day_offset': 1}
        )
        store.close = MagicMock()
        mock_get_store.return_value = store

        results = run_auto_confirm_job(now=datetime(2024, 1, 3, 10, 0))

        self.assertTrue(results['success'])
        self.assertEqual(results['confirmed'], 1)
        self.assertEqual(store.orders['o1']['status'], 'confirmed')
        store.close.assert_called_once()

    @patch('wholesale_portal.batch.auto_confirm.get_order_store')
    def test_store_is_closed_on_failure(self, mock_get_store):
        store = InMemoryStore(
            orders=[{'id': 'o1', 'delivery_date': date(2024, 1, 2), 'status': 'pending'}],
            settings={'order_cutoff_time': 'noon', 'order_cutoff_day_offset': 1}
        )
        store.close = MagicMock()
        mock_get_store.return_value = store

        with self.assertRaises(InvalidCutoffFormat):
            run_auto_confirm_job(now=datetime(2024, 1, 3, 10, 0))
        store.close.assert_called_once()


if __name__ == '__main__':
    unittest.main()
