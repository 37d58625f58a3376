"""
Tests for the order and settings stores.
"""
import unittest
from datetime import date
from unittest.mock import MagicMock, patch

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from wholesale_portal.db.interface import SQLAlchemyStore, SupabaseStore, get_order_store
from wholesale_portal.exceptions import DatabaseError
from wholesale_portal.models import Base, Order


class TestSQLAlchemyStore(unittest.TestCase):

    def setUp(self):
        self.engine = create_engine('sqlite://')
        Base.metadata.create_all(self.engine)
        self.session = sessionmaker(bind=self.engine)()
        self.store = SQLAlchemyStore(self.session)

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    def add_order(self, status):
        order = Order(status=status, delivery_date=date(2024, 1, 5))
        self.session.add(order)
        self.session.commit()
        return order.id

    def test_fetch_pending_orders(self):
        pending_id = self.add_order('pending')
        self.add_order('confirmed')

        orders = self.store.fetch_pending_orders()

        self.assertEqual(orders, [{'id': pending_id, 'delivery_date': date(2024, 1, 5), 'status': 'pending'}])

    def test_confirm_pending_order(self):
        order_id = self.add_order('pending')

        self.assertTrue(self.store.confirm_if_pending(order_id))

        self.session.expire_all()
        self.assertEqual(self.session.get(Order, order_id).status, 'confirmed')

    def test_confirm_only_applies_to_pending_orders(self):
        for status in ('confirmed', 'cancelled', 'shipped'):
            with self.subTest(status=status):
                order_id = self.add_order(status)

                self.assertFalse(self.store.confirm_if_pending(order_id))

                self.session.expire_all()
                self.assertEqual(self.session.get(Order, order_id).status, status)

    def test_confirm_twice(self):
        order_id = self.add_order('pending')

        self.assertTrue(self.store.confirm_if_pending(order_id))
        self.assertFalse(self.store.confirm_if_pending(order_id))

    def test_confirm_unknown_order(self):
        self.assertFalse(self.store.confirm_if_pending('missing'))

    def test_confirm_failure_rolls_back(self):
        session = MagicMock()
        session.query.return_value.filter.return_value.update.side_effect = RuntimeError("locked")
        store = SQLAlchemyStore(session)

        with self.assertRaises(DatabaseError):
            store.confirm_if_pending('o1')
        session.rollback.assert_called_once()

    def test_settings_round_trip(self):
        self.store.set_setting('order_cutoff_time', '14:00')
        self.store.set_setting('order_cutoff_time', '16:30')

        self.assertEqual(self.store.get_setting('order_cutoff_time'), '16:30')
        self.assertEqual(self.store.get_all_settings(), {'order_cutoff_time': '16:30'})
        self.assertIsNone(self.store.get_setting('missing'))

    def test_close_only_closes_owned_session(self):
        session = MagicMock()

        SQLAlchemyStore(session).close()
        session.close.assert_not_called()

        SQLAlchemyStore(session, owns_session=True).close()
        session.close.assert_called_once()


class TestSupabaseStore(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.store = SupabaseStore(self.client)
        self.update_query = self.client.table.return_value.update.return_value

    def set_update_result(self, data=None, error=None):
        result = MagicMock(error=error, data=data)
        self.update_query.eq.return_value.eq.return_value.execute.return_value = result

    def test_confirm_is_conditional_on_pending(self):
        self.set_update_result(data=[{'id': 'o1', 'status': 'confirmed'}])

        self.assertTrue(self.store.confirm_if_pending('o1'))

        self.client.table.assert_called_with('orders')
        values = self.client.table.return_value.update.call_args[0][0]
        self.assertEqual(values['status'], 'confirmed')
        self.update_query.eq.assert_called_once_with('id', 'o1')
        self.update_query.eq.return_value.eq.assert_called_once_with('status', 'pending')

    def test_confirm_guard_miss(self):
        self.set_update_result(data=[])

        self.assertFalse(self.store.confirm_if_pending('o1'))

    def test_confirm_error(self):
        self.set_update_result(error='permission denied for table orders')

        with self.assertRaises(DatabaseError):
            self.store.confirm_if_pending('o1')

    def test_fetch_pending_orders(self):
        rows = [{'id': 'o1', 'delivery_date': '2024-01-05', 'status': 'pending'}]
        select_query = self.client.table.return_value.select.return_value
        select_query.eq.return_value.execute.return_value = MagicMock(error=None, data=rows)

        self.assertEqual(self.store.fetch_pending_orders(), rows)
        self.client.table.return_value.select.assert_called_once_with('id, delivery_date, status')
        select_query.eq.assert_called_once_with('status', 'pending')

    def test_get_setting(self):
        query = self.client.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute.return_value = MagicMock(error=None, data=[{'key': 'vat_rate', 'value': 6}])

        self.assertEqual(self.store.get_setting('vat_rate'), 6)


class TestGetOrderStore(unittest.TestCase):

    def test_wraps_given_session(self):
        session = MagicMock()

        store = get_order_store(session)

        self.assertIsInstance(store, SQLAlchemyStore)
        self.assertIs(store.session, session)
        store.close()
        session.close.assert_not_called()

    @patch('wholesale_portal.db.connection.db')
    def test_supabase_backend(self, mock_db):
        mock_db.db_type = 'supabase'

        store = get_order_store()

        self.assertIsInstance(store, SupabaseStore)
        self.assertIs(store.client, mock_db.get_supabase.return_value)

    @patch('wholesale_portal.db.connection.db')
    def test_sqlalchemy_backend_owns_session(self, mock_db):
        mock_db.db_type = 'postgresql'

        store = get_order_store()
        store.close()

        self.assertIsInstance(store, SQLAlchemyStore)
        mock_db.get_session.return_value.close.assert_called_once()


if __name__ == '__main__':
    unittest.main()
