"""
Tests for request-scoped permission checks and session resolution.
"""
import unittest
from unittest.mock import MagicMock, patch

from sqlalchemy.orm import Session

from wholesale_portal.auth.permissions import RequestContext
from wholesale_portal.auth.session import (
    PortalSession,
    require_client,
    require_employee,
    resolve_locale,
    resolve_session
)
from wholesale_portal.exceptions import AuthenticationError, PermissionDeniedError
from wholesale_portal.models import Client, Employee


def make_employee(permissions):
    employee = MagicMock(spec=Employee)
    employee.id = 'emp-1'
    employee.role.permissions = permissions
    return employee


class TestRequestContext(unittest.TestCase):

    def setUp(self):
        self.session_mock = MagicMock(spec=Session)
        self.settings_patcher = patch('wholesale_portal.auth.permissions.SettingsService')
        self.mock_settings_cls = self.settings_patcher.start()
        self.mock_settings = self.mock_settings_cls.return_value
        self.mock_settings.get_available_permissions.return_value = {
            'manage_orders': True,
            'view_orders': True,
            'manage_products': False
        }

    def tearDown(self):
        self.settings_patcher.stop()

    def context_for(self, employee):
        return RequestContext(self.session_mock, PortalSession(user_id='emp-1', employee=employee))

    def test_granted_and_enabled(self):
        ctx = self.context_for(make_employee({'manage_orders': True}))
        self.assertTrue(ctx.check_permission('manage_orders'))

    def test_not_granted_by_role(self):
        ctx = self.context_for(make_employee({'manage_orders': False}))
        self.assertFalse(ctx.check_permission('manage_orders'))
        self.assertFalse(ctx.check_permission('view_orders'))

    def test_disabled_organisation_wide(self):
        ctx = self.context_for(make_employee({'manage_products': True}))
        self.assertFalse(ctx.check_permission('manage_products'))

    def test_list_of_permissions(self):
        ctx = self.context_for(make_employee(['view_orders']))
        self.assertTrue(ctx.check_permission('view_orders'))
        self.assertFalse(ctx.check_permission('manage_orders'))

    def test_results_cached_per_context(self):
        ctx = self.context_for(make_employee({'manage_orders': True}))

        ctx.check_permission('manage_orders')
        ctx.check_permission('manage_orders')
        ctx.check_permission('view_orders')

        self.assertEqual(self.mock_settings.get_available_permissions.call_count, 1)

        # A new request looks the permissions up again
        other = self.context_for(make_employee({'manage_orders': True}))
        other.check_permission('manage_orders')
        self.assertEqual(self.mock_settings.get_available_permissions.call_count, 2)

    def test_lookup_error_denies(self):
        self.mock_settings.get_available_permissions.side_effect = RuntimeError("db down")
        ctx = self.context_for(make_employee({'manage_orders': True}))

        self.assertFalse(ctx.check_permission('manage_orders'))

    def test_require_permission(self):
        ctx = self.context_for(make_employee({'view_orders': True}))

        ctx.require_permission('view_orders')
        with self.assertRaises(PermissionDeniedError) as exc:
            ctx.require_permission('manage_orders')
        self.assertEqual(exc.exception.code, 'unauthorized')
        self.assertEqual(exc.exception.details, {'permission': 'manage_orders'})

    def test_anonymous_context(self):
        ctx = RequestContext(self.session_mock, None)

        self.assertIsNone(ctx.user_id)
        self.assertFalse(ctx.check_permission('view_orders'))
        with self.assertRaises(PermissionDeniedError):
            ctx.require_permission('view_orders')


class TestSessionResolution(unittest.TestCase):

    def test_anonymous(self):
        self.assertIsNone(resolve_session(MagicMock(spec=Session), None))

    def test_client_profile(self):
        client = MagicMock(spec=Client)
        db_session = MagicMock(spec=Session)
        db_session.get.side_effect = lambda model, key: client if model is Client else None

        portal_session = resolve_session(db_session, 'user-1', 'user@example.com')

        self.assertTrue(portal_session.is_client)
        self.assertFalse(portal_session.is_employee)
        self.assertIs(require_client(portal_session), portal_session)
        with self.assertRaises(PermissionDeniedError):
            require_employee(portal_session)

    def test_require_without_session(self):
        with self.assertRaises(AuthenticationError) as exc:
            require_client(None)
        self.assertEqual(exc.exception.code, 'unauthenticated')

        with self.assertRaises(AuthenticationError):
            require_employee(None)

    def test_resolve_locale(self):
        self.assertEqual(resolve_locale('nl'), 'nl')
        self.assertEqual(resolve_locale('de', 'en'), 'en')
        self.assertEqual(resolve_locale(None), 'fr')


if __name__ == '__main__':
    unittest.main()
