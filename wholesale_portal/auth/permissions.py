# wholesale_portal/auth/permissions.py
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from wholesale_portal.auth.session import PortalSession
from wholesale_portal.exceptions import PermissionDeniedError
from wholesale_portal.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


class RequestContext:
    """Per-request state handed to service calls.

    Permission lookups are memoised on the context, so they are shared within
    one request and never across requests or users.
    """

    def __init__(self, db_session: Session, portal_session: Optional[PortalSession]):
        self.db_session = db_session
        self.portal_session = portal_session
        self._permission_cache: Dict[str, bool] = {}
        self._enabled_permissions: Optional[Dict[str, bool]] = None

    @property
    def user_id(self) -> Optional[str]:
        return self.portal_session.user_id if self.portal_session else None

    @property
    def client(self):
        return self.portal_session.client if self.portal_session else None

    @property
    def employee(self):
        return self.portal_session.employee if self.portal_session else None

    def _organisation_permissions(self) -> Dict[str, bool]:
        if self._enabled_permissions is None:
            self._enabled_permissions = SettingsService(self.db_session).get_available_permissions()
        return self._enabled_permissions

    def _lookup_permission(self, permission_name: str) -> bool:
        employee = self.employee
        if employee is None or employee.role is None:
            return False

        role_permissions = employee.role.permissions or {}
        if isinstance(role_permissions, list):
            granted = permission_name in role_permissions
        else:
            granted = role_permissions.get(permission_name) is True

        return granted and self._organisation_permissions().get(permission_name, False)

    def check_permission(self, permission_name: str) -> bool:
        """Check whether the current employee has a permission.

        Args:
            permission_name: Permission such as 'manage_orders'

        Returns:
            True if granted by the employee's role and enabled organisation-wide
        """
        if permission_name not in self._permission_cache:
            try:
                self._permission_cache[permission_name] = self._lookup_permission(permission_name)
            except Exception as e:
                logger.error(f"Error checking permission {permission_name}: {str(e)}")
                return False
        return self._permission_cache[permission_name]

    def require_permission(self, permission_name: str) -> None:
        """Raise PermissionDeniedError unless the employee has the permission."""
        if self.employee is None:
            raise PermissionDeniedError("Employee account required")
        if not self.check_permission(permission_name):
            raise PermissionDeniedError(
                f"Missing permission: {permission_name}",
                details={'permission': permission_name}
            )
