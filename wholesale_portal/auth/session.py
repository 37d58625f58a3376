# wholesale_portal/auth/session.py
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from wholesale_portal.config import config
from wholesale_portal.exceptions import AuthenticationError, PermissionDeniedError
from wholesale_portal.models import Client, Employee
from wholesale_portal.utils.validation import SUPPORTED_LOCALES

logger = logging.getLogger(__name__)


@dataclass
class PortalSession:
    """Authenticated user with the client and/or employee profile it maps to."""
    user_id: str
    email: Optional[str] = None
    client: Optional[Client] = None
    employee: Optional[Employee] = None

    @property
    def is_client(self) -> bool:
        return self.client is not None

    @property
    def is_employee(self) -> bool:
        return self.employee is not None


def resolve_session(db_session: Session, user_id: Optional[str], email: Optional[str] = None) -> Optional[PortalSession]:
    """Look up the client and employee profiles of an authenticated user.

    Args:
        db_session: Database session
        user_id: Authenticated user id (None when anonymous)
        email: Optional user email

    Returns:
        PortalSession, or None for anonymous requests
    """
    if not user_id:
        return None

    client = db_session.get(Client, user_id)
    employee = db_session.get(Employee, user_id)

    if client is None and employee is None:
        logger.warning(f"User {user_id} has neither a client nor an employee profile")

    return PortalSession(user_id=user_id, email=email, client=client, employee=employee)


def require_client(portal_session: Optional[PortalSession]) -> PortalSession:
    """Ensure the request comes from a client.

    Raises:
        AuthenticationError when anonymous, PermissionDeniedError for non-clients
    """
    if portal_session is None:
        raise AuthenticationError()
    if not portal_session.is_client:
        raise PermissionDeniedError("Client account required")
    return portal_session


def require_employee(portal_session: Optional[PortalSession]) -> PortalSession:
    """Ensure the request comes from an employee.

    Raises:
        AuthenticationError when anonymous, PermissionDeniedError for non-employees
    """
    if portal_session is None:
        raise AuthenticationError()
    if not portal_session.is_employee:
        raise PermissionDeniedError("Employee account required")
    return portal_session


def resolve_locale(preferred_locale: Optional[str], fallback: Optional[str] = None) -> str:
    """Pick the user's preferred locale when supported, else the fallback."""
    if preferred_locale in SUPPORTED_LOCALES:
        return preferred_locale
    if fallback in SUPPORTED_LOCALES:
        return fallback
    return config.ordering_config['default_locale']
