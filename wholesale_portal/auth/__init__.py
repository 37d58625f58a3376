from .session import PortalSession, resolve_session, require_client, require_employee, resolve_locale
from .permissions import RequestContext

__all__ = [
    'PortalSession',
    'RequestContext',
    'resolve_session',
    'require_client',
    'require_employee',
    'resolve_locale'
]
