from .settings_service import SettingsService
from .order_service import OrderService
from .client_service import ClientService

__all__ = [
    'SettingsService',
    'OrderService',
    'ClientService'
]
