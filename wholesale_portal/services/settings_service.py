# wholesale_portal/services/settings_service.py
import logging
import math
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from wholesale_portal.config import config
from wholesale_portal.core.delivery import CutoffPolicy
from wholesale_portal.db.interface import SettingsStore, SQLAlchemyStore
from wholesale_portal.exceptions import ValidationError
from wholesale_portal.utils.validation import validate_settings

logger = logging.getLogger(__name__)

DEFAULT_AVAILABLE_LOCALES = ('fr', 'nl', 'en')

DEFAULT_AVAILABLE_PERMISSIONS = (
    'manage_settings',
    'manage_client_roles',
    'manage_employee_roles',
    'view_clients',
    'manage_clients',
    'manage_employees',
    'manage_products',
    'view_products',
    'view_orders',
    'manage_orders',
)

DEFAULT_AVAILABLE_UNITS = ('kg', 'piece')

# Setting keys as stored in the settings table
CUTOFF_TIME_KEY = 'order_cutoff_time'
CUTOFF_OFFSET_KEY = 'order_cutoff_day_offset'
DEFAULT_LOCALE_KEY = 'default_locale'
VAT_RATE_KEY = 'vat_rate'
AVAILABLE_LOCALES_KEY = 'available_locales'
AVAILABLE_PERMISSIONS_KEY = 'available_permissions'
AVAILABLE_UNITS_KEY = 'available_units'


def _to_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _merge_flags(value, defaults) -> Dict[str, bool]:
    """Merge a stored {name: bool} object over defaults (missing -> enabled)."""
    stored = value if isinstance(value, dict) else {}
    return {name: bool(stored.get(name, True)) for name in defaults}


class SettingsService:
    """Service for organisation-wide settings."""

    def __init__(self, store):
        """Initialize the settings service.

        Args:
            store: SettingsStore, or a SQLAlchemy session to wrap
        """
        if isinstance(store, Session):
            store = SQLAlchemyStore(store)
        self.store: SettingsStore = store
        self._defaults = config.ordering_config

    def get_cutoff_settings(self) -> Dict[str, Any]:
        """Get cutoff time and day offset, falling back to configured defaults.

        Returns:
            Dictionary with cutoff_time and cutoff_day_offset
        """
        cutoff_time = self.store.get_setting(CUTOFF_TIME_KEY)
        if not isinstance(cutoff_time, str):
            cutoff_time = self._defaults['default_cutoff_time']

        raw_offset = self.store.get_setting(CUTOFF_OFFSET_KEY)
        offset = _to_number(raw_offset)
        if offset is None or not offset.is_integer():
            if raw_offset is not None:
                logger.warning(f"Ignoring invalid cutoff day offset setting: {raw_offset!r}")
            offset = self._defaults['default_cutoff_day_offset']

        return {
            'cutoff_time': cutoff_time,
            'cutoff_day_offset': int(offset)
        }

    def get_cutoff_policy(self) -> CutoffPolicy:
        return CutoffPolicy.from_settings(self.get_cutoff_settings())

    def get_vat_rate(self) -> float:
        vat_rate = _to_number(self.store.get_setting(VAT_RATE_KEY))
        if vat_rate is not None and 0 <= vat_rate <= 100:
            return vat_rate
        return self._defaults['default_vat_rate']

    def get_default_locale(self) -> str:
        locale = self.store.get_setting(DEFAULT_LOCALE_KEY)
        if isinstance(locale, str) and locale in DEFAULT_AVAILABLE_LOCALES:
            return locale
        return self._defaults['default_locale']

    def get_available_permissions(self) -> Dict[str, bool]:
        return _merge_flags(self.store.get_setting(AVAILABLE_PERMISSIONS_KEY), DEFAULT_AVAILABLE_PERMISSIONS)

    def get_available_units(self) -> Dict[str, bool]:
        return _merge_flags(self.store.get_setting(AVAILABLE_UNITS_KEY), DEFAULT_AVAILABLE_UNITS)

    def get_available_locales(self) -> Dict[str, bool]:
        return _merge_flags(self.store.get_setting(AVAILABLE_LOCALES_KEY), DEFAULT_AVAILABLE_LOCALES)

    def get_available_permissions_list(self) -> List[str]:
        return [name for name, enabled in self.get_available_permissions().items() if enabled]

    def get_available_units_list(self) -> List[str]:
        return [name for name, enabled in self.get_available_units().items() if enabled]

    def get_available_locales_list(self) -> List[str]:
        return [name for name, enabled in self.get_available_locales().items() if enabled]

    def get_all_settings(self) -> Dict[str, Any]:
        """Get every setting the settings page shows."""
        cutoff = self.get_cutoff_settings()
        return {
            'cutoff_time': cutoff['cutoff_time'],
            'cutoff_day_offset': cutoff['cutoff_day_offset'],
            'default_locale': self.get_default_locale(),
            'vat_rate': self.get_vat_rate(),
            'available_locales': self.get_available_locales(),
            'available_permissions': self.get_available_permissions(),
            'available_units': self.get_available_units()
        }

    def update_settings(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and store settings.

        Args:
            values: Any of cutoff_time, cutoff_day_offset, default_locale,
                vat_rate, available_locales, available_permissions,
                available_units

        Returns:
            Updated settings (see get_all_settings)

        Raises:
            ValidationError with per-field details
        """
        errors = validate_settings(values)
        if errors:
            raise ValidationError("Invalid settings", code='validation-error', details=errors)

        key_map = {
            'cutoff_time': CUTOFF_TIME_KEY,
            'cutoff_day_offset': CUTOFF_OFFSET_KEY,
            'default_locale': DEFAULT_LOCALE_KEY,
            'vat_rate': VAT_RATE_KEY,
            'available_locales': AVAILABLE_LOCALES_KEY,
            'available_permissions': AVAILABLE_PERMISSIONS_KEY,
            'available_units': AVAILABLE_UNITS_KEY,
        }

        for field, key in key_map.items():
            if field in values:
                value = values[field]
                if field == 'cutoff_time':
                    value = value.strip()
                elif field == 'cutoff_day_offset':
                    value = int(value)
                self.store.set_setting(key, value)
                logger.info(f"Updated setting {key}")

        return self.get_all_settings()

    def seed_defaults(self) -> int:
        """Store default values for settings that are missing.

        Returns:
            Number of settings created
        """
        defaults = {
            CUTOFF_TIME_KEY: self._defaults['default_cutoff_time'],
            CUTOFF_OFFSET_KEY: self._defaults['default_cutoff_day_offset'],
            DEFAULT_LOCALE_KEY: self._defaults['default_locale'],
            VAT_RATE_KEY: self._defaults['default_vat_rate'],
            AVAILABLE_LOCALES_KEY: {name: True for name in DEFAULT_AVAILABLE_LOCALES},
            AVAILABLE_PERMISSIONS_KEY: {name: True for name in DEFAULT_AVAILABLE_PERMISSIONS},
            AVAILABLE_UNITS_KEY: {name: True for name in DEFAULT_AVAILABLE_UNITS},
        }

        created = 0
        for key, value in defaults.items():
            if self.store.get_setting(key) is None:
                self.store.set_setting(key, value)
                created += 1
        return created
