from typing import Any, Dict, List, Optional

from wholesale_portal.core.delivery import parse_cutoff_time
from wholesale_portal.exceptions import InvalidCutoffFormat
from wholesale_portal.utils.date_utils import to_date

MAX_NOTES_LENGTH = 500
MAX_CUTOFF_DAY_OFFSET = 35
SUPPORTED_LOCALES = ('fr', 'nl', 'en')

ORDER_ITEM_REQUIRED_FIELDS = ('product_id', 'quantity')


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_order_item(item: Dict[str, Any]) -> Dict[str, str]:
    """Validate a single cart line.

    Args:
        item: Dictionary with product_id and quantity

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not isinstance(item, dict):
        return {'item': 'Item must be an object'}

    if not item.get('product_id'):
        errors['product_id'] = 'Product ID is required'

    quantity = item.get('quantity')
    if not _is_number(quantity) or quantity <= 0:
        errors['quantity'] = 'Quantity must be a positive number'

    return errors


def validate_order_payload(
    items: List[Dict[str, Any]],
    notes: Optional[str] = None,
    delivery_date: Any = None
) -> Dict[str, str]:
    """Validate an order submission.

    Args:
        items: Cart lines
        notes: Optional notes
        delivery_date: Optional requested delivery date

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not items:
        errors['items'] = 'At least one item is required'
    else:
        for index, item in enumerate(items):
            item_errors = validate_order_item(item)
            for field, message in item_errors.items():
                errors[f'items.{index}.{field}'] = message

    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        errors['notes'] = f'Notes cannot exceed {MAX_NOTES_LENGTH} characters'

    if delivery_date:
        try:
            to_date(delivery_date)
        except (TypeError, ValueError):
            errors['delivery_date'] = 'Invalid delivery date'

    return errors


def validate_settings(values: Dict[str, Any]) -> Dict[str, str]:
    """Validate organisation settings before saving.

    Args:
        values: Settings to validate (only present keys are checked)

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if 'cutoff_time' in values:
        try:
            parse_cutoff_time(values['cutoff_time'])
        except InvalidCutoffFormat:
            errors['cutoff_time'] = 'Cutoff time must be HH:mm (00:00-23:59)'

    if 'cutoff_day_offset' in values:
        offset = values['cutoff_day_offset']
        if not isinstance(offset, int) or isinstance(offset, bool) \
                or not 0 <= offset <= MAX_CUTOFF_DAY_OFFSET:
            errors['cutoff_day_offset'] = f'Cutoff day offset must be between 0 and {MAX_CUTOFF_DAY_OFFSET}'

    if 'vat_rate' in values:
        vat_rate = values['vat_rate']
        if not _is_number(vat_rate) or not 0 <= vat_rate <= 100:
            errors['vat_rate'] = 'VAT rate must be between 0 and 100'

    if 'default_locale' in values and values['default_locale'] not in SUPPORTED_LOCALES:
        errors['default_locale'] = f"Locale must be one of: {', '.join(SUPPORTED_LOCALES)}"

    for key in ('available_locales', 'available_permissions', 'available_units'):
        if key in values:
            value = values[key]
            if not isinstance(value, dict) or not all(isinstance(v, bool) for v in value.values()):
                errors[key] = 'Must be an object of name -> true/false'

    return errors
