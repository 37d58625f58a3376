from .date_utils import add_days, convert_to_date, to_date, get_js_weekday, days_until_weekday
from .math_utils import clamp_discount, calculate_discounted_price, calculate_line_subtotal, round_currency

__all__ = [
    'add_days',
    'convert_to_date',
    'to_date',
    'get_js_weekday',
    'days_until_weekday',
    'clamp_discount',
    'calculate_discounted_price',
    'calculate_line_subtotal',
    'round_currency'
]
