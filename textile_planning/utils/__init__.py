from .date_utils import add_days, add_months, convert_to_date, month_window, month_key
from .validation import validate_production_line, validate_capacity, validate_holiday

__all__ = [
    'add_days',
    'add_months',
    'convert_to_date',
    'month_window',
    'month_key',
    'validate_production_line',
    'validate_capacity',
    'validate_holiday'
]
