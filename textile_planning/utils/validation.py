from typing import Dict

from textile_planning.models import ProductionLine, Holiday

def validate_production_line(line: ProductionLine) -> Dict[str, str]:
    """Validate a production line.

    Args:
        line: Production line to validate

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if not line.name:
        errors['name'] = 'Production line name is required'

    errors.update(validate_capacity(line.capacity))

    return errors

def validate_capacity(capacity) -> Dict[str, str]:
    """Validate a daily capacity value: a positive whole number of units."""
    errors = {}

    if not isinstance(capacity, (int, float)) or isinstance(capacity, bool):
        errors['capacity'] = 'Capacity must be a number'
    elif capacity <= 0:
        errors['capacity'] = 'Capacity must be greater than zero'
    elif isinstance(capacity, float) and not capacity.is_integer():
        errors['capacity'] = 'Capacity must be a whole number of units per day'

    return errors

def validate_holiday(holiday: Holiday) -> Dict[str, str]:
    """Validate a holiday."""
    errors = {}

    if holiday.date is None:
        errors['date'] = 'Holiday date is required'

    if not holiday.is_global and not holiday.lines:
        errors['lines'] = 'Line-specific holidays need at least one production line'

    return errors
