# pyright: reportAny=false, reportExplicitAny=false
"""Type-shape checks for single field values."""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from formgraph.validation import parse_datetime

from ._coercion import BOOLEAN_TYPES, DATE_TYPES, NUMERIC_TYPES

if TYPE_CHECKING:
    from formgraph.forms import FormField

__all__ = ["validate_field_by_type"]


def _is_valid_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return value == value
    return isinstance(value, (int, Decimal))


def validate_field_by_type(form_field: "FormField", value: Any) -> list[str]:
    """Check that a value has the shape its field type expects.

    None is never a type error; the required check is separate.

    Args:
        form_field: The field the value belongs to.
        value: The value to check.

    Returns:
        Error messages, empty when the value fits.
    """
    if value is None:
        return []

    label = form_field.display_label
    field_type = str(form_field.type)
    option_values = [option.value for option in form_field.options]
    errors: list[str] = []

    if field_type in NUMERIC_TYPES:
        if not _is_valid_number(value):
            errors.append(f"{label} must be a valid number")
        if field_type == "integer" and not (
            _is_valid_number(value) and float(value).is_integer()
        ):
            errors.append(f"{label} must be an integer")
    elif field_type in DATE_TYPES:
        if not isinstance(value, date) and parse_datetime(value) is None:
            errors.append(f"{label} must be a valid date")
    elif field_type in BOOLEAN_TYPES:
        if not isinstance(value, bool):
            errors.append(f"{label} must be a boolean value")
    elif field_type in {"select", "radio"}:
        if option_values and value not in option_values:
            errors.append(f"{label} must be one of the allowed options")
    elif field_type == "multiselect":
        if not isinstance(value, (list, tuple)):
            errors.append(f"{label} must be an array")
        elif option_values and any(item not in option_values for item in value):
            errors.append(f"{label} contains invalid options")

    return errors
