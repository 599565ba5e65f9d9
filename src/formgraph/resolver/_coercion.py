# pyright: reportAny=false, reportExplicitAny=false
"""Value coercion between field types.

Field types are grouped into families. A value moving between two fields of
different types is converted to the target family; types outside every
family pass the value through unchanged.
"""

from typing import Any, Final

from formgraph.validation import parse_datetime, to_number

__all__ = [
    "BOOLEAN_TYPES",
    "DATE_TYPES",
    "NUMERIC_TYPES",
    "SELECT_TYPES",
    "STRING_TYPES",
    "TEXT_TYPES",
    "are_field_types_compatible",
    "convert_value_between_types",
    "type_family",
]

NUMERIC_TYPES: Final = frozenset({"number", "integer", "float", "currency"})
STRING_TYPES: Final = frozenset({"string", "text", "textarea"})
BOOLEAN_TYPES: Final = frozenset({"boolean", "checkbox", "toggle"})
DATE_TYPES: Final = frozenset({"date", "datetime"})

# Families used to decide whether two fields are compared across forms
TEXT_TYPES: Final = frozenset({"text", "string", "textarea", "richtext"})
SELECT_TYPES: Final = frozenset({"select", "multiselect", "dropdown", "radio"})
_COMPATIBLE_FAMILIES: Final = (
    NUMERIC_TYPES,
    TEXT_TYPES,
    frozenset({"date", "datetime", "time"}),
    BOOLEAN_TYPES,
    SELECT_TYPES,
)

_TRUE_STRINGS: Final = frozenset({"true", "1", "yes"})


def type_family(field_type: str) -> frozenset[str] | None:
    """Return the compatibility family of a field type, or None."""
    for family in _COMPATIBLE_FAMILIES:
        if field_type in family:
            return family
    return None


def are_field_types_compatible(source_type: str, target_type: str) -> bool:
    """Return True if values of the two types can be compared.

    Identical types are always compatible; otherwise both types must belong
    to the same family.
    """
    if source_type == target_type:
        return True
    family = type_family(source_type)
    return family is not None and target_type in family


def convert_value_between_types(value: Any, source_type: str, target_type: str) -> Any:
    """Convert a value for a field of another type.

    Args:
        value: The value to convert. None is returned unchanged.
        source_type: Type of the field the value comes from.
        target_type: Type of the field receiving the value.

    Returns:
        The converted value. Numeric targets yield ``int``/``float`` (``nan``
        when the value is not numeric), string targets ``str``, boolean
        targets ``bool`` and date targets a timezone-aware ``datetime`` (or
        None when unparseable).
    """
    if value is None or source_type == target_type:
        return value

    if target_type in NUMERIC_TYPES:
        number = to_number(value)
        return float("nan") if number is None else number

    if target_type in STRING_TYPES:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    if target_type in BOOLEAN_TYPES:
        if isinstance(value, str):
            return value.lower() in _TRUE_STRINGS
        return bool(value)

    if target_type in DATE_TYPES:
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            return parse_datetime(value)
        return value

    return value
