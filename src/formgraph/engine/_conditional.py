# pyright: reportAny=false, reportExplicitAny=false
"""Evaluation of section/field conditionals and field dependency conditions."""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Final

from formgraph.enums import ClientType, ConditionalOperator
from formgraph.expressions import ExpressionEnvironment, is_empty_value
from formgraph.forms import FieldConditional

__all__ = [
    "CLIENT_TYPE_FIELD",
    "condition_expression",
    "dependency_condition_met",
    "evaluate_conditional",
]

# Synthetic conditional field compared against the active client type
CLIENT_TYPE_FIELD: Final = "clientType"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def evaluate_conditional(  # noqa: PLR0911
    conditional: FieldConditional,
    form_data: Mapping[str, Any],
    client_type: ClientType | str,
) -> bool:
    """Return True if a simple field/operator/value rule holds.

    Comparisons only constrain values of the matching kind: ``contains``
    applies to lists and the ordering operators to numbers; other values
    pass.

    Args:
        conditional: The rule.
        form_data: Current form values.
        client_type: Active client type, compared by ``equals`` on the
            ``clientType`` field.
    """
    field_value = form_data.get(conditional.field)
    expected = conditional.value

    match conditional.operator:
        case ConditionalOperator.EQUALS:
            if conditional.field == CLIENT_TYPE_FIELD:
                return expected == client_type
            return field_value == expected
        case ConditionalOperator.NOT_EQUALS:
            return field_value != expected
        case ConditionalOperator.CONTAINS:
            return not isinstance(field_value, (list, tuple)) or expected in field_value
        case ConditionalOperator.GREATER_THAN:
            return not (_is_number(field_value) and _is_number(expected)) or field_value > expected
        case ConditionalOperator.LESS_THAN:
            return not (_is_number(field_value) and _is_number(expected)) or field_value < expected
        case ConditionalOperator.IS_EMPTY:
            return field_value is None or field_value == ""
        case ConditionalOperator.IS_NOT_EMPTY:
            return field_value is not None and field_value != ""


def dependency_condition_met(
    expressions: ExpressionEnvironment,
    condition: str,
    source_value: Any,
    form_data: Mapping[str, Any],
) -> bool:
    """Evaluate a field dependency condition over its source value.

    ``isEmpty`` and ``isNotEmpty`` are accepted as shorthands; anything else
    is an expression over ``sourceValue`` (also visible as ``value``) and
    ``formData``. An empty condition always holds.

    Raises:
        ExpressionError: If the expression is invalid or fails.
    """
    text = condition.strip()
    if text == "isEmpty":
        return is_empty_value(source_value)
    if text == "isNotEmpty":
        return not is_empty_value(source_value)
    return expressions.matches(
        text,
        {"sourceValue": source_value, "value": source_value, "formData": dict(form_data)},
    )


def condition_expression(condition: str) -> str | None:
    """Rewrite a field dependency condition as a plain expression over ``sourceValue``.

    Returns:
        The expression, or None for an empty condition.
    """
    text = condition.strip()
    if not text:
        return None
    if text == "isEmpty":
        return "isEmpty(sourceValue)"
    if text == "isNotEmpty":
        return "not isEmpty(sourceValue)"
    return text
