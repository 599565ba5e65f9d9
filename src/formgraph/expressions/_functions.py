"""Expression function implementations.

Each function is a frozen dataclass with a ``__call__`` method. Parameters
are typed as ``object`` because rule-engine passes its own value types
(``Decimal`` for numbers, ``tuple`` for arrays); every function tolerates
unexpected input and returns a safe default.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

ValueReader = Callable[[str, str], object]


def _no_values(_form_id: str, _parameter_id: str) -> object:
    return None


def is_empty_value(value: object) -> bool:
    """Return True for None, empty strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, set, frozenset, Mapping)):
        return len(value) == 0
    return False


@dataclass(frozen=True, slots=True)
class GetParameterValueFunction:
    """Read another tracked parameter.

    Expression usage: getParameterValue('form-id', 'field')
    """

    reader: ValueReader = field(default=_no_values)

    def __call__(self, form_id: object, parameter_id: object) -> object:
        """Return the tracked value, or None when unset or arguments are invalid.

        Args:
            form_id: ID of the form holding the parameter.
            parameter_id: ID of the parameter.

        Returns:
            The current tracked value.
        """
        if not isinstance(form_id, str) or not isinstance(parameter_id, str):
            return None
        return self.reader(form_id, parameter_id)


@dataclass(frozen=True, slots=True)
class IsEmptyFunction:
    """Check whether a value is empty.

    Expression usage: isEmpty(value)
    """

    def __call__(self, value: object) -> bool:
        return is_empty_value(value)


@dataclass(frozen=True, slots=True)
class CoalesceFunction:
    """Return the first argument that is not null.

    Expression usage: coalesce(a, b, 0)
    """

    def __call__(self, *values: object) -> object:
        for value in values:
            if value is not None:
                return value
        return None


@dataclass(frozen=True, slots=True)
class RoundFunction:
    """Round a number to a number of decimal places.

    Expression usage: round(value, 2)
    """

    def __call__(self, value: object, places: object = 0) -> object:
        """Round `value`, returning None for non-numeric input.

        Args:
            value: Number to round.
            places: Decimal places to keep.

        Returns:
            The rounded number, or None.
        """
        if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
            return None
        try:
            digits = int(places) if isinstance(places, (int, float, Decimal)) else 0
            return round(Decimal(str(value)), digits)
        except (InvalidOperation, ValueError, OverflowError):
            return None
