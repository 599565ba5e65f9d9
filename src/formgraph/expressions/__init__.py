"""Safe expression evaluation for form rules."""

from ._expression import (
    ExpressionEnvironment,
    ExpressionEvaluator,
    FunctionRegistry,
    create_function_registry,
    normalize_result,
)
from ._functions import (
    CoalesceFunction,
    GetParameterValueFunction,
    IsEmptyFunction,
    RoundFunction,
    ValueReader,
    is_empty_value,
)

__all__ = [
    "CoalesceFunction",
    "ExpressionEnvironment",
    "ExpressionEvaluator",
    "FunctionRegistry",
    "GetParameterValueFunction",
    "IsEmptyFunction",
    "RoundFunction",
    "ValueReader",
    "create_function_registry",
    "is_empty_value",
    "normalize_result",
]
