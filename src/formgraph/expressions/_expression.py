"""Expression evaluation for form rules.

Conditions, transformations, calculated fields and custom validators are
stored in form metadata as expression strings. They are parsed and evaluated
by rule-engine against a restricted variable context: an expression can read
the variables it is given and call the registered functions, nothing else.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Final

import rule_engine
import rule_engine.builtins as rule_builtins
from rule_engine import errors as rule_errors

from formgraph.exceptions import ExpressionError

from ._functions import (
    CoalesceFunction,
    GetParameterValueFunction,
    IsEmptyFunction,
    RoundFunction,
    ValueReader,
)

__all__ = [
    "ExpressionEnvironment",
    "ExpressionEvaluator",
    "FunctionRegistry",
    "create_function_registry",
    "normalize_result",
]

# Failures rule-engine can surface while evaluating against arbitrary data
_EVALUATION_FAILURES: Final = (
    rule_errors.EngineError,
    TypeError,
    ValueError,
    ArithmeticError,
)


@dataclass(frozen=True, slots=True)
class FunctionRegistry:
    """Registry of functions callable from expressions.

    Functions are reachable both as plain names (``isEmpty(x)``) and through
    rule-engine's builtin syntax (``$isEmpty(x)``).
    """

    _functions: dict[str, Callable[..., object]] = field(default_factory=dict)

    def get(self, name: str) -> Callable[..., object] | None:
        """Get function by name.

        Args:
            name: Function name without the $ prefix.

        Returns:
            The function callable, or None if not found.
        """
        return self._functions.get(name)

    def all_functions(self) -> dict[str, Callable[..., object]]:
        """Get all registered functions.

        Returns:
            A copy of the function registry dictionary.
        """
        return dict(self._functions)


def create_function_registry(value_reader: ValueReader | None = None) -> FunctionRegistry:
    """Create a registry with the standard form expression functions.

    Args:
        value_reader: Callable used by ``getParameterValue(formId, paramId)``.
            If None, that function always returns null.

    Returns:
        A FunctionRegistry with all standard functions registered.
    """
    get_parameter_value = (
        GetParameterValueFunction(reader=value_reader)
        if value_reader is not None
        else GetParameterValueFunction()
    )
    functions: dict[str, Callable[..., object]] = {
        "getParameterValue": get_parameter_value,
        "isEmpty": IsEmptyFunction(),
        "coalesce": CoalesceFunction(),
        "round": RoundFunction(),
    }
    return FunctionRegistry(_functions=functions)


def normalize_result(value: object) -> object:
    """Convert rule-engine values back to plain Python values.

    Integral decimals become ``int``, other decimals ``float``; arrays become
    lists and mappings dicts.

    Args:
        value: A value produced by rule-engine.

    Returns:
        The equivalent plain Python value.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, Decimal):
        if not value.is_finite():
            return float(value)
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, (tuple, list)):
        return [normalize_result(item) for item in value]
    if isinstance(value, Mapping):
        return {key: normalize_result(item) for key, item in value.items()}
    return value


def _create_rule_context(registry: FunctionRegistry) -> rule_engine.Context:
    """Create a rule-engine Context with custom function support.

    Args:
        registry: The function registry providing custom functions.

    Returns:
        A rule-engine Context where unknown names resolve to null.
    """
    functions = registry.all_functions()

    def resolver(thing: Mapping[str, Any], name: str) -> object:  # pyright: ignore[reportExplicitAny]
        # Variables shadow functions so a field named like a function stays readable
        if name in thing:
            return thing[name]
        if name in functions:
            return functions[name]
        return None

    ctx = rule_engine.Context(
        resolver=resolver,
        default_value=None,
    )
    ctx.builtins = rule_builtins.Builtins.from_defaults(
        values=functions,
    )
    return ctx


@dataclass(frozen=True, slots=True)
class ExpressionEvaluator:
    """A compiled expression.

    Compiles an expression string once and evaluates it efficiently against
    many variable mappings.
    """

    expression: str
    _rule: rule_engine.Rule | None = field(default=None, repr=False, compare=False)

    @classmethod
    def compile(
        cls,
        expression: str,
        registry: FunctionRegistry,
    ) -> "ExpressionEvaluator":
        """Compile an expression string.

        Args:
            expression: The expression to compile. Empty/whitespace returns
                an evaluator that always matches and evaluates to null.
            registry: Function registry for custom functions.

        Returns:
            An ExpressionEvaluator instance.

        Raises:
            ExpressionError: If the expression is syntactically invalid.
        """
        if not expression.strip():
            return cls(expression=expression, _rule=None)

        try:
            rule = rule_engine.Rule(expression, context=_create_rule_context(registry))
        except rule_errors.RuleSyntaxError as e:
            msg = f"Invalid expression syntax: {e.message}"
            raise ExpressionError(msg, expression=expression, cause=e) from e
        except rule_errors.SymbolResolutionError as e:
            msg = f"Unknown symbol in expression: {e.symbol_name}"
            raise ExpressionError(msg, expression=expression, cause=e) from e
        except rule_errors.EngineError as e:
            msg = f"Invalid expression: {e.message}"
            raise ExpressionError(msg, expression=expression, cause=e) from e
        return cls(expression=expression, _rule=rule)

    def evaluate(self, variables: Mapping[str, object]) -> object:
        """Evaluate the expression and return its value.

        Args:
            variables: Names visible to the expression.

        Returns:
            The normalized result, or None for an empty expression.

        Raises:
            ExpressionError: If evaluation fails.
        """
        if self._rule is None:
            return None

        try:
            result = self._rule.evaluate(dict(variables))
        except _EVALUATION_FAILURES as e:
            msg = f"Expression evaluation failed: {e}"
            raise ExpressionError(msg, expression=self.expression, cause=e) from e
        return normalize_result(result)

    def matches(self, variables: Mapping[str, object]) -> bool:
        """Evaluate the expression as a condition.

        Args:
            variables: Names visible to the expression.

        Returns:
            True if the result is truthy (or the expression is empty).

        Raises:
            ExpressionError: If evaluation fails.
        """
        if self._rule is None:
            return True

        try:
            return bool(self._rule.matches(dict(variables)))
        except _EVALUATION_FAILURES as e:
            msg = f"Expression evaluation failed: {e}"
            raise ExpressionError(msg, expression=self.expression, cause=e) from e


class ExpressionEnvironment:
    """Compiles and caches expressions sharing one function registry."""

    __slots__: Final = ("_compiled", "_registry")

    _registry: FunctionRegistry
    _compiled: dict[str, ExpressionEvaluator]

    def __init__(self, registry: FunctionRegistry | None = None) -> None:
        """Initialize the environment.

        Args:
            registry: Functions available to expressions. Defaults to the
                standard registry with no parameter reader.
        """
        self._registry = registry if registry is not None else create_function_registry()
        self._compiled = {}

    @property
    def registry(self) -> FunctionRegistry:
        """The function registry used for compilation."""
        return self._registry

    def compile(self, expression: str) -> ExpressionEvaluator:
        """Compile an expression, reusing a cached evaluator when possible.

        Raises:
            ExpressionError: If the expression is syntactically invalid.
        """
        evaluator = self._compiled.get(expression)
        if evaluator is None:
            evaluator = ExpressionEvaluator.compile(expression, self._registry)
            self._compiled[expression] = evaluator
        return evaluator

    def evaluate(self, expression: str, variables: Mapping[str, object]) -> object:
        """Compile (cached) and evaluate an expression.

        Args:
            expression: The expression source.
            variables: Names visible to the expression.

        Returns:
            The normalized result.

        Raises:
            ExpressionError: If the expression is invalid or evaluation fails.
        """
        return self.compile(expression).evaluate(variables)

    def matches(self, expression: str, variables: Mapping[str, object]) -> bool:
        """Compile (cached) and evaluate an expression as a condition.

        Raises:
            ExpressionError: If the expression is invalid or evaluation fails.
        """
        return self.compile(expression).matches(variables)

    def clear(self) -> None:
        """Drop all compiled expressions."""
        self._compiled.clear()
