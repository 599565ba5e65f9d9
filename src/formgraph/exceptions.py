"""formgraph exceptions."""

from pathlib import Path
from typing import Any


class FormGraphError(Exception):
    """Base exception for formgraph errors."""


class ExpressionError(FormGraphError):
    """Raised when an expression is invalid or cannot be evaluated."""

    def __init__(
        self,
        message: str,
        *,
        expression: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and expression context."""
        super().__init__(message)
        self.expression: str = expression
        self.cause: Exception | None = cause


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(FormGraphError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.source: str | None = source


# =============================================================================
# Form Definition Exceptions
# =============================================================================


class FormDefinitionError(FormGraphError):
    """Raised when a form definition file cannot be read or validated.

    Attributes:
        path: The definition file, when the error came from a file.
    """

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        """Initialize with error message and file context.

        Args:
            message: Human-readable error message.
            path: The definition file that failed to load.
        """
        super().__init__(message)
        self.path: Path | None = path


class FormNotFoundError(FormGraphError, KeyError):
    """Raised when an operation requires a form that is not registered.

    Attributes:
        form_id: The ID of the form that was not found.
    """

    def __init__(self, message: str, *, form_id: str | None = None) -> None:
        """Initialize with error message and form context.

        Args:
            message: Human-readable error message.
            form_id: The ID of the form that was not found.
        """
        super().__init__(message)
        self.form_id: str | None = form_id

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


# =============================================================================
# Dependency Exceptions
# =============================================================================


class RegistrationError(FormGraphError, ValueError):
    """Raised in strict mode when a dependency cannot be registered.

    Attributes:
        form_id: The form the offending reference points at.
        parameter_id: The parameter the offending reference points at.
    """

    def __init__(
        self,
        message: str,
        *,
        form_id: str | None = None,
        parameter_id: str | None = None,
    ) -> None:
        """Initialize with error message and reference context.

        Args:
            message: Human-readable error message.
            form_id: The form the offending reference points at.
            parameter_id: The parameter the offending reference points at.
        """
        super().__init__(message)
        self.form_id: str | None = form_id
        self.parameter_id: str | None = parameter_id


class CircularDependencyError(RegistrationError):
    """Raised when a parameter dependency would close a cycle.

    Attributes:
        cycle: The parameter keys forming the cycle, first key repeated last.
    """

    def __init__(
        self,
        message: str,
        *,
        cycle: tuple[str, ...] = (),
        form_id: str | None = None,
        parameter_id: str | None = None,
    ) -> None:
        """Initialize with error message and cycle context.

        Args:
            message: Human-readable error message.
            cycle: The parameter keys forming the cycle.
            form_id: Target form of the rejected dependency.
            parameter_id: Target parameter of the rejected dependency.
        """
        super().__init__(message, form_id=form_id, parameter_id=parameter_id)
        self.cycle: tuple[str, ...] = cycle


class PropagationCycleError(FormGraphError):
    """Raised when a propagation pass revisits a dependency edge.

    Only raised when the tracker is configured with ``raise_on_cycle``.

    Attributes:
        edge: The ``source -> target`` key of the revisited edge.
        path: The parameter keys written so far in the pass.
    """

    def __init__(
        self,
        message: str,
        *,
        edge: str,
        path: tuple[str, ...] = (),
    ) -> None:
        """Initialize with error message and propagation context."""
        super().__init__(message)
        self.edge: str = edge
        self.path: tuple[str, ...] = path


# =============================================================================
# Validation Rule Exceptions
# =============================================================================


class ValidationRuleNotFoundError(FormGraphError, KeyError):
    """Raised when a validation rule cannot be found.

    Attributes:
        rule_id: The ID of the rule that was not found.
    """

    def __init__(self, message: str, *, rule_id: str | None = None) -> None:
        """Initialize with error message and rule context."""
        super().__init__(message)
        self.rule_id: str | None = rule_id

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class SubmissionError(FormGraphError):
    """Raised by submission clients when an endpoint call fails.

    Attributes:
        url: The endpoint that was called.
        status_code: HTTP status code, when a response was received.
    """

    def __init__(
        self,
        message: str,
        *,
        url: str,
        status_code: int | None = None,
    ) -> None:
        """Initialize with error message and endpoint context."""
        super().__init__(message)
        self.url: str = url
        self.status_code: int | None = status_code
