# pyright: reportAny=false, reportExplicitAny=false
"""Validation rule and result models."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from formgraph.enums import ClientType, ValidationRuleType, ValidationSeverity
from formgraph.utils import utc_now

__all__ = [
    "RuleTestResult",
    "ValidationContext",
    "ValidationIssue",
    "ValidationResult",
    "ValidationRule",
    "ValidationRuleHistory",
]


class ValidationRule(BaseModel):
    """A managed, versioned validation rule for one field of a form.

    Attributes:
        id: Rule identifier (generated on first save when empty).
        form_id: Form the rule belongs to.
        field_id: Field the rule checks.
        type: Rule type.
        severity: Whether a failure is an error, warning or info.
        message: Message reported on failure.
        client_types: Client types the rule applies to (empty means all).
        params: Rule operands (``minLength``, ``pattern``, ``validationType``...).
        custom_validation_fn: Expression over ``value`` and ``formData``.
        dependent_field: Field whose value gates a dependent rule.
        dependent_condition: Expression over ``dependentValue`` and ``formData``.
        is_active: Inactive rules are never evaluated.
        version: Incremented on every update.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = ""
    form_id: str
    field_id: str
    type: ValidationRuleType
    severity: ValidationSeverity = ValidationSeverity.ERROR
    message: str = ""
    client_types: tuple[ClientType, ...] = ()
    params: dict[str, Any] = Field(default_factory=dict)
    custom_validation_fn: str | None = None
    dependent_field: str | None = None
    dependent_condition: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    created_by: str = ""
    updated_by: str = ""
    version: int = 0

    def applies_to(self, client_type: ClientType | str) -> bool:
        """Return True if the rule is active for the client type."""
        return self.is_active and (not self.client_types or client_type in self.client_types)


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """A single failed rule."""

    field_id: str
    message: str
    severity: ValidationSeverity
    rule_id: str


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Issues partitioned by severity.

    Only errors make a result invalid.
    """

    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()
    infos: tuple[ValidationIssue, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Input to rule validation.

    Attributes:
        form_id: Form being validated.
        client_type: Active client type.
        form_data: Current values keyed by field id.
        user_id: User performing the validation.
        all_forms_data: Values of other forms, keyed by form id.
    """

    form_id: str
    client_type: ClientType | str
    form_data: Mapping[str, Any]
    user_id: str | None = None
    all_forms_data: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ValidationRuleHistory:
    """Record of one saved version of a rule.

    Attributes:
        id: History record identifier.
        rule_id: The rule that changed.
        version: Rule version after the change.
        changes: Attributes that differ from the previous version.
        changed_at: When the change was saved.
        changed_by: Who saved it.
    """

    id: str
    rule_id: str
    version: int
    changes: Mapping[str, Any]
    changed_at: datetime
    changed_by: str = ""


@dataclass(frozen=True, slots=True)
class RuleTestResult:
    """Outcome of trying a rule against sample data."""

    valid: bool
    message: str
