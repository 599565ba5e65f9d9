# pyright: reportAny=false, reportExplicitAny=false
"""Result types returned by the dependency resolver."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from formgraph.enums import ClientType, WorkflowStepStatus
from formgraph.forms import FormDependency

__all__ = [
    "CrossFormValidationResult",
    "FieldMappingPair",
    "FieldValidationRequest",
    "FieldValidationResult",
    "PrerequisiteCheck",
    "WorkflowStep",
]


@dataclass(frozen=True, slots=True)
class PrerequisiteCheck:
    """Outcome of checking a form's required prerequisites.

    Attributes:
        valid: True if every required prerequisite form has been completed.
        missing_prerequisites: The unmet prerequisite dependencies.
    """

    valid: bool
    missing_prerequisites: tuple[FormDependency, ...] = ()

    @property
    def descriptions(self) -> list[str]:
        """Human-readable descriptions of the missing prerequisites."""
        return [dep.description or dep.form_id for dep in self.missing_prerequisites]


@dataclass(frozen=True, slots=True)
class CrossFormValidationResult:
    """Outcome of validating several forms against each other.

    ``errors`` maps a form id to error groups (``prerequisites``,
    ``fieldValidations``), each a list of messages.
    """

    valid: bool
    errors: Mapping[str, Mapping[str, list[str]]] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FieldValidationResult:
    """Outcome of validating one field value."""

    valid: bool
    errors: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class FieldValidationRequest:
    """One entry of a batch field validation."""

    form_id: str
    field_name: str
    value: Any
    client_type: ClientType | str


@dataclass(frozen=True, slots=True)
class FieldMappingPair:
    """A source field carried into a target field."""

    source_field: str
    target_field: str


@dataclass(frozen=True, slots=True)
class WorkflowStep:
    """A form's position within a workflow path.

    Attributes:
        form_id: The form.
        title: Display title of the form.
        status: Completed, current or pending.
        optional: True if no other form in the path requires it.
    """

    form_id: str
    title: str
    status: WorkflowStepStatus
    optional: bool
