# pyright: reportAny=false, reportExplicitAny=false
"""Results produced by the dynamic form engine."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from formgraph.forms import FormField, FormSection

__all__ = [
    "FormConfig",
    "FormValidationResult",
    "FormWorkflow",
    "FormWorkflowStatus",
    "FormWorkflowStep",
    "SubmissionResult",
]


@dataclass(frozen=True, slots=True)
class FormConfig:
    """Effective configuration of a form for one client type and data state.

    Attributes:
        title: Form title.
        description: Form description.
        sections: Visible sections.
        fields: Visible fields with client overrides applied.
        workflow: Workflow the form belongs to, if any.
        dependencies: Ids of the forms this form declares dependencies on.
    """

    title: str
    description: str
    sections: tuple[FormSection, ...] = ()
    fields: tuple[FormField, ...] = ()
    workflow: str | None = None
    dependencies: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible representation with camelCase keys."""
        return {
            "title": self.title,
            "description": self.description,
            "sections": [s.model_dump(mode="json", by_alias=True) for s in self.sections],
            "fields": [
                f.model_dump(mode="json", by_alias=True, exclude={"client_type_overrides"})
                for f in self.fields
            ],
            "workflow": self.workflow,
            "dependencies": list(self.dependencies),
        }


@dataclass(frozen=True, slots=True)
class FormValidationResult:
    """Outcome of validating a form's data.

    ``errors`` maps a field name (or ``<formId>.<group>`` for cross-form
    problems) to messages. Warnings and infos come from managed validation
    rules and never make the result invalid.
    """

    valid: bool
    errors: Mapping[str, list[str]] = field(default_factory=dict)
    warnings: Mapping[str, list[str]] = field(default_factory=dict)
    infos: Mapping[str, list[str]] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    """Outcome of submitting or loading a form."""

    success: bool
    data: Any = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class FormWorkflowStep:
    """A form within a multi-step workflow definition."""

    form_id: str
    title: str
    optional: bool


@dataclass(frozen=True, slots=True)
class FormWorkflow:
    """An ordered multi-step form workflow."""

    id: str
    steps: tuple[FormWorkflowStep, ...]
    title: str = ""
    description: str = ""

    @property
    def form_ids(self) -> list[str]:
        return [step.form_id for step in self.steps]


@dataclass(frozen=True, slots=True)
class FormWorkflowStatus:
    """Where a form sits relative to the forms around it.

    Attributes:
        current_step: Title of the form itself.
        next_steps: Titles of forms that depend on it.
        previous_steps: Titles of its prerequisite forms.
    """

    current_step: str
    next_steps: tuple[str, ...] = ()
    previous_steps: tuple[str, ...] = ()
