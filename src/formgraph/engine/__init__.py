"""Form rendering, validation and submission."""

from ._client import FakeSubmissionClient, HttpSubmissionClient, SubmissionClient
from ._conditional import (
    CLIENT_TYPE_FIELD,
    condition_expression,
    dependency_condition_met,
    evaluate_conditional,
)
from ._engine import DynamicFormEngine, default_value_for
from ._models import (
    FormConfig,
    FormValidationResult,
    FormWorkflow,
    FormWorkflowStatus,
    FormWorkflowStep,
    SubmissionResult,
)

__all__ = [
    "CLIENT_TYPE_FIELD",
    "DynamicFormEngine",
    "FakeSubmissionClient",
    "FormConfig",
    "FormValidationResult",
    "FormWorkflow",
    "FormWorkflowStatus",
    "FormWorkflowStep",
    "HttpSubmissionClient",
    "SubmissionClient",
    "SubmissionResult",
    "condition_expression",
    "default_value_for",
    "dependency_condition_met",
    "evaluate_conditional",
]
