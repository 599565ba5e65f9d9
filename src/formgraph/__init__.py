"""Metadata-driven form configuration and cross-form dependency engine."""

from formgraph._runtime import FormRuntime
from formgraph.config import Config, load_config
from formgraph.engine import (
    DynamicFormEngine,
    FakeSubmissionClient,
    FormConfig,
    FormValidationResult,
    HttpSubmissionClient,
    SubmissionClient,
    SubmissionResult,
)
from formgraph.enums import ClientType, FieldType, FormDependencyType, ParameterDependencyType
from formgraph.exceptions import FormGraphError
from formgraph.forms import FormMetadata, FormRegistry, FormRegistryEntry, load_form_definitions
from formgraph.resolver import DependencyResolver
from formgraph.tracking import ParameterDependency, ParameterTracker
from formgraph.validation import ValidationRule, ValidationRuleService

__all__ = [
    "ClientType",
    "Config",
    "DependencyResolver",
    "DynamicFormEngine",
    "FakeSubmissionClient",
    "FieldType",
    "FormConfig",
    "FormDependencyType",
    "FormGraphError",
    "FormMetadata",
    "FormRegistry",
    "FormRegistryEntry",
    "FormRuntime",
    "FormValidationResult",
    "HttpSubmissionClient",
    "ParameterDependency",
    "ParameterDependencyType",
    "ParameterTracker",
    "SubmissionClient",
    "SubmissionResult",
    "ValidationRule",
    "ValidationRuleService",
    "load_config",
    "load_form_definitions",
]
