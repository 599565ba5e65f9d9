"""Form definitions and the form registry."""

from ._loader import FormDefinitionSet, load_form_definitions, parse_form_definitions
from ._models import (
    FieldConditional,
    FieldDataSource,
    FieldDependency,
    FieldMapping,
    FieldOption,
    FieldOverride,
    FieldValidationRule,
    FieldVisibility,
    FormDependency,
    FormField,
    FormMetadata,
    FormOverride,
    FormRegistryEntry,
    FormSection,
)
from ._overrides import (
    apply_field_override,
    apply_field_visibility,
    explicit_overrides,
    resolve_client_metadata,
)
from ._registry import WILDCARD_ROLE, FormRegistry

__all__ = [
    "WILDCARD_ROLE",
    "FieldConditional",
    "FieldDataSource",
    "FieldDependency",
    "FieldMapping",
    "FieldOption",
    "FieldOverride",
    "FieldValidationRule",
    "FieldVisibility",
    "FormDefinitionSet",
    "FormDependency",
    "FormField",
    "FormMetadata",
    "FormOverride",
    "FormRegistry",
    "FormRegistryEntry",
    "FormSection",
    "apply_field_override",
    "apply_field_visibility",
    "explicit_overrides",
    "load_form_definitions",
    "parse_form_definitions",
    "resolve_client_metadata",
]
