"""Cross-form dependency resolution, propagation and validation."""

from ._cache import TimedCache
from ._coercion import (
    BOOLEAN_TYPES,
    DATE_TYPES,
    NUMERIC_TYPES,
    SELECT_TYPES,
    STRING_TYPES,
    TEXT_TYPES,
    are_field_types_compatible,
    convert_value_between_types,
    type_family,
)
from ._field_checks import validate_field_by_type
from ._models import (
    CrossFormValidationResult,
    FieldMappingPair,
    FieldValidationRequest,
    FieldValidationResult,
    PrerequisiteCheck,
    WorkflowStep,
)
from ._resolver import DependencyResolver, map_dependency_type

__all__ = [
    "BOOLEAN_TYPES",
    "DATE_TYPES",
    "NUMERIC_TYPES",
    "SELECT_TYPES",
    "STRING_TYPES",
    "TEXT_TYPES",
    "CrossFormValidationResult",
    "DependencyResolver",
    "FieldMappingPair",
    "FieldValidationRequest",
    "FieldValidationResult",
    "PrerequisiteCheck",
    "TimedCache",
    "WorkflowStep",
    "are_field_types_compatible",
    "convert_value_between_types",
    "map_dependency_type",
    "type_family",
    "validate_field_by_type",
]
