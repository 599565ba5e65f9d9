"""Validation checks, rules and results."""

from ._checks import (
    EMAIL_PATTERN,
    PHONE_PATTERN,
    is_blank,
    is_valid_email,
    is_valid_phone,
    is_valid_url,
    matches_pattern,
    parse_datetime,
    passes_field_rule,
    to_number,
    value_length,
)
from ._models import (
    RuleTestResult,
    ValidationContext,
    ValidationIssue,
    ValidationResult,
    ValidationRule,
    ValidationRuleHistory,
)
from ._service import ValidationRuleService

__all__ = [
    "EMAIL_PATTERN",
    "PHONE_PATTERN",
    "RuleTestResult",
    "ValidationContext",
    "ValidationIssue",
    "ValidationResult",
    "ValidationRule",
    "ValidationRuleHistory",
    "ValidationRuleService",
    "is_blank",
    "is_valid_email",
    "is_valid_phone",
    "is_valid_url",
    "matches_pattern",
    "parse_datetime",
    "passes_field_rule",
    "to_number",
    "value_length",
]
