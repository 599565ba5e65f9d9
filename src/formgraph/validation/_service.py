# pyright: reportAny=false, reportExplicitAny=false
"""Managed validation rules.

This module provides the ValidationRuleService class which stores
client-aware validation rules, keeps a version history of every change and
evaluates the applicable rules against form data.
"""

from typing import TYPE_CHECKING, Any, Final

from formgraph.enums import ValidationRuleType, ValidationSeverity
from formgraph.exceptions import ExpressionError, ValidationRuleNotFoundError
from formgraph.expressions import ExpressionEnvironment
from formgraph.utils import create_engine_logger, generate_id, utc_now

from ._checks import (
    is_blank,
    is_valid_email,
    is_valid_phone,
    matches_pattern,
    parse_datetime,
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

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from formgraph.enums import ClientType

__all__ = ["ValidationRuleService"]

# Attributes that change on every save and are not reported as changes
_BOOKKEEPING_FIELDS: Final = frozenset({"created_at", "updated_at", "version"})


class ValidationRuleService:
    """Store and evaluate client-aware validation rules."""

    __slots__: Final = ("_expressions", "_history", "_logger", "_rules")

    _rules: dict[str, ValidationRule]
    _history: dict[str, list[ValidationRuleHistory]]
    _expressions: ExpressionEnvironment
    _logger: "FilteringBoundLogger"

    def __init__(
        self,
        *,
        expressions: ExpressionEnvironment | None = None,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        """Initialize the service.

        Args:
            expressions: Environment for custom and dependent-condition
                expressions. Defaults to one without parameter access.
            logger: Logger for rule evaluation failures.
        """
        self._rules = {}
        self._history = {}
        self._expressions = expressions if expressions is not None else ExpressionEnvironment()
        self._logger = logger if logger is not None else create_engine_logger(component="validation")

    # -------------------------------------------------------------------------
    # Rule Management
    # -------------------------------------------------------------------------

    def save_rule(self, rule: ValidationRule, *, changed_by: str = "") -> ValidationRule:
        """Insert a new rule or update an existing one.

        New rules get version 1 (and a generated id when empty); updates
        increment the stored version. Every save appends a history record.

        Args:
            rule: The rule to save.
            changed_by: Who is saving the rule.

        Returns:
            The stored rule.
        """
        now = utc_now()
        existing = self._rules.get(rule.id) if rule.id else None

        if existing is None:
            stored = rule.model_copy(
                update={
                    "id": rule.id or generate_id("rule"),
                    "created_at": now,
                    "updated_at": now,
                    "created_by": rule.created_by or changed_by,
                    "updated_by": changed_by or rule.updated_by,
                    "version": 1,
                }
            )
            changes = stored.model_dump(exclude=set(_BOOKKEEPING_FIELDS))
        else:
            stored = rule.model_copy(
                update={
                    "created_at": existing.created_at,
                    "created_by": existing.created_by,
                    "updated_at": now,
                    "updated_by": changed_by or rule.updated_by,
                    "version": existing.version + 1,
                }
            )
            before = existing.model_dump(exclude=set(_BOOKKEEPING_FIELDS))
            after = stored.model_dump(exclude=set(_BOOKKEEPING_FIELDS))
            changes = {key: value for key, value in after.items() if before.get(key) != value}

        self._rules[stored.id] = stored
        self._history.setdefault(stored.id, []).append(
            ValidationRuleHistory(
                id=generate_id("hist"),
                rule_id=stored.id,
                version=stored.version,
                changes=changes,
                changed_at=now,
                changed_by=changed_by,
            )
        )
        self._logger.debug("validation_rule_saved", rule_id=stored.id, version=stored.version)
        return stored

    def load_rules(self, rules: "list[ValidationRule] | tuple[ValidationRule, ...]") -> int:
        """Save several rules.

        Returns:
            The number of rules saved.
        """
        for rule in rules:
            _ = self.save_rule(rule)
        return len(rules)

    def delete_rule(self, rule_id: str) -> bool:
        """Delete a rule. Its history is kept.

        Returns:
            True if the rule existed.
        """
        return self._rules.pop(rule_id, None) is not None

    def get_rule(self, rule_id: str) -> ValidationRule | None:
        """Return a rule, or None."""
        return self._rules.get(rule_id)

    def require_rule(self, rule_id: str) -> ValidationRule:
        """Return a rule.

        Raises:
            ValidationRuleNotFoundError: If the rule does not exist.
        """
        rule = self._rules.get(rule_id)
        if rule is None:
            msg = f"Validation rule not found: {rule_id}"
            raise ValidationRuleNotFoundError(msg, rule_id=rule_id)
        return rule

    def get_all_rules(self) -> list[ValidationRule]:
        """Return every stored rule."""
        return list(self._rules.values())

    def get_rules_for_form(
        self, form_id: str, client_type: "ClientType | str"
    ) -> list[ValidationRule]:
        """Return the active rules of a form applying to a client type."""
        return [
            rule
            for rule in self._rules.values()
            if rule.form_id == form_id and rule.applies_to(client_type)
        ]

    def get_rule_history(self, rule_id: str) -> list[ValidationRuleHistory]:
        """Return the saved versions of a rule, oldest first."""
        return list(self._history.get(rule_id, []))

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def validate(self, context: ValidationContext) -> ValidationResult:
        """Evaluate all applicable rules of a form.

        Rules on fields absent from the data are skipped, except ``required``
        rules. Dependent rules whose condition does not hold are skipped.

        Args:
            context: Form, client type and data to validate.

        Returns:
            Failed rules partitioned by severity.
        """
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []
        infos: list[ValidationIssue] = []
        buckets = {
            ValidationSeverity.ERROR: errors,
            ValidationSeverity.WARNING: warnings,
            ValidationSeverity.INFO: infos,
        }

        for rule in self.get_rules_for_form(context.form_id, context.client_type):
            if rule.field_id not in context.form_data and rule.type != ValidationRuleType.REQUIRED:
                continue
            if rule.type == ValidationRuleType.DEPENDENT and not self._dependent_condition_met(
                rule, context.form_data
            ):
                continue

            if not self._check(context.form_data.get(rule.field_id), rule, context):
                buckets[rule.severity].append(
                    ValidationIssue(
                        field_id=rule.field_id,
                        message=rule.message,
                        severity=rule.severity,
                        rule_id=rule.id,
                    )
                )

        return ValidationResult(errors=tuple(errors), warnings=tuple(warnings), infos=tuple(infos))

    def test_rule(
        self,
        rule: ValidationRule,
        sample_data: dict[str, Any],
        client_type: "ClientType | str",
    ) -> RuleTestResult:
        """Try a rule against sample data without storing it.

        Returns:
            Whether the sample passes, with the rule message on failure.
        """
        context = ValidationContext(
            form_id=rule.form_id,
            client_type=client_type,
            form_data=sample_data,
            user_id="test-user",
        )
        valid = self._check(sample_data.get(rule.field_id), rule, context)
        return RuleTestResult(valid=valid, message="Validation passed" if valid else rule.message)

    def _dependent_condition_met(self, rule: ValidationRule, form_data: Any) -> bool:
        if not rule.dependent_field or not rule.dependent_condition:
            return True
        variables = {
            "dependentValue": form_data.get(rule.dependent_field),
            "formData": dict(form_data),
        }
        try:
            return self._expressions.matches(rule.dependent_condition, variables)
        except ExpressionError as e:
            # Apply the rule when its gate cannot be evaluated
            self._logger.warning(
                "dependent_condition_failed", rule_id=rule.id, error=str(e)
            )
            return True

    def _check(  # noqa: C901, PLR0911
        self,
        value: Any,
        rule: ValidationRule,
        context: ValidationContext,
        rule_type: ValidationRuleType | None = None,
    ) -> bool:
        """Return True if `value` satisfies the rule."""
        params = rule.params
        match rule_type or rule.type:
            case ValidationRuleType.REQUIRED:
                return value is not None and value != ""
            case ValidationRuleType.MIN_LENGTH:
                return value is None or value_length(value) >= (params.get("minLength") or 0)
            case ValidationRuleType.MAX_LENGTH:
                return value is None or value_length(value) <= (params.get("maxLength") or 0)
            case ValidationRuleType.MIN_VALUE:
                number = to_number(value)
                return value is None or (number is not None and number >= (params.get("minValue") or 0))
            case ValidationRuleType.MAX_VALUE:
                number = to_number(value)
                return value is None or (number is not None and number <= (params.get("maxValue") or 0))
            case ValidationRuleType.PATTERN:
                return is_blank(value) or matches_pattern(value, str(params.get("pattern") or ""))
            case ValidationRuleType.EMAIL:
                return is_blank(value) or is_valid_email(value)
            case ValidationRuleType.PHONE:
                return is_blank(value) or is_valid_phone(value)
            case ValidationRuleType.DATE:
                return is_blank(value) or parse_datetime(value) is not None
            case ValidationRuleType.CUSTOM:
                return self._check_custom(value, rule, context)
            case ValidationRuleType.DEPENDENT:
                delegated = params.get("validationType")
                if not delegated or delegated == ValidationRuleType.DEPENDENT:
                    return True
                try:
                    return self._check(value, rule, context, ValidationRuleType(delegated))
                except ValueError:
                    self._logger.warning(
                        "unknown_validation_type", rule_id=rule.id, validation_type=delegated
                    )
                    return True

    def _check_custom(self, value: Any, rule: ValidationRule, context: ValidationContext) -> bool:
        if not rule.custom_validation_fn:
            return True
        variables = {
            "value": value,
            "formData": dict(context.form_data),
            "formId": context.form_id,
            "clientType": str(context.client_type),
        }
        try:
            return self._expressions.matches(rule.custom_validation_fn, variables)
        except ExpressionError as e:
            # A broken custom rule never blocks the user
            self._logger.warning("custom_validation_failed", rule_id=rule.id, error=str(e))
            return True
