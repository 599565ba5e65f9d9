# pyright: reportAny=false, reportExplicitAny=false
"""Dynamic form engine.

This module provides the DynamicFormEngine class, the entry point for
rendering and submitting a single form. It resolves the effective form
configuration for a client type and the current data, initializes and
validates form state, computes calculated fields, and submits payloads
through a SubmissionClient, notifying dependent forms on success.

Cross-form behavior (prerequisites, propagation, cross-form validation) is
delegated to the DependencyResolver; live values go through the
ParameterTracker.
"""

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, Final

from formgraph.enums import (
    ClientType,
    FieldDependencyType,
    FieldType,
    FieldValidationType,
    FormDependencyType,
)
from formgraph.exceptions import ExpressionError, FormNotFoundError, SubmissionError
from formgraph.utils import create_engine_logger, utc_now
from formgraph.validation import ValidationContext, passes_field_rule

from ._conditional import dependency_condition_met, evaluate_conditional
from ._models import (
    FormConfig,
    FormValidationResult,
    FormWorkflow,
    FormWorkflowStatus,
    FormWorkflowStep,
    SubmissionResult,
)

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from formgraph.forms import FieldDependency, FormField, FormMetadata, FormRegistry
    from formgraph.resolver import DependencyResolver
    from formgraph.tracking import ParameterChangeEvent, ParameterTracker
    from formgraph.validation import ValidationRuleService

    from ._client import SubmissionClient

__all__ = ["DynamicFormEngine", "default_value_for"]

_EMPTY_STRING_TYPES: Final = frozenset(
    {FieldType.TEXT, FieldType.TEXTAREA, FieldType.EMAIL, FieldType.PASSWORD, FieldType.PHONE}
)
_EMPTY_LIST_TYPES: Final = frozenset({FieldType.MULTISELECT, FieldType.REPEATER})

# Requirement dependency actions that make a field required
_REQUIRED_ACTIONS: Final = frozenset({"true", "required"})


def default_value_for(form_field: "FormField") -> Any:
    """Return the initial value of a field.

    The declared default wins; otherwise text-like fields start empty,
    numbers at 0, checkboxes unchecked, selects on their first option and
    list-valued fields as an empty list.
    """
    if form_field.default_value is not None:
        return form_field.default_value

    field_type = form_field.type
    if field_type in _EMPTY_STRING_TYPES:
        return ""
    if field_type == FieldType.NUMBER:
        return 0
    if field_type == FieldType.CHECKBOX:
        return False
    if field_type in (FieldType.SELECT, FieldType.RADIO):
        return form_field.options[0].value if form_field.options else ""
    if field_type in _EMPTY_LIST_TYPES:
        return []
    return None


def _applies(client_types: Iterable[ClientType], client_type: ClientType | str) -> bool:
    scoped = tuple(client_types)
    return not scoped or client_type in scoped


class DynamicFormEngine:
    """Render, validate and submit forms for a client type.

    Example:
        >>> engine = DynamicFormEngine(registry, tracker, resolver)
        >>> config = engine.generate_form_config("intake", ClientType.FDF)
        >>> state = engine.initialize_form_state("intake", ClientType.FDF)
        >>> result = engine.validate_form("intake", ClientType.FDF, state)
    """

    __slots__: Final = (
        "_logger",
        "_registry",
        "_resolver",
        "_rules",
        "_submission_client",
        "_tracker",
        "_validate_dependencies_on_submit",
        "_workflows",
    )

    _registry: "FormRegistry"
    _tracker: "ParameterTracker"
    _resolver: "DependencyResolver"
    _rules: "ValidationRuleService | None"
    _submission_client: "SubmissionClient | None"
    _validate_dependencies_on_submit: bool
    _workflows: dict[str, FormWorkflow]
    _logger: "FilteringBoundLogger"

    def __init__(
        self,
        registry: "FormRegistry",
        tracker: "ParameterTracker",
        resolver: "DependencyResolver",
        *,
        rules: "ValidationRuleService | None" = None,
        submission_client: "SubmissionClient | None" = None,
        validate_dependencies_on_submit: bool = True,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        """Initialize the engine.

        Args:
            registry: Source of form metadata.
            tracker: Holder of live parameter values.
            resolver: Cross-form dependency resolver.
            rules: Managed validation rules applied on top of field rules.
            submission_client: Client used to reach submit and fetch
                endpoints. Without one, submitting and loading fail.
            validate_dependencies_on_submit: Default for cross-form checks
                performed by submit_form.
            logger: Logger for engine events.
        """
        self._registry = registry
        self._tracker = tracker
        self._resolver = resolver
        self._rules = rules
        self._submission_client = submission_client
        self._validate_dependencies_on_submit = validate_dependencies_on_submit
        self._workflows = {}
        self._logger = logger if logger is not None else create_engine_logger(component="engine")

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def generate_form_config(
        self,
        form_id: str,
        client_type: ClientType | str,
        user_id: str | None = None,
        form_data: Mapping[str, Any] | None = None,
    ) -> FormConfig | None:
        """Resolve what a form looks like for a client type and data state.

        Sections and fields scoped to other client types are dropped. When
        `form_data` is given, simple conditionals and visibility dependencies
        are evaluated against it as well.

        Args:
            form_id: The form to render.
            client_type: Active client type.
            user_id: User the form is rendered for.
            form_data: Current form values.

        Returns:
            The effective configuration, or None if the form is unknown or
            not offered to the client type.
        """
        metadata = self._registry.get_client_specific_metadata(form_id, client_type)
        if metadata is None:
            self._logger.error("form_metadata_not_found", form_id=form_id, client_type=str(client_type))
            return None

        sections = tuple(
            section
            for section in metadata.sections
            if _applies(section.client_types, client_type)
            and (
                form_data is None
                or section.conditional is None
                or evaluate_conditional(section.conditional, form_data, client_type)
            )
        )
        fields = tuple(
            form_field
            for form_field in metadata.fields
            if self._is_field_visible(form_field, client_type, form_data)
        )

        self._logger.debug(
            "form_config_generated",
            form_id=form_id,
            client_type=str(client_type),
            user_id=user_id,
            field_count=len(fields),
        )
        return FormConfig(
            title=metadata.title,
            description=metadata.description,
            sections=sections,
            fields=fields,
            workflow=metadata.workflow,
            dependencies=tuple(
                dict.fromkeys(
                    dep.form_id
                    for dep in self._resolver.resolve_dependencies(form_id, client_type, user_id, use_cache=False)
                )
            ),
        )

    def _is_field_visible(
        self,
        form_field: "FormField",
        client_type: ClientType | str,
        form_data: Mapping[str, Any] | None,
    ) -> bool:
        if not _applies(form_field.client_types, client_type):
            return False
        if form_data is None:
            return True
        if form_field.conditional is not None and not evaluate_conditional(
            form_field.conditional, form_data, client_type
        ):
            return False
        return all(
            self._dependency_holds(form_field, dependency, form_data)
            for dependency in form_field.dependencies
            if dependency.type == FieldDependencyType.VISIBILITY
            and _applies(dependency.client_types, client_type)
        )

    def _dependency_holds(
        self,
        form_field: "FormField",
        dependency: "FieldDependency",
        form_data: Mapping[str, Any],
    ) -> bool:
        """Evaluate a field dependency condition; failures count as not met."""
        try:
            return dependency_condition_met(
                self._tracker.expressions,
                dependency.condition,
                form_data.get(dependency.source_field),
                form_data,
            )
        except ExpressionError as e:
            self._logger.warning(
                "field_dependency_condition_failed",
                field=form_field.name,
                source_field=dependency.source_field,
                error=str(e),
            )
            return False

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def initialize_form_state(
        self,
        form_id: str,
        client_type: ClientType | str,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """Compute initial values for a form and record them in the tracker.

        Returns:
            Initial values keyed by field name; empty for unknown forms.
        """
        config = self.generate_form_config(form_id, client_type, user_id)
        if config is None:
            return {}

        state: dict[str, Any] = {}
        for form_field in config.fields:
            value = default_value_for(form_field)
            state[form_field.name] = value
            _ = self._tracker.set_parameter_value(form_id, form_field.name, value, client_type, user_id)
        return state

    def process_field_change(
        self,
        form_id: str,
        field_name: str,
        value: Any,
        client_type: ClientType | str,
        user_id: str | None = None,
    ) -> "ParameterChangeEvent":
        """Record a user edit; the tracker propagates it to dependents."""
        return self._tracker.set_parameter_value(form_id, field_name, value, client_type, user_id)

    def calculate_derived_fields(
        self,
        form_id: str,
        client_type: ClientType | str,
        form_data: Mapping[str, Any],
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """Evaluate calculated fields over the form data.

        Formulas see the data by field name and the results of earlier
        calculated fields. Each result is written to the tracker. A failing
        formula is logged and leaves its field untouched.

        Returns:
            A copy of `form_data` with calculated values filled in.
        """
        result = dict(form_data)
        config = self.generate_form_config(form_id, client_type, user_id)
        if config is None:
            return result

        for form_field in config.fields:
            if form_field.type != FieldType.CALCULATED or not form_field.calculation_formula:
                continue
            try:
                value = self._tracker.expressions.evaluate(form_field.calculation_formula, result)
            except ExpressionError as e:
                self._logger.warning(
                    "calculated_field_failed", form_id=form_id, field=form_field.name, error=str(e)
                )
                continue
            result[form_field.name] = value
            _ = self._tracker.set_parameter_value(form_id, form_field.name, value, client_type, user_id)
        return result

    def evaluate_expression(self, expression: str, variables: Mapping[str, Any]) -> Any:
        """Evaluate an expression with the engine's functions available.

        Raises:
            ExpressionError: If the expression is invalid or fails.
        """
        return self._tracker.expressions.evaluate(expression, variables)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_form(
        self,
        form_id: str,
        client_type: ClientType | str,
        form_data: Mapping[str, Any],
        *,
        validate_dependencies: bool = False,
        user_id: str | None = None,
    ) -> FormValidationResult:
        """Validate form data against the effective form configuration.

        Only visible fields are checked. Requirement dependencies may make a
        field required or optional, field rules run on present values,
        validation dependencies run their action expression, and managed
        rules add errors, warnings and infos.

        Args:
            form_id: The form being validated.
            client_type: Active client type.
            form_data: Values keyed by field name.
            validate_dependencies: Also validate against the forms this form
                depends on; problems appear under ``<formId>.<group>``.
            user_id: User performing the validation.

        Returns:
            The validation outcome.
        """
        config = self.generate_form_config(form_id, client_type, user_id, form_data)
        if config is None:
            return FormValidationResult(valid=False, errors={"form": ["Form configuration not found"]})

        errors: dict[str, list[str]] = {}
        for form_field in config.fields:
            messages = self._validate_field(form_field, client_type, form_data)
            if messages:
                errors[form_field.name] = messages

        warnings: dict[str, list[str]] = {}
        infos: dict[str, list[str]] = {}
        if self._rules is not None:
            outcome = self._rules.validate(
                ValidationContext(
                    form_id=form_id,
                    client_type=client_type,
                    form_data=form_data,
                    user_id=user_id,
                )
            )
            for target, issues in ((errors, outcome.errors), (warnings, outcome.warnings), (infos, outcome.infos)):
                for issue in issues:
                    target.setdefault(issue.field_id, []).append(issue.message)

        if validate_dependencies and config.dependencies:
            cross = self._resolver.validate_across_forms([form_id, *config.dependencies], client_type)
            for other_form_id, groups in cross.errors.items():
                for group, messages in groups.items():
                    errors.setdefault(f"{other_form_id}.{group}", []).extend(messages)

        return FormValidationResult(valid=not errors, errors=errors, warnings=warnings, infos=infos)

    def _validate_field(
        self,
        form_field: "FormField",
        client_type: ClientType | str,
        form_data: Mapping[str, Any],
    ) -> list[str]:
        label = form_field.display_label
        value = form_data.get(form_field.name)
        errors: list[str] = []

        required = form_field.required
        for dependency in form_field.dependencies:
            if dependency.type != FieldDependencyType.REQUIREMENT or not _applies(
                dependency.client_types, client_type
            ):
                continue
            if self._dependency_holds(form_field, dependency, form_data):
                required = dependency.action.strip().lower() in _REQUIRED_ACTIONS
                break

        if required and (value is None or value == ""):
            errors.append(f"{label} is required")

        if value is not None:
            errors.extend(self._apply_rules(form_field, client_type, value, form_data))

        for dependency in form_field.dependencies:
            if dependency.type != FieldDependencyType.VALIDATION or not _applies(
                dependency.client_types, client_type
            ):
                continue
            if not dependency.action or not self._dependency_holds(form_field, dependency, form_data):
                continue
            try:
                passed = self._tracker.expressions.matches(
                    dependency.action,
                    {
                        "value": value,
                        "sourceValue": form_data.get(dependency.source_field),
                        "formData": dict(form_data),
                    },
                )
            except ExpressionError as e:
                self._logger.warning(
                    "validation_dependency_failed", field=form_field.name, error=str(e)
                )
                continue
            if not passed:
                errors.append(f"{label} is invalid based on {dependency.source_field}")
        return errors

    def _apply_rules(
        self,
        form_field: "FormField",
        client_type: ClientType | str,
        value: Any,
        form_data: Mapping[str, Any],
    ) -> list[str]:
        errors: list[str] = []
        for rule in form_field.validation:
            if not _applies(rule.client_types, client_type):
                continue
            try:
                if rule.condition and not self._tracker.expressions.matches(rule.condition, form_data):
                    continue
                if rule.type == FieldValidationType.CUSTOM:
                    passed = bool(rule.value) and self._tracker.expressions.matches(
                        str(rule.value), {**form_data, "value": value, "field": form_field.name}
                    )
                else:
                    passed = passes_field_rule(rule.type, rule.value, value)
            except ExpressionError as e:
                self._logger.warning(
                    "field_rule_failed", field=form_field.name, rule_type=str(rule.type), error=str(e)
                )
                continue
            if not passed:
                errors.append(rule.message or f"{form_field.display_label} is invalid")
        return errors

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def generate_submission_payload(
        self,
        form_id: str,
        client_type: ClientType | str,
        form_data: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Build the payload sent to the form's submit endpoint.

        Calculated fields are filled in and a ``_metadata`` block records the
        form id, form version, client type and submission time.
        """
        metadata = self._registry.get_client_specific_metadata(form_id, client_type)
        if metadata is None:
            self._logger.error("form_metadata_not_found", form_id=form_id, client_type=str(client_type))
            return dict(form_data)

        payload = self.calculate_derived_fields(form_id, client_type, form_data)
        payload["_metadata"] = {
            "formId": form_id,
            "formVersion": metadata.version,
            "clientType": str(client_type),
            "submittedAt": utc_now().isoformat(),
        }
        return payload

    async def submit_form(
        self,
        form_id: str,
        client_type: ClientType | str,
        form_data: Mapping[str, Any],
        *,
        validate_dependencies: bool | None = None,
        user_id: str | None = None,
    ) -> SubmissionResult:
        """Validate and submit a form, then notify its dependents.

        With dependency validation, required prerequisites are checked first
        and reported on their own, then the data is validated including the
        cross-form checks.

        Args:
            form_id: The form to submit.
            client_type: Active client type.
            form_data: Values keyed by field name.
            validate_dependencies: Check prerequisites and related forms.
                Defaults to the engine setting.
            user_id: User submitting the form.

        Returns:
            The submission outcome. Failures never raise.
        """
        metadata = self._registry.get_client_specific_metadata(form_id, client_type)
        if metadata is None:
            return SubmissionResult(success=False, error=f"Form metadata not found for form ID: {form_id}")

        if validate_dependencies is None:
            validate_dependencies = self._validate_dependencies_on_submit

        if validate_dependencies:
            check = self._resolver.check_prerequisites(form_id, client_type)
            if not check.valid:
                return SubmissionResult(
                    success=False,
                    data={"prerequisites": list(check.descriptions)},
                    error="Missing required prerequisites",
                )

        validation = self.validate_form(
            form_id,
            client_type,
            form_data,
            validate_dependencies=validate_dependencies,
            user_id=user_id,
        )
        if not validation.valid:
            return SubmissionResult(success=False, data=dict(validation.errors), error="Form validation failed")

        if not metadata.submit_endpoint:
            return SubmissionResult(success=False, error="No submission endpoint defined for this form")
        if self._submission_client is None:
            return SubmissionResult(success=False, error="No submission client configured")

        payload = self.generate_submission_payload(form_id, client_type, form_data)
        try:
            response = await self._submission_client.post(metadata.submit_endpoint, payload)
        except SubmissionError as e:
            self._logger.error("form_submission_failed", form_id=form_id, error=str(e))
            return SubmissionResult(success=False, error=f"Error submitting form: {e}")

        notified = self._resolver.notify_dependent_forms(form_id, client_type, user_id)
        self._logger.info(
            "form_submitted",
            form_id=form_id,
            client_type=str(client_type),
            user_id=user_id,
            notified_forms=notified,
        )
        return SubmissionResult(success=True, data=response)

    async def load_form_data(
        self,
        form_id: str,
        record_id: str,
        client_type: ClientType | str,
    ) -> SubmissionResult:
        """Fetch a stored record through the form's fetch endpoint.

        ``{id}`` in the endpoint is replaced with `record_id`.
        """
        metadata = self._registry.get_client_specific_metadata(form_id, client_type)
        if metadata is None:
            return SubmissionResult(success=False, error=f"Form metadata not found for form ID: {form_id}")
        if not metadata.fetch_data_endpoint:
            return SubmissionResult(success=False, error="No fetch data endpoint defined for this form")
        if self._submission_client is None:
            return SubmissionResult(success=False, error="No submission client configured")

        url = metadata.fetch_data_endpoint.replace("{id}", record_id)
        try:
            data = await self._submission_client.get(url)
        except SubmissionError as e:
            self._logger.error("form_data_fetch_failed", form_id=form_id, record_id=record_id, error=str(e))
            return SubmissionResult(success=False, error=f"Error fetching form data: {e}")

        if isinstance(data, Mapping):
            data = {"id": record_id, **data}
        return SubmissionResult(success=True, data=data)

    # -------------------------------------------------------------------------
    # Workflows
    # -------------------------------------------------------------------------

    def create_form_workflow(
        self,
        workflow_id: str,
        form_ids: Iterable[str],
        client_type: ClientType | str,
        *,
        title: str = "",
        description: str = "",
    ) -> FormWorkflow:
        """Define an ordered workflow over registered forms.

        Consecutive forms that are not already related get a workflow
        dependency so completing one step feeds the next.

        Raises:
            FormNotFoundError: If any form is unknown or not offered to the
                client type.
        """
        ids = list(form_ids)
        metadata_by_id: dict[str, FormMetadata] = {}
        for form_id in ids:
            metadata = self._registry.get_client_specific_metadata(form_id, client_type)
            if metadata is None:
                msg = f"Form {form_id} not found or not available for client type {client_type}"
                raise FormNotFoundError(msg, form_id=form_id)
            metadata_by_id[form_id] = metadata

        for current_id, next_id in zip(ids, ids[1:], strict=False):
            related = any(
                dep.form_id == current_id
                for dep in self._resolver.resolve_dependencies(next_id, client_type, use_cache=False)
            )
            if not related:
                _ = self._resolver.register_form_dependency(
                    current_id,
                    next_id,
                    FormDependencyType.WORKFLOW,
                    description=f"{workflow_id} step",
                )

        workflow = FormWorkflow(
            id=workflow_id,
            steps=tuple(
                FormWorkflowStep(
                    form_id=form_id,
                    title=metadata_by_id[form_id].title,
                    optional=not self._resolver.is_required_in(form_id, ids),
                )
                for form_id in ids
            ),
            title=title,
            description=description,
        )
        self._workflows[workflow_id] = workflow
        self._logger.info("form_workflow_created", workflow_id=workflow_id, form_ids=ids)
        return workflow

    def get_workflow(self, workflow_id: str) -> FormWorkflow | None:
        """Return a workflow created with create_form_workflow, if any."""
        return self._workflows.get(workflow_id)

    def get_form_workflow_status(
        self, form_id: str, client_type: ClientType | str
    ) -> FormWorkflowStatus | None:
        """Describe a form's neighbours within its workflow.

        Returns:
            The status, or None if the form is unknown or has no workflow.
        """
        metadata = self._registry.get_client_specific_metadata(form_id, client_type)
        if metadata is None or not metadata.workflow:
            return None

        next_steps = tuple(
            self._title_of(dependent_id) for dependent_id in self._resolver.get_dependent_forms(form_id)
        )
        previous_steps = tuple(
            self._title_of(dep.form_id)
            for dep in self._resolver.resolve_dependencies(form_id, client_type)
            if dep.type == FormDependencyType.PREREQUISITE
        )
        return FormWorkflowStatus(
            current_step=metadata.title, next_steps=next_steps, previous_steps=previous_steps
        )

    def _title_of(self, form_id: str) -> str:
        entry = self._registry.get_entry(form_id)
        return entry.title if entry is not None else form_id
