# pyright: reportAny=false, reportExplicitAny=false
"""Cross-form dependency resolution.

This module provides the DependencyResolver class which answers questions
about how forms relate to each other: which dependencies apply for a client
type, whether prerequisites are complete, how data flows from one form into
another, whether related forms agree, and where a set of forms stands as a
workflow.

Parameter dependencies live in the ParameterTracker; the resolver registers
into it and reads values from it. Memoized dependency and validation results
expire after a TTL and are invalidated explicitly when forms change.
"""

import time
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, Final

from formgraph.enums import (
    ClientType,
    FieldValidationType,
    FormDependencyType,
    ParameterDependencyType,
    WorkflowStepStatus,
)
from formgraph.exceptions import ExpressionError, FormNotFoundError
from formgraph.forms import (
    FieldMapping,
    FormDependency,
    FormField,
    FormMetadata,
    apply_field_override,
    resolve_client_metadata,
)
from formgraph.tracking import ParameterChangeEvent, ParameterDependency
from formgraph.utils import create_engine_logger
from formgraph.validation import passes_field_rule

from ._cache import TimedCache
from ._coercion import are_field_types_compatible, convert_value_between_types
from ._field_checks import validate_field_by_type
from ._models import (
    CrossFormValidationResult,
    FieldMappingPair,
    FieldValidationRequest,
    FieldValidationResult,
    PrerequisiteCheck,
    WorkflowStep,
)

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from formgraph.forms import FormRegistry
    from formgraph.tracking import ParameterTracker

__all__ = ["DependencyResolver", "map_dependency_type"]

# Field types whose values are derived and never compared across forms
_DERIVED_FIELD_TYPES: Final = frozenset({"calculated", "derived"})

_DEPENDENCY_TYPE_ALIASES: Final[Mapping[str, ParameterDependencyType]] = {
    "direct": ParameterDependencyType.DIRECT,
    "value": ParameterDependencyType.DIRECT,
    "derived": ParameterDependencyType.DERIVED,
    "conditional": ParameterDependencyType.CONDITIONAL,
    "visibility": ParameterDependencyType.CONDITIONAL,
    "validation": ParameterDependencyType.VALIDATION,
    "workflow": ParameterDependencyType.WORKFLOW,
}


def map_dependency_type(dependency_type: str | None) -> ParameterDependencyType:
    """Normalize a field or form dependency type to a parameter dependency type.

    ``value`` maps to direct, ``visibility`` to conditional; unknown types
    map to direct.
    """
    if not dependency_type:
        return ParameterDependencyType.DIRECT
    return _DEPENDENCY_TYPE_ALIASES.get(str(dependency_type).lower(), ParameterDependencyType.DIRECT)


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


class DependencyResolver:
    """Resolve, propagate and validate dependencies between forms."""

    __slots__: Final = (
        "_dependency_cache",
        "_extra_dependencies",
        "_field_mapping_cache",
        "_logger",
        "_registry",
        "_subscription_id",
        "_tracker",
        "_validation_cache",
    )

    _registry: "FormRegistry"
    _tracker: "ParameterTracker"
    _dependency_cache: TimedCache[list[FormDependency]]
    _validation_cache: TimedCache[CrossFormValidationResult]
    _field_mapping_cache: dict[str, list[FieldMappingPair]]
    _extra_dependencies: dict[str, list[FormDependency]]
    _subscription_id: str
    _logger: "FilteringBoundLogger"

    def __init__(
        self,
        registry: "FormRegistry",
        tracker: "ParameterTracker",
        *,
        cache_ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        """Initialize the resolver and subscribe it to tracker changes.

        Args:
            registry: Source of form metadata.
            tracker: Holder of parameter values and parameter dependencies.
            cache_ttl_seconds: Lifetime of memoized results.
            clock: Time source for cache expiry.
            logger: Logger for propagation and registration events.
        """
        self._registry = registry
        self._tracker = tracker
        self._dependency_cache = TimedCache(cache_ttl_seconds, clock=clock)
        self._validation_cache = TimedCache(cache_ttl_seconds, clock=clock)
        self._field_mapping_cache = {}
        self._extra_dependencies = {}
        self._logger = logger if logger is not None else create_engine_logger(component="resolver")
        self._subscription_id = tracker.subscribe(self._on_parameter_change)

    def close(self) -> None:
        """Stop listening to tracker changes."""
        _ = self._tracker.unsubscribe(self._subscription_id)

    def _on_parameter_change(self, event: ParameterChangeEvent) -> None:
        _ = self.invalidate_validation_cache(event.form_id)

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register_form_dependency(
        self,
        source_form_id: str,
        target_form_id: str,
        dependency_type: FormDependencyType | str,
        *,
        required: bool = False,
        description: str = "",
        client_types: Iterable[ClientType | str] = (),
        condition: str | None = None,
        field_mappings: Iterable[FieldMapping] = (),
    ) -> bool:
        """Declare that `target_form_id` depends on `source_form_id`.

        The declaration is added to the target's declared dependencies for
        resolution. Field mappings become direct parameter dependencies.

        Args:
            source_form_id: The form depended on.
            target_form_id: The dependent form.
            dependency_type: Kind of relationship.
            required: Whether the relationship must be satisfied.
            description: Human-readable description.
            client_types: Client types the relationship applies to.
            condition: Expression gating the relationship.
            field_mappings: Values carried from source to target.

        Returns:
            False if either form is not registered (nothing is recorded).
        """
        if source_form_id not in self._registry or target_form_id not in self._registry:
            self._logger.warning(
                "form_dependency_reference_missing",
                source_form_id=source_form_id,
                target_form_id=target_form_id,
            )
            return False

        scoped = tuple(client_types)
        mappings = tuple(field_mappings)
        dependency = FormDependency.model_validate(
            {
                "form_id": source_form_id,
                "type": dependency_type,
                "required": required,
                "condition": condition,
                "client_types": scoped,
                "field_mappings": mappings,
                "description": description,
            }
        )
        self._extra_dependencies.setdefault(target_form_id, []).append(dependency)
        _ = self.invalidate_dependency_cache(target_form_id)
        _ = self.invalidate_validation_cache(target_form_id)

        for mapping in mappings:
            _ = self.register_dependency(
                ParameterDependency.model_validate(
                    {
                        "source_form_id": source_form_id,
                        "source_parameter_id": mapping.source_field,
                        "target_form_id": target_form_id,
                        "target_parameter_id": mapping.target_field,
                        "dependency_type": ParameterDependencyType.DIRECT,
                        "transformation_function": mapping.transformation_rule,
                        "client_types": scoped,
                        "description": mapping.description
                        or f"{target_form_id}.{mapping.target_field} depends on "
                        f"{source_form_id}.{mapping.source_field}",
                    }
                )
            )

        self._logger.info(
            "form_dependency_registered",
            source_form_id=source_form_id,
            target_form_id=target_form_id,
            dependency_type=str(dependency.type),
        )
        return True

    def register_dependency(self, dependency: ParameterDependency | Mapping[str, Any]) -> bool:
        """Register a parameter dependency with the tracker.

        Mappings are normalized first: ``sourceParameterName`` stands in for
        ``sourceParameterId``, ``type`` for ``dependencyType`` (mapped through
        map_dependency_type), ``transformationRule`` for
        ``transformationFunction`` and ``clientType`` for ``clientTypes``.

        Returns:
            True if added, False if already registered.

        Raises:
            RegistrationError: When the tracker runs with strict references.
        """
        if not isinstance(dependency, ParameterDependency):
            dependency = self._normalize_dependency(dependency)
        return self._tracker.register_dependency(dependency)

    @staticmethod
    def _normalize_dependency(data: Mapping[str, Any]) -> ParameterDependency:
        source_form_id = _first(data, "sourceFormId", "source_form_id")
        target_form_id = _first(data, "targetFormId", "target_form_id")
        source_parameter = _first(
            data,
            "sourceParameterId",
            "source_parameter_id",
            "sourceParameterName",
            "source_parameter_name",
        )
        target_parameter = _first(
            data,
            "targetParameterId",
            "target_parameter_id",
            "targetParameterName",
            "target_parameter_name",
        )
        client_types = _first(data, "clientTypes", "client_types")
        if client_types is None:
            single = _first(data, "clientType", "client_type")
            client_types = [single] if single is not None else []

        return ParameterDependency.model_validate(
            {
                "source_form_id": source_form_id,
                "source_parameter_id": source_parameter,
                "target_form_id": target_form_id,
                "target_parameter_id": target_parameter,
                "dependency_type": map_dependency_type(
                    _first(data, "dependencyType", "dependency_type", "type")
                ),
                "transformation_function": _first(
                    data,
                    "transformationFunction",
                    "transformation_function",
                    "transformationRule",
                    "transformation_rule",
                ),
                "condition": _first(data, "condition"),
                "client_types": client_types,
                "description": _first(data, "description")
                or f"{target_form_id}.{target_parameter} depends on {source_form_id}.{source_parameter}",
            }
        )

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def _client_metadata(self, form_id: str, client_type: ClientType | str) -> FormMetadata | None:
        """Return metadata with client overrides applied, even for unsupported clients."""
        metadata = self._registry.get_metadata(form_id)
        if metadata is None:
            return None
        return resolve_client_metadata(metadata, client_type)

    def _declared_dependencies(
        self, form_id: str, client_type: ClientType | str | None = None
    ) -> list[FormDependency]:
        metadata = (
            self._client_metadata(form_id, client_type)
            if client_type is not None
            else self._registry.get_metadata(form_id)
        )
        if metadata is not None:
            declared = list(metadata.dependencies)
        else:
            entry = self._registry.get_entry(form_id)
            if entry is None:
                return []
            declared = list(entry.dependencies)
        return declared + self._extra_dependencies.get(form_id, [])

    def resolve_dependencies(
        self,
        form_id: str,
        client_type: ClientType | str,
        user_id: str | None = None,
        *,
        use_cache: bool = True,
    ) -> list[FormDependency]:
        """Return the dependencies of a form that apply to a client type.

        Results are memoized per (form, client type, user) for the cache TTL.

        Args:
            form_id: The dependent form.
            client_type: Active client type.
            user_id: User the result is computed for.
            use_cache: Read and write the memoized result.

        Returns:
            Applicable dependencies in declaration order; empty for unknown
            forms.
        """
        cache_key = f"{form_id}:{client_type}:{user_id or 'anonymous'}"
        if use_cache:
            cached = self._dependency_cache.get(cache_key)
            if cached is not None:
                return list(cached)

        if form_id not in self._registry:
            return []

        result = [
            dep for dep in self._declared_dependencies(form_id, client_type) if dep.applies_to(client_type)
        ]
        if use_cache:
            self._dependency_cache.set(cache_key, result)
        return list(result)

    def check_prerequisites(self, form_id: str, client_type: ClientType | str) -> PrerequisiteCheck:
        """Check that every required prerequisite form has been completed.

        A form counts as completed once its ``id`` parameter holds a value.
        """
        missing = tuple(
            dep
            for dep in self.resolve_dependencies(form_id, client_type)
            if dep.type == FormDependencyType.PREREQUISITE
            and dep.required
            and not self._tracker.get_parameter_value(dep.form_id, "id")
        )
        return PrerequisiteCheck(valid=not missing, missing_prerequisites=missing)

    def get_dependent_forms(self, form_id: str) -> list[str]:
        """Return ids of forms that declare a dependency on `form_id`."""
        dependents = [entry.id for entry in self._registry.get_form_dependents(form_id)]
        for target_form_id, extras in self._extra_dependencies.items():
            if target_form_id not in dependents and any(dep.form_id == form_id for dep in extras):
                dependents.append(target_form_id)
        return dependents

    # -------------------------------------------------------------------------
    # Propagation
    # -------------------------------------------------------------------------

    def _expression_variables(self, source_value: Any, client_type: ClientType | str) -> dict[str, object]:
        return {"sourceValue": source_value, "clientType": str(client_type)}

    def propagate_data(
        self,
        source_form_id: str,
        target_form_id: str,
        client_type: ClientType | str,
        user_id: str | None = None,
    ) -> int:
        """Carry current values from one form into another.

        Explicit parameter dependencies between the two forms are applied
        first. Fields are then matched by name when there were no explicit
        dependencies or the target declares a dependency on the source;
        fields covered by an explicit dependency, and fields flagged
        ``no_propagation`` on either side, are skipped. Values are converted
        when the field types differ.

        Args:
            source_form_id: Form to read values from.
            target_form_id: Form to write values into.
            client_type: Active client type.
            user_id: User responsible for the writes.

        Returns:
            The number of target parameters written.
        """
        source_metadata = self._client_metadata(source_form_id, client_type)
        target_metadata = self._client_metadata(target_form_id, client_type)
        if source_metadata is None or target_metadata is None:
            self._logger.debug(
                "propagation_form_missing",
                source_form_id=source_form_id,
                target_form_id=target_form_id,
            )
            return 0

        relevant = [
            dep for dep in self._declared_dependencies(target_form_id, client_type) if dep.form_id == source_form_id
        ]
        explicit = self._tracker.get_dependencies_between(source_form_id, target_form_id)
        mapped_sources = {dep.source_parameter_id for dep in explicit if dep.applies_to(client_type)}
        mapped_targets = {dep.target_parameter_id for dep in explicit if dep.applies_to(client_type)}
        written = 0

        for dependency in explicit:
            if not dependency.applies_to(client_type):
                continue
            source_value = self._tracker.get_parameter_value(source_form_id, dependency.source_parameter_id)
            if source_value is None:
                continue
            variables = self._expression_variables(source_value, client_type)
            try:
                if dependency.condition and not self._tracker.expressions.matches(dependency.condition, variables):
                    continue
                target_value = (
                    self._tracker.expressions.evaluate(dependency.transformation_function, variables)
                    if dependency.transformation_function
                    else source_value
                )
            except ExpressionError as e:
                self._logger.warning(
                    "propagation_edge_skipped",
                    edge=dependency.edge_key,
                    expression=e.expression,
                    error=str(e),
                )
                continue

            _ = self._tracker.set_parameter_value(
                target_form_id, dependency.target_parameter_id, target_value, client_type, user_id
            )
            written += 1

        if not explicit or relevant:
            for source_field in source_metadata.fields:
                if source_field.no_propagation or source_field.name in mapped_sources:
                    continue
                target_field = next(
                    (f for f in target_metadata.fields if f.name == source_field.name), None
                )
                if target_field is None or target_field.no_propagation or target_field.name in mapped_targets:
                    continue
                value = self._tracker.get_parameter_value(source_form_id, source_field.name)
                if value is None:
                    continue
                _ = self._tracker.set_parameter_value(
                    target_form_id,
                    target_field.name,
                    self._transform_for_client(value, source_field, target_field, client_type),
                    client_type,
                    user_id,
                )
                written += 1

        self._logger.debug(
            "data_propagated",
            source_form_id=source_form_id,
            target_form_id=target_form_id,
            written=written,
        )
        return written

    def _transform_for_client(
        self,
        value: Any,
        source_field: FormField,
        target_field: FormField,
        client_type: ClientType | str,
    ) -> Any:
        transformed = value
        hooks = (
            (source_field.transform_on_propagation, source_field, {"targetField": target_field.name}),
            (target_field.transform_on_receive, target_field, {"sourceField": source_field.name}),
        )
        for expression, owner, extra in hooks:
            if not expression:
                continue
            try:
                transformed = self._tracker.expressions.evaluate(
                    expression, {"value": transformed, "clientType": str(client_type), **extra}
                )
            except ExpressionError as e:
                self._logger.warning(
                    "field_transform_failed", field=owner.name, expression=e.expression, error=str(e)
                )

        if source_field.type != target_field.type:
            transformed = convert_value_between_types(transformed, source_field.type, target_field.type)
        return transformed

    def notify_dependent_forms(
        self,
        source_form_id: str,
        client_type: ClientType | str,
        user_id: str | None = None,
    ) -> list[str]:
        """Propagate a changed form into every form that depends on it.

        Also invalidates cached results for the source form and fires the
        workflow dependencies rooted at it.

        Returns:
            Ids of the dependent forms that received data.
        """
        dependents = self.get_dependent_forms(source_form_id)
        for target_form_id in dependents:
            _ = self.propagate_data(source_form_id, target_form_id, client_type, user_id)

        _ = self.invalidate_dependency_cache(source_form_id, client_type)
        _ = self.invalidate_validation_cache(source_form_id)
        self._trigger_workflow_dependencies(source_form_id, client_type, user_id)
        return dependents

    def _trigger_workflow_dependencies(
        self, form_id: str, client_type: ClientType | str, user_id: str | None
    ) -> None:
        targets: list[str] = []
        for dependency in self._tracker.get_dependencies_from_form(form_id):
            if dependency.dependency_type != ParameterDependencyType.WORKFLOW:
                continue
            if not dependency.applies_to(client_type) or dependency.target_form_id in targets:
                continue
            if dependency.condition:
                source_value = self._tracker.get_parameter_value(form_id, dependency.source_parameter_id)
                try:
                    if not self._tracker.expressions.matches(
                        dependency.condition, self._expression_variables(source_value, client_type)
                    ):
                        continue
                except ExpressionError as e:
                    self._logger.warning(
                        "workflow_condition_failed", edge=dependency.edge_key, error=str(e)
                    )
                    continue
            targets.append(dependency.target_form_id)

        for target_form_id in targets:
            self._logger.info("workflow_triggered", source_form_id=form_id, target_form_id=target_form_id)
            _ = self.propagate_data(form_id, target_form_id, client_type, user_id)

    def optimize_propagation(
        self, source_form_id: str, target_form_id: str, client_type: ClientType | str
    ) -> list[FieldMappingPair]:
        """Compute and cache the field mappings between two forms.

        Mappings come from explicit dependencies first, then from same-named
        propagatable fields. Name matches without a dependency are registered
        as direct dependencies scoped to the client type.

        Returns:
            The computed mappings; empty if either form is unknown.
        """
        source_metadata = self._client_metadata(source_form_id, client_type)
        target_metadata = self._client_metadata(target_form_id, client_type)
        if source_metadata is None or target_metadata is None:
            return []

        mappings = [
            FieldMappingPair(dep.source_parameter_id, dep.target_parameter_id)
            for dep in self._tracker.get_dependencies_between(source_form_id, target_form_id)
            if dep.applies_to(client_type)
        ]
        mapped_sources = {pair.source_field for pair in mappings}
        mapped_targets = {pair.target_field for pair in mappings}
        for source_field in source_metadata.fields:
            if source_field.no_propagation or source_field.name in mapped_sources:
                continue
            target_field = next((f for f in target_metadata.fields if f.name == source_field.name), None)
            if target_field is None or target_field.no_propagation or target_field.name in mapped_targets:
                continue
            pair = FieldMappingPair(source_field.name, target_field.name)
            if pair not in mappings:
                mappings.append(pair)

        self.cache_field_mappings(source_form_id, target_form_id, mappings)

        registered = {
            (dep.source_parameter_id, dep.target_parameter_id)
            for dep in self._tracker.get_dependencies_between(source_form_id, target_form_id)
        }
        for pair in mappings:
            if (pair.source_field, pair.target_field) in registered:
                continue
            _ = self.register_dependency(
                ParameterDependency(
                    source_form_id=source_form_id,
                    source_parameter_id=pair.source_field,
                    target_form_id=target_form_id,
                    target_parameter_id=pair.target_field,
                    dependency_type=ParameterDependencyType.DIRECT,
                    client_types=(ClientType(client_type),),
                    description=f"Auto-mapped field from {source_form_id}.{pair.source_field} "
                    f"to {target_form_id}.{pair.target_field}",
                )
            )
        return list(mappings)

    # -------------------------------------------------------------------------
    # Cross-Form Validation
    # -------------------------------------------------------------------------

    def validate_across_forms(
        self,
        form_ids: Iterable[str],
        client_type: ClientType | str,
        *,
        use_cache: bool = True,
    ) -> CrossFormValidationResult:
        """Validate a set of forms against each other.

        Each form's prerequisites are checked, then same-named fields of
        every form pair linked by a declared dependency must hold equal
        values.

        Args:
            form_ids: Forms to validate together.
            client_type: Active client type.
            use_cache: Read and write the memoized result.

        Returns:
            Errors keyed by form id, then by ``prerequisites`` or
            ``fieldValidations``.
        """
        ids = list(form_ids)
        cache_key = f"validate:{','.join(ids)}:{client_type}"
        if use_cache:
            cached = self._validation_cache.get(cache_key)
            if cached is not None:
                return cached

        errors: dict[str, dict[str, list[str]]] = {}
        for form_id in ids:
            check = self.check_prerequisites(form_id, client_type)
            if not check.valid:
                errors[form_id] = {
                    "prerequisites": [f"Missing prerequisite: {text}" for text in check.descriptions]
                }

        for form_id in ids:
            if form_id not in self._registry:
                continue
            for dependency in self._declared_dependencies(form_id, client_type):
                if not dependency.applies_to(client_type) or dependency.form_id not in ids:
                    continue
                mismatches = self._validate_fields_across_forms(dependency.form_id, form_id, client_type)
                if mismatches:
                    errors.setdefault(form_id, {}).setdefault("fieldValidations", []).extend(mismatches)

        result = CrossFormValidationResult(valid=not errors, errors=errors)
        if use_cache:
            self._validation_cache.set(cache_key, result)
        return result

    def _validate_fields_across_forms(
        self, source_form_id: str, target_form_id: str, client_type: ClientType | str
    ) -> list[str]:
        source_metadata = self._registry.get_metadata(source_form_id)
        target_metadata = self._registry.get_metadata(target_form_id)
        if source_metadata is None or target_metadata is None:
            return []

        errors: list[str] = []
        for source_field in source_metadata.fields:
            target_field = next((f for f in target_metadata.fields if f.name == source_field.name), None)
            if target_field is None:
                continue
            if not (
                self._tracker.has_parameter_value(source_form_id, source_field.name)
                and self._tracker.has_parameter_value(target_form_id, target_field.name)
            ):
                continue
            source_value = self._tracker.get_parameter_value(source_form_id, source_field.name)
            target_value = self._tracker.get_parameter_value(target_form_id, target_field.name)
            if source_value == target_value:
                continue
            if not self.should_fields_match(source_field, target_field, client_type):
                continue
            if self.is_exempt_from_validation(source_form_id, target_form_id, source_field.name, client_type):
                continue
            errors.append(
                f"Value mismatch between {source_form_id}.{source_field.name} ({source_value}) "
                f"and {target_form_id}.{target_field.name} ({target_value})"
            )
        return errors

    @staticmethod
    def should_fields_match(
        source_field: FormField, target_field: FormField, client_type: ClientType | str
    ) -> bool:
        """Return True if two same-named fields must hold equal values.

        Derived and local-only fields never match; a field (or its client
        override) can opt out with ``match_across_forms``; the two types must
        belong to the same family.
        """
        if str(source_field.type) in _DERIVED_FIELD_TYPES or str(target_field.type) in _DERIVED_FIELD_TYPES:
            return False
        if source_field.local_only or target_field.local_only:
            return False
        for form_field in (source_field, target_field):
            override = form_field.override_for(client_type)
            if not form_field.match_across_forms or (
                override is not None and override.match_across_forms is False
            ):
                return False
        return are_field_types_compatible(str(source_field.type), str(target_field.type))

    def is_exempt_from_validation(
        self,
        source_form_id: str,
        target_form_id: str,
        field_name: str,
        client_type: ClientType | str,
    ) -> bool:
        """Return True if either side exempts the field from comparison.

        A field is exempt when its own exemption list, or that of its client
        override, names the other form.
        """
        source_metadata = self._registry.get_metadata(source_form_id)
        target_metadata = self._registry.get_metadata(target_form_id)
        if source_metadata is None or target_metadata is None:
            return False
        source_field = source_metadata.get_field(field_name)
        target_field = target_metadata.get_field(field_name)
        if source_field is None or target_field is None:
            return False

        for form_field, other_form_id in ((source_field, target_form_id), (target_field, source_form_id)):
            if other_form_id in form_field.validation_exemptions:
                return True
            override = form_field.override_for(client_type)
            if override is not None and other_form_id in (override.validation_exemptions or ()):
                return True
        return False

    # -------------------------------------------------------------------------
    # Field Validation
    # -------------------------------------------------------------------------

    def validate_field(
        self,
        form_id: str,
        field_name: str,
        value: Any,
        client_type: ClientType | str,
    ) -> FieldValidationResult:
        """Validate a single value against its field definition.

        Checks the required flag, the value shape for the field type and the
        field's declarative rules, all with the client override applied. A
        rule whose expression fails is logged and skipped, as in
        DynamicFormEngine.validate_form.
        """
        metadata = self._registry.get_metadata(form_id)
        if metadata is None:
            return FieldValidationResult(valid=False, errors=("Form metadata not found",))

        base_field = next((f for f in metadata.fields if f.name == field_name), None)
        if base_field is None:
            return FieldValidationResult(
                valid=False, errors=(f"Field {field_name} not found in form {form_id}",)
            )

        resolved = resolve_client_metadata(metadata, client_type)
        effective = next(
            (f for f in resolved.fields if f.name == field_name),
            apply_field_override(base_field, client_type),
        )

        errors: list[str] = []
        if effective.required and (value is None or value == ""):
            errors.append(f"{effective.display_label} is required")
        errors.extend(validate_field_by_type(effective, value))
        errors.extend(self._apply_field_rules(form_id, effective, value, client_type))
        return FieldValidationResult(valid=not errors, errors=tuple(errors))

    def _apply_field_rules(
        self,
        form_id: str,
        form_field: FormField,
        value: Any,
        client_type: ClientType | str,
    ) -> list[str]:
        errors: list[str] = []
        form_values = self._tracker.get_form_values(form_id)
        for rule in form_field.validation:
            if rule.client_types and client_type not in rule.client_types:
                continue
            try:
                if rule.condition and not self._tracker.expressions.matches(rule.condition, form_values):
                    continue
                if rule.type == FieldValidationType.CUSTOM:
                    passed = self._tracker.expressions.matches(
                        str(rule.value or ""),
                        {**form_values, "value": value, "clientType": str(client_type)},
                    )
                else:
                    passed = passes_field_rule(rule.type, rule.value, value)
            except ExpressionError as e:
                self._logger.warning(
                    "field_rule_failed", form_id=form_id, field=form_field.name, error=str(e)
                )
                continue
            if not passed:
                errors.append(rule.message)
        return errors

    def batch_validate_fields(
        self, requests: Iterable[FieldValidationRequest]
    ) -> dict[str, FieldValidationResult]:
        """Validate several field values.

        Returns:
            Results keyed by ``form_id:field_name``.
        """
        return {
            f"{request.form_id}:{request.field_name}": self.validate_field(
                request.form_id, request.field_name, request.value, request.client_type
            )
            for request in requests
        }

    # -------------------------------------------------------------------------
    # Workflow
    # -------------------------------------------------------------------------

    def get_workflow_path(
        self, form_ids: Iterable[str], client_type: ClientType | str
    ) -> list[WorkflowStep]:
        """Describe where a sequence of forms stands as a workflow.

        Forms whose ``id`` parameter is set are completed. Exactly one of the
        remaining forms is current: the first whose prerequisites are met, or
        else the first remaining form.

        Args:
            form_ids: The forms in workflow order.
            client_type: Active client type.

        Returns:
            One step per form.

        Raises:
            FormNotFoundError: If any form id is not registered.
        """
        ids = list(form_ids)
        unknown = [form_id for form_id in ids if form_id not in self._registry]
        if unknown:
            msg = f"Invalid form IDs in workflow: {', '.join(unknown)}"
            raise FormNotFoundError(msg, form_id=unknown[0])

        completed = {form_id for form_id in ids if self._tracker.get_parameter_value(form_id, "id")}
        pending = [form_id for form_id in ids if form_id not in completed]
        current = next(
            (form_id for form_id in pending if self.check_prerequisites(form_id, client_type).valid),
            pending[0] if pending else None,
        )

        steps: list[WorkflowStep] = []
        for form_id in ids:
            if form_id in completed:
                status = WorkflowStepStatus.COMPLETED
            elif form_id == current:
                status = WorkflowStepStatus.CURRENT
            else:
                status = WorkflowStepStatus.PENDING
            entry = self._registry.get_entry(form_id)
            steps.append(
                WorkflowStep(
                    form_id=form_id,
                    title=entry.title if entry is not None else form_id,
                    status=status,
                    optional=not self.is_required_in(form_id, ids),
                )
            )
        return steps

    def is_required_in(self, form_id: str, form_ids: Iterable[str]) -> bool:
        """Return True if another of `form_ids` has `form_id` as a required prerequisite."""
        return any(
            dep.form_id == form_id and dep.required and dep.type == FormDependencyType.PREREQUISITE
            for other_id in form_ids
            if other_id != form_id
            for dep in self._declared_dependencies(other_id)
        )

    # -------------------------------------------------------------------------
    # Caches
    # -------------------------------------------------------------------------

    def set_cache_expiration(self, seconds: float) -> None:
        """Change the lifetime of memoized results."""
        self._dependency_cache.ttl_seconds = seconds
        self._validation_cache.ttl_seconds = seconds

    def clear_all_caches(self) -> None:
        """Drop every memoized result and cached field mapping."""
        self._dependency_cache.clear()
        self._validation_cache.clear()
        self._field_mapping_cache.clear()

    def invalidate_dependency_cache(self, form_id: str, client_type: ClientType | str | None = None) -> int:
        """Drop memoized dependencies of a form (optionally of one client type).

        Returns:
            The number of dropped entries.
        """

        def matches(key: str) -> bool:
            key_form_id, key_client_type, _ = key.split(":", 2)
            return key_form_id == form_id and (client_type is None or key_client_type == str(client_type))

        return self._dependency_cache.delete_where(matches)

    def invalidate_validation_cache(self, form_id: str) -> int:
        """Drop memoized cross-form validations involving a form.

        Returns:
            The number of dropped entries.
        """

        def involves(key: str) -> bool:
            forms = key.removeprefix("validate:").rsplit(":", 1)[0]
            return form_id in forms.split(",")

        return self._validation_cache.delete_where(involves)

    def cache_field_mappings(
        self, source_form_id: str, target_form_id: str, mappings: Iterable[FieldMappingPair]
    ) -> None:
        self._field_mapping_cache[f"{source_form_id}:{target_form_id}"] = list(mappings)

    def get_cached_field_mappings(
        self, source_form_id: str, target_form_id: str
    ) -> list[FieldMappingPair] | None:
        """Return the field mappings cached for a form pair, or None."""
        mappings = self._field_mapping_cache.get(f"{source_form_id}:{target_form_id}")
        return list(mappings) if mappings is not None else None
