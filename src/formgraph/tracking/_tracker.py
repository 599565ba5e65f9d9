# pyright: reportAny=false, reportExplicitAny=false
"""Live parameter values and change propagation.

This module provides the ParameterTracker class which holds the current value
of every (form, parameter) pair in a session, records every change in an
append-only audit log, propagates changes along registered parameter
dependencies and notifies subscribers.

Propagation is synchronous and depth-first. Within one propagation pass every
dependency edge fires at most once; a revisited edge is logged (or raised with
``raise_on_cycle``) instead of recursing again, and no pass goes deeper than
``max_propagation_depth`` cascaded writes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Final

from formgraph.config import MultiSourcePolicy
from formgraph.enums import ClientType, ParameterChangeEventType
from formgraph.exceptions import (
    CircularDependencyError,
    ExpressionError,
    PropagationCycleError,
    RegistrationError,
)
from formgraph.expressions import ExpressionEnvironment, create_function_registry
from formgraph.utils import create_engine_logger, generate_id, utc_now

from ._graph import ParameterGraph
from ._models import (
    EVENT_TYPE_BY_DEPENDENCY,
    AffectedParameter,
    ChangeCallback,
    ChangeFilter,
    ParameterAuditLogEntry,
    ParameterChangeEvent,
    ParameterDependency,
    Subscription,
)

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from formgraph.forms import FormRegistry

__all__ = ["ParameterTracker"]


@dataclass(slots=True)
class _PropagationPass:
    """Bookkeeping for one top-level change and everything it cascades into."""

    visited_edges: set[str] = field(default_factory=set)
    path: list[str] = field(default_factory=list)


class ParameterTracker:
    """Session-wide store of parameter values with dependency propagation."""

    __slots__: Final = (
        "_audit_log",
        "_audit_log_limit",
        "_dependencies",
        "_expressions",
        "_graph",
        "_logger",
        "_max_depth",
        "_multi_source_policy",
        "_raise_on_cycle",
        "_registry",
        "_reject_cycles",
        "_strict_references",
        "_subscriptions",
        "_values",
    )

    _values: dict[str, dict[str, Any]]
    _dependencies: list[ParameterDependency]
    _graph: ParameterGraph
    _subscriptions: dict[str, Subscription]
    _audit_log: list[ParameterAuditLogEntry]
    _expressions: ExpressionEnvironment
    _registry: "FormRegistry | None"
    _logger: "FilteringBoundLogger"
    _max_depth: int
    _raise_on_cycle: bool
    _multi_source_policy: MultiSourcePolicy
    _audit_log_limit: int
    _strict_references: bool
    _reject_cycles: bool

    def __init__(
        self,
        *,
        registry: "FormRegistry | None" = None,
        logger: "FilteringBoundLogger | None" = None,
        max_propagation_depth: int = 64,
        raise_on_cycle: bool = False,
        multi_source_policy: MultiSourcePolicy = MultiSourcePolicy.WARN,
        audit_log_limit: int = 0,
        strict_references: bool = False,
        reject_cycles: bool = False,
    ) -> None:
        """Initialize the tracker.

        Args:
            registry: Registry used to check that dependency endpoints exist.
                When None, references are not checked.
            logger: Logger for propagation and registration events.
            max_propagation_depth: Maximum cascaded writes below one change.
            raise_on_cycle: Raise PropagationCycleError on a revisited edge
                instead of logging and skipping it.
            multi_source_policy: Handling of several dependencies driving the
                same target parameter.
            audit_log_limit: Maximum retained audit entries (0 keeps all).
            strict_references: Reject dependencies whose forms or fields are
                not registered.
            reject_cycles: Reject dependencies that close a cycle.
        """
        self._values = {}
        self._dependencies = []
        self._graph = ParameterGraph()
        self._subscriptions = {}
        self._audit_log = []
        self._expressions = ExpressionEnvironment(
            create_function_registry(self.get_parameter_value)
        )
        self._registry = registry
        self._logger = logger if logger is not None else create_engine_logger(component="tracker")
        self._max_depth = max_propagation_depth
        self._raise_on_cycle = raise_on_cycle
        self._multi_source_policy = multi_source_policy
        self._audit_log_limit = audit_log_limit
        self._strict_references = strict_references
        self._reject_cycles = reject_cycles

    @property
    def expressions(self) -> ExpressionEnvironment:
        """Expression environment whose ``getParameterValue`` reads this tracker."""
        return self._expressions

    @property
    def graph(self) -> ParameterGraph:
        """The parameter dependency graph."""
        return self._graph

    # -------------------------------------------------------------------------
    # Dependency Registration
    # -------------------------------------------------------------------------

    def _missing_references(self, dependency: ParameterDependency) -> list[tuple[str, str]]:
        """Return (form_id, parameter_id) endpoints unknown to the registry."""
        if self._registry is None:
            return []
        missing: list[tuple[str, str]] = []
        endpoints = (
            (dependency.source_form_id, dependency.source_parameter_id),
            (dependency.target_form_id, dependency.target_parameter_id),
        )
        for form_id, parameter_id in endpoints:
            metadata = self._registry.get_metadata(form_id)
            if metadata is None or metadata.get_field(parameter_id) is None:
                missing.append((form_id, parameter_id))
        return missing

    def _check_multi_source(self, dependency: ParameterDependency) -> None:
        others = self._graph.incoming_sources(dependency.target_key) - {dependency.source_key}
        if not others or self._multi_source_policy == MultiSourcePolicy.ALLOW:
            return
        if self._multi_source_policy == MultiSourcePolicy.REJECT:
            msg = (
                f"Parameter {dependency.target_key} is already driven by "
                f"{', '.join(sorted(others))}"
            )
            raise RegistrationError(
                msg,
                form_id=dependency.target_form_id,
                parameter_id=dependency.target_parameter_id,
            )
        self._logger.warning(
            "dependency_multiple_sources",
            target=dependency.target_key,
            source=dependency.source_key,
            existing_sources=sorted(others),
        )

    def register_dependency(self, dependency: ParameterDependency) -> bool:
        """Register a parameter dependency.

        Registration is best-effort by default: dangling references and cycles
        are logged and the dependency is still registered. Dependencies that
        target an already-driven parameter fire in registration order.

        Args:
            dependency: The dependency to add.

        Returns:
            True if added, False if an identical dependency already existed.

        Raises:
            RegistrationError: With ``strict_references`` when an endpoint is
                unknown, or with the ``reject`` multi-source policy.
            CircularDependencyError: With ``reject_cycles`` when the
                dependency closes a cycle.
        """
        if dependency in self._dependencies:
            self._logger.debug("dependency_already_registered", edge=dependency.edge_key)
            return False

        for form_id, parameter_id in self._missing_references(dependency):
            if self._strict_references:
                msg = f"Dependency {dependency.edge_key} references unknown parameter {form_id}.{parameter_id}"
                raise RegistrationError(msg, form_id=form_id, parameter_id=parameter_id)
            self._logger.warning(
                "dependency_reference_missing",
                edge=dependency.edge_key,
                form_id=form_id,
                parameter_id=parameter_id,
            )

        cycle = self._graph.cycle_through(dependency)
        if cycle:
            if self._reject_cycles:
                msg = f"Dependency {dependency.edge_key} closes cycle {' -> '.join(cycle)}"
                raise CircularDependencyError(
                    msg,
                    cycle=cycle,
                    form_id=dependency.target_form_id,
                    parameter_id=dependency.target_parameter_id,
                )
            self._logger.warning(
                "dependency_cycle_detected", edge=dependency.edge_key, cycle=list(cycle)
            )

        self._check_multi_source(dependency)

        self._dependencies.append(dependency)
        self._graph.add_dependency(dependency)
        self._logger.debug(
            "dependency_registered",
            edge=dependency.edge_key,
            dependency_type=str(dependency.dependency_type),
        )
        return True

    def register_dependencies(self, dependencies: "list[ParameterDependency] | tuple[ParameterDependency, ...]") -> int:
        """Register several dependencies in order.

        Returns:
            The number of dependencies actually added.
        """
        return sum(1 for dependency in dependencies if self.register_dependency(dependency))

    def get_all_dependencies(self) -> list[ParameterDependency]:
        """Return every registered dependency in registration order."""
        return list(self._dependencies)

    def get_dependencies_for_parameter(
        self, form_id: str, parameter_id: str
    ) -> list[ParameterDependency]:
        """Return dependencies whose source is the given parameter."""
        return [
            dep
            for dep in self._dependencies
            if dep.source_form_id == form_id and dep.source_parameter_id == parameter_id
        ]

    def get_dependencies_affecting_parameter(
        self, form_id: str, parameter_id: str
    ) -> list[ParameterDependency]:
        """Return dependencies whose target is the given parameter."""
        return [
            dep
            for dep in self._dependencies
            if dep.target_form_id == form_id and dep.target_parameter_id == parameter_id
        ]

    def get_dependencies_between(
        self, source_form_id: str, target_form_id: str
    ) -> list[ParameterDependency]:
        """Return dependencies from one form into another."""
        return [
            dep
            for dep in self._dependencies
            if dep.source_form_id == source_form_id and dep.target_form_id == target_form_id
        ]

    def get_dependencies_from_form(self, form_id: str) -> list[ParameterDependency]:
        """Return dependencies whose source lives in the given form."""
        return [dep for dep in self._dependencies if dep.source_form_id == form_id]

    # -------------------------------------------------------------------------
    # Values
    # -------------------------------------------------------------------------

    def get_parameter_value(self, form_id: str, parameter_id: str) -> Any:
        """Return the tracked value, or None if the parameter was never set."""
        form_values = self._values.get(form_id)
        if form_values is None:
            return None
        return form_values.get(parameter_id)

    def has_parameter_value(self, form_id: str, parameter_id: str) -> bool:
        """Return True if the parameter has been written at least once."""
        return parameter_id in self._values.get(form_id, {})

    def get_form_values(self, form_id: str) -> dict[str, Any]:
        """Return a copy of all tracked values of a form."""
        return dict(self._values.get(form_id, {}))

    def clear_parameter_values(self, form_id: str | None = None) -> None:
        """Forget tracked values of one form, or of every form."""
        if form_id is None:
            self._values.clear()
        else:
            _ = self._values.pop(form_id, None)

    def set_parameter_value(
        self,
        form_id: str,
        parameter_id: str,
        value: Any,
        client_type: ClientType | str,
        user_id: str | None = None,
    ) -> ParameterChangeEvent:
        """Write a parameter value and propagate it.

        Dependency failures are logged and skipped; nothing raises unless the
        tracker was created with ``raise_on_cycle``.

        Args:
            form_id: Form holding the parameter.
            parameter_id: Parameter to write.
            value: New value.
            client_type: Active client type.
            user_id: User responsible for the change.

        Returns:
            The recorded change event.

        Raises:
            PropagationCycleError: Only with ``raise_on_cycle``.
        """
        previous_value = self.get_parameter_value(form_id, parameter_id)
        return self.track_parameter_change(
            form_id,
            parameter_id,
            ParameterChangeEventType.VALUE_CHANGED,
            previous_value,
            value,
            client_type,
            user_id,
        )

    def track_parameter_change(
        self,
        form_id: str,
        parameter_id: str,
        event_type: ParameterChangeEventType,
        previous_value: Any,
        new_value: Any,
        client_type: ClientType | str,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ParameterChangeEvent:
        """Record a change, write the value and propagate it to dependents.

        Audit entries are ordered causally: an entry always precedes the
        entries of the changes it triggered.

        Returns:
            The recorded change event.

        Raises:
            PropagationCycleError: Only with ``raise_on_cycle``.
        """
        event, _ = self._track(
            ParameterChangeEvent(
                form_id=form_id,
                parameter_id=parameter_id,
                event_type=event_type,
                previous_value=previous_value,
                new_value=new_value,
                timestamp=utc_now(),
                client_type=client_type,
                user_id=user_id,
                metadata=dict(metadata or {}),
            ),
            _PropagationPass(),
            depth=0,
        )
        self._enforce_audit_limit()
        return event

    def _track(
        self,
        event: ParameterChangeEvent,
        propagation: _PropagationPass,
        *,
        depth: int,
    ) -> tuple[ParameterChangeEvent, tuple[AffectedParameter, ...]]:
        self._values.setdefault(event.form_id, {})[event.parameter_id] = event.new_value
        propagation.path.append(event.parameter_key)

        position = len(self._audit_log)
        affected = self._process_dependencies(event, propagation, depth=depth)
        self._audit_log.insert(
            position,
            ParameterAuditLogEntry(
                id=generate_id("log"), event=event, affected_parameters=affected
            ),
        )

        self._notify_subscribers(event)
        return event, affected

    def _dependency_variables(
        self, event: ParameterChangeEvent, dependency: ParameterDependency
    ) -> dict[str, object]:
        return {
            "sourceValue": event.new_value,
            "previousSourceValue": event.previous_value,
            "sourceFormId": dependency.source_form_id,
            "sourceParameterId": dependency.source_parameter_id,
            "targetFormId": dependency.target_form_id,
            "targetParameterId": dependency.target_parameter_id,
            "clientType": str(event.client_type),
        }

    def _process_dependencies(
        self,
        event: ParameterChangeEvent,
        propagation: _PropagationPass,
        *,
        depth: int,
    ) -> tuple[AffectedParameter, ...]:
        affected: list[AffectedParameter] = []

        for dependency in self.get_dependencies_for_parameter(event.form_id, event.parameter_id):
            if not dependency.applies_to(event.client_type):
                continue

            if dependency.edge_key in propagation.visited_edges:
                self._logger.warning(
                    "propagation_cycle_detected",
                    edge=dependency.edge_key,
                    path=list(propagation.path),
                )
                if self._raise_on_cycle:
                    msg = f"Propagation revisited dependency {dependency.edge_key}"
                    raise PropagationCycleError(
                        msg, edge=dependency.edge_key, path=tuple(propagation.path)
                    )
                continue

            if depth >= self._max_depth:
                self._logger.warning(
                    "propagation_depth_exceeded",
                    edge=dependency.edge_key,
                    max_depth=self._max_depth,
                )
                continue

            variables = self._dependency_variables(event, dependency)
            try:
                if dependency.condition and not self._expressions.matches(
                    dependency.condition, variables
                ):
                    self._logger.debug("propagation_condition_unmet", edge=dependency.edge_key)
                    continue
                new_target_value = (
                    self._expressions.evaluate(dependency.transformation_function, variables)
                    if dependency.transformation_function
                    else event.new_value
                )
            except ExpressionError as e:
                self._logger.warning(
                    "propagation_edge_skipped",
                    edge=dependency.edge_key,
                    expression=e.expression,
                    error=str(e),
                )
                continue

            propagation.visited_edges.add(dependency.edge_key)
            change_type = EVENT_TYPE_BY_DEPENDENCY[dependency.dependency_type]
            _, nested = self._track(
                ParameterChangeEvent(
                    form_id=dependency.target_form_id,
                    parameter_id=dependency.target_parameter_id,
                    event_type=change_type,
                    previous_value=self.get_parameter_value(
                        dependency.target_form_id, dependency.target_parameter_id
                    ),
                    new_value=new_target_value,
                    timestamp=utc_now(),
                    client_type=event.client_type,
                    user_id=event.user_id,
                    metadata={
                        "source_dependency": dependency.source_key,
                        "dependency_type": str(dependency.dependency_type),
                    },
                ),
                propagation,
                depth=depth + 1,
            )
            affected.append(
                AffectedParameter(
                    form_id=dependency.target_form_id,
                    parameter_id=dependency.target_parameter_id,
                    change_type=change_type,
                )
            )
            affected.extend(nested)

        return tuple(affected)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe_to_parameter(
        self,
        form_id: str,
        parameter_id: str,
        callback: ChangeCallback,
        filter_: ChangeFilter | None = None,
    ) -> str:
        """Subscribe to changes of one parameter.

        Callbacks run synchronously on the writer's call stack, in
        subscription order.

        Returns:
            The subscription id.
        """
        return self.subscribe(
            callback, form_id=form_id, parameter_id=parameter_id, filter_=filter_
        )

    def subscribe(
        self,
        callback: ChangeCallback,
        *,
        form_id: str | None = None,
        parameter_id: str | None = None,
        filter_: ChangeFilter | None = None,
    ) -> str:
        """Subscribe to changes, with None acting as a wildcard.

        Returns:
            The subscription id.
        """
        subscription = Subscription(
            id=generate_id("sub"),
            callback=callback,
            form_id=form_id,
            parameter_id=parameter_id,
            filter=filter_,
        )
        self._subscriptions[subscription.id] = subscription
        return subscription.id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription.

        Returns:
            True if the subscription existed.
        """
        return self._subscriptions.pop(subscription_id, None) is not None

    def _notify_subscribers(self, event: ParameterChangeEvent) -> None:
        for subscription in list(self._subscriptions.values()):
            try:
                if subscription.wants(event):
                    _ = subscription.callback(event)
            except Exception as e:  # noqa: BLE001
                self._logger.error(
                    "subscriber_failed",
                    subscription_id=subscription.id,
                    parameter=event.parameter_key,
                    error=str(e),
                )

    # -------------------------------------------------------------------------
    # Audit Log
    # -------------------------------------------------------------------------

    def get_parameter_audit_log(
        self, form_id: str, parameter_id: str
    ) -> list[ParameterAuditLogEntry]:
        """Return audit entries of one parameter, oldest first."""
        return [
            entry
            for entry in self._audit_log
            if entry.form_id == form_id and entry.parameter_id == parameter_id
        ]

    def get_all_audit_logs(self) -> list[ParameterAuditLogEntry]:
        """Return a copy of the whole audit log."""
        return list(self._audit_log)

    def clear_audit_logs_older_than(self, cutoff: datetime) -> int:
        """Drop audit entries recorded before `cutoff`.

        Args:
            cutoff: Entries with an earlier timestamp are removed.

        Returns:
            The number of removed entries.
        """
        initial_count = len(self._audit_log)
        self._audit_log = [entry for entry in self._audit_log if entry.timestamp >= cutoff]
        return initial_count - len(self._audit_log)

    def _enforce_audit_limit(self) -> None:
        if self._audit_log_limit and len(self._audit_log) > self._audit_log_limit:
            del self._audit_log[: len(self._audit_log) - self._audit_log_limit]
