# pyright: reportExplicitAny=false, reportAny=false
"""Parameter tracking models."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Final

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from formgraph.enums import ClientType, ParameterChangeEventType, ParameterDependencyType

__all__ = [
    "AffectedParameter",
    "ChangeCallback",
    "ChangeFilter",
    "EVENT_TYPE_BY_DEPENDENCY",
    "ParameterAuditLogEntry",
    "ParameterChangeEvent",
    "ParameterDependency",
    "Subscription",
    "parameter_key",
]

# Event type recorded on a target written through a dependency
EVENT_TYPE_BY_DEPENDENCY: Final[Mapping[ParameterDependencyType, ParameterChangeEventType]] = {
    ParameterDependencyType.DIRECT: ParameterChangeEventType.VALUE_CHANGED,
    ParameterDependencyType.DERIVED: ParameterChangeEventType.VALUE_CHANGED,
    ParameterDependencyType.CONDITIONAL: ParameterChangeEventType.VISIBILITY_CHANGED,
    ParameterDependencyType.VALIDATION: ParameterChangeEventType.VALIDATION_CHANGED,
    ParameterDependencyType.WORKFLOW: ParameterChangeEventType.VALUE_CHANGED,
}


def parameter_key(form_id: str, parameter_id: str) -> str:
    """Return the ``form.parameter`` key identifying a tracked parameter."""
    return f"{form_id}.{parameter_id}"


class ParameterDependency(BaseModel):
    """A field in one form driving a field in another.

    Attributes:
        source_form_id: Form holding the driving parameter.
        source_parameter_id: The driving parameter.
        target_form_id: Form holding the driven parameter.
        target_parameter_id: The driven parameter.
        dependency_type: How the target is affected.
        transformation_function: Expression computing the target value.
        condition: Expression that must hold for the dependency to fire.
        client_types: Client types the dependency applies to (empty means all).
        description: Human-readable description.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    source_form_id: str
    source_parameter_id: str
    target_form_id: str
    target_parameter_id: str
    dependency_type: ParameterDependencyType = ParameterDependencyType.DIRECT
    transformation_function: str | None = None
    condition: str | None = None
    client_types: tuple[ClientType, ...] = ()
    description: str = ""

    @property
    def source_key(self) -> str:
        """``form.parameter`` key of the source."""
        return parameter_key(self.source_form_id, self.source_parameter_id)

    @property
    def target_key(self) -> str:
        """``form.parameter`` key of the target."""
        return parameter_key(self.target_form_id, self.target_parameter_id)

    @property
    def edge_key(self) -> str:
        """``source -> target`` key of the dependency edge."""
        return f"{self.source_key} -> {self.target_key}"

    def applies_to(self, client_type: ClientType | str) -> bool:
        """Return True if the dependency is active for the client type."""
        return not self.client_types or client_type in self.client_types


@dataclass(frozen=True, slots=True)
class ParameterChangeEvent:
    """A single change of a tracked parameter.

    Attributes:
        form_id: Form holding the parameter.
        parameter_id: The changed parameter.
        event_type: Kind of change.
        previous_value: Value before the change (None when unset).
        new_value: Value after the change.
        timestamp: When the change happened (UTC).
        client_type: Active client type.
        user_id: User responsible for the change, if known.
        metadata: Extra context; propagated writes carry ``source_dependency``
            and ``dependency_type``.
    """

    form_id: str
    parameter_id: str
    event_type: ParameterChangeEventType
    previous_value: Any
    new_value: Any
    timestamp: datetime
    client_type: ClientType | str
    user_id: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def parameter_key(self) -> str:
        """``form.parameter`` key of the changed parameter."""
        return parameter_key(self.form_id, self.parameter_id)

    @property
    def source_dependency(self) -> str | None:
        """Key of the parameter whose change caused this one, if propagated."""
        source = self.metadata.get("source_dependency")
        return source if isinstance(source, str) else None


@dataclass(frozen=True, slots=True)
class AffectedParameter:
    """A parameter written as a consequence of another change."""

    form_id: str
    parameter_id: str
    change_type: ParameterChangeEventType


@dataclass(frozen=True, slots=True)
class ParameterAuditLogEntry:
    """Append-only audit record of one parameter change.

    Attributes:
        id: Unique entry identifier (``log_...``).
        event: The recorded change.
        affected_parameters: Parameters transitively written because of it.
    """

    id: str
    event: ParameterChangeEvent
    affected_parameters: tuple[AffectedParameter, ...] = ()

    @property
    def form_id(self) -> str:
        return self.event.form_id

    @property
    def parameter_id(self) -> str:
        return self.event.parameter_id

    @property
    def previous_value(self) -> Any:
        return self.event.previous_value

    @property
    def new_value(self) -> Any:
        return self.event.new_value

    @property
    def timestamp(self) -> datetime:
        return self.event.timestamp

    @property
    def source_dependency(self) -> str | None:
        return self.event.source_dependency


ChangeCallback = Callable[[ParameterChangeEvent], object]
ChangeFilter = Callable[[ParameterChangeEvent], bool]


@dataclass(frozen=True, slots=True)
class Subscription:
    """A registered change observer.

    A subscription with ``form_id`` None receives changes of every form; one
    with ``parameter_id`` None receives every parameter of its form.
    """

    id: str
    callback: ChangeCallback
    form_id: str | None = None
    parameter_id: str | None = None
    filter: ChangeFilter | None = None

    def wants(self, event: ParameterChangeEvent) -> bool:
        """Return True if the event should be delivered to this subscriber."""
        if self.form_id is not None and self.form_id != event.form_id:
            return False
        if self.parameter_id is not None and self.parameter_id != event.parameter_id:
            return False
        return self.filter is None or self.filter(event)
