"""Live parameter tracking and propagation."""

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
    parameter_key,
)
from ._tracker import ParameterTracker

__all__ = [
    "EVENT_TYPE_BY_DEPENDENCY",
    "AffectedParameter",
    "ChangeCallback",
    "ChangeFilter",
    "ParameterAuditLogEntry",
    "ParameterChangeEvent",
    "ParameterDependency",
    "ParameterGraph",
    "ParameterTracker",
    "Subscription",
    "parameter_key",
]
