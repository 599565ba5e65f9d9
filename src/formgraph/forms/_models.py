# pyright: reportExplicitAny=false, reportAny=false
"""Form metadata models.

Form definitions are immutable Pydantic models. Keys are accepted both in
snake_case and in the camelCase used by definition files (``clientTypes``,
``calculationFormula``...). Client variants are explicit override models
validated against the same field names as the base definition.
"""

from datetime import datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from formgraph.enums import (
    ClientType,
    ConditionalOperator,
    DataSourceType,
    FieldDependencyType,
    FieldType,
    FieldValidationType,
    FormDependencyType,
    FormModule,
    FormPermission,
)
from formgraph.utils import utc_now

__all__ = [
    "FieldConditional",
    "FieldDataSource",
    "FieldDependency",
    "FieldMapping",
    "FieldOption",
    "FieldOverride",
    "FieldValidationRule",
    "FieldVisibility",
    "FormDependency",
    "FormField",
    "FormMetadata",
    "FormOverride",
    "FormRegistryEntry",
    "FormSection",
]


class _FormModel(BaseModel):
    """Base for all form definition models."""

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Field Building Blocks
# =============================================================================


class FieldOption(_FormModel):
    """A selectable option of a select, radio or multiselect field."""

    value: Any
    label: str = ""


class FieldConditional(_FormModel):
    """Simple visibility rule comparing another field against a value.

    Attributes:
        field: Name of the field to inspect (``clientType`` compares against
            the active client type).
        operator: Comparison operator.
        value: Operand for the comparison.
    """

    field: str
    operator: ConditionalOperator
    value: Any = None


class FieldValidationRule(_FormModel):
    """Declarative validation rule attached to a field.

    Attributes:
        type: The rule type.
        value: Rule operand (length, bound, pattern or custom expression).
        message: Error message reported when the rule fails.
        client_types: Client types the rule applies to (empty means all).
        condition: Expression over the form data gating the rule.
    """

    type: FieldValidationType
    value: Any = None
    message: str = ""
    client_types: tuple[ClientType, ...] = ()
    condition: str | None = None


class FieldDependency(_FormModel):
    """Dependency of a field on another field of the same form.

    Attributes:
        type: What the dependency controls.
        source_field: Name of the driving field.
        condition: Expression (or ``isEmpty``/``isNotEmpty``) over the source.
        action: Directive or expression applied when the condition holds.
        client_types: Client types the dependency applies to (empty means all).
        description: Optional human-readable description.
    """

    type: FieldDependencyType
    source_field: str
    condition: str = ""
    action: str = ""
    client_types: tuple[ClientType, ...] = ()
    description: str = ""


class FieldDataSource(_FormModel):
    """Where a lookup or select field gets its options."""

    type: DataSourceType
    source: str
    value_field: str = "value"
    label_field: str = "label"
    filters: dict[str, Any] = Field(default_factory=dict)
    client_types: tuple[ClientType, ...] = ()
    depends_on: tuple[str, ...] = ()


class FieldOverride(_FormModel):
    """Client-specific replacement values for a field.

    Only attributes explicitly present in the override are applied. Identity
    attributes (id, name, type) cannot be overridden.
    """

    label: str | None = None
    placeholder: str | None = None
    help_text: str | None = None
    default_value: Any = None
    required: bool | None = None
    read_only: bool | None = None
    hidden: bool | None = None
    validation: tuple[FieldValidationRule, ...] | None = None
    dependencies: tuple[FieldDependency, ...] | None = None
    data_source: FieldDataSource | None = None
    options: tuple[FieldOption, ...] | None = None
    calculation_formula: str | None = None
    section: str | None = None
    order: int | None = None
    width: str | int | None = None
    conditional: FieldConditional | None = None
    no_propagation: bool | None = None
    local_only: bool | None = None
    validation_exemptions: tuple[str, ...] | None = None
    match_across_forms: bool | None = None
    transform_on_propagation: str | None = None
    transform_on_receive: str | None = None


class FormField(_FormModel):
    """A single field of a form.

    Attributes:
        id: Unique field identifier within the form.
        name: Data key of the field; also the parameter id in the tracker.
        label: Display label used in validation messages.
        type: Input type.
        client_types: Client types the field is shown for (empty means all).
        client_type_overrides: Per-client replacement attributes.
        no_propagation: Exclude the field from name-matched propagation.
        local_only: Exclude the field from cross-form comparison.
        validation_exemptions: Form ids this field is not compared against.
        match_across_forms: Whether same-named fields must hold equal values.
        transform_on_propagation: Expression applied when sending the value.
        transform_on_receive: Expression applied when receiving a value.
    """

    id: str
    name: str
    label: str = ""
    type: FieldType = FieldType.TEXT
    placeholder: str | None = None
    help_text: str | None = None
    default_value: Any = None
    required: bool = False
    read_only: bool = False
    hidden: bool = False
    validation: tuple[FieldValidationRule, ...] = ()
    dependencies: tuple[FieldDependency, ...] = ()
    data_source: FieldDataSource | None = None
    options: tuple[FieldOption, ...] = ()
    calculation_formula: str | None = None
    section: str | None = None
    order: int = 0
    width: str | int | None = None
    conditional: FieldConditional | None = None
    client_types: tuple[ClientType, ...] = ()
    client_type_overrides: dict[ClientType, FieldOverride] = Field(default_factory=dict)
    no_propagation: bool = False
    local_only: bool = False
    validation_exemptions: tuple[str, ...] = ()
    match_across_forms: bool = True
    transform_on_propagation: str | None = None
    transform_on_receive: str | None = None

    @property
    def display_label(self) -> str:
        """Label for messages, falling back to the field name."""
        return self.label or self.name

    def override_for(self, client_type: ClientType | str | None) -> FieldOverride | None:
        """Return this field's override for a client type, if any."""
        if client_type is None:
            return None
        return self.client_type_overrides.get(client_type)  # pyright: ignore[reportArgumentType]


# =============================================================================
# Sections and Form-Level Dependencies
# =============================================================================


class FormSection(_FormModel):
    """A group of fields displayed together."""

    id: str
    title: str = ""
    description: str = ""
    order: int = 0
    collapsible: bool = False
    collapsed: bool = False
    client_types: tuple[ClientType, ...] = ()
    conditional: FieldConditional | None = None


class FieldMapping(_FormModel):
    """Explicit field-to-field mapping between two forms."""

    source_field: str
    target_field: str
    transformation_rule: str | None = None
    description: str = ""


class FormDependency(_FormModel):
    """Declared relationship from one form to another.

    Attributes:
        form_id: The other form.
        type: Kind of relationship.
        required: Whether the relationship must be satisfied.
        condition: Expression gating the relationship.
        client_types: Client types the relationship applies to.
        field_mappings: Values to carry from ``form_id`` into this form.
        description: Human-readable description used in messages.
    """

    form_id: str
    type: FormDependencyType
    required: bool = False
    condition: str | None = None
    client_types: tuple[ClientType, ...] = ()
    field_mappings: tuple[FieldMapping, ...] = ()
    description: str = ""

    def applies_to(self, client_type: ClientType | str) -> bool:
        """Return True if this dependency is active for the client type."""
        return not self.client_types or client_type in self.client_types


class FieldVisibility(_FormModel):
    """Client-specific visibility adjustments applied by field name."""

    hidden: tuple[str, ...] = ()
    required: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()
    show_only_listed: bool = False


class FormOverride(_FormModel):
    """Client-specific replacement values for a form.

    Collections present in the override (sections, fields, dependencies)
    replace the base collection wholesale.
    """

    title: str | None = None
    description: str | None = None
    module: FormModule | None = None
    version: str | None = None
    permissions: dict[FormPermission, tuple[str, ...]] | None = None
    sections: tuple[FormSection, ...] | None = None
    fields: tuple[FormField, ...] | None = None
    dependencies: tuple[FormDependency, ...] | None = None
    workflow: str | None = None
    submit_endpoint: str | None = None
    fetch_data_endpoint: str | None = None
    is_active: bool | None = None
    field_visibility: FieldVisibility | None = None


# =============================================================================
# Form Metadata and Registry Entries
# =============================================================================


class FormMetadata(_FormModel):
    """Complete declarative description of a form."""

    id: str
    title: str
    description: str = ""
    module: FormModule = FormModule.ADMINISTRATION
    version: str = "1.0.0"
    permissions: dict[FormPermission, tuple[str, ...]] = Field(default_factory=dict)
    client_types: tuple[ClientType, ...] = ()
    sections: tuple[FormSection, ...] = ()
    fields: tuple[FormField, ...] = ()
    dependencies: tuple[FormDependency, ...] = ()
    workflow: str | None = None
    submit_endpoint: str | None = None
    fetch_data_endpoint: str | None = None
    client_type_overrides: dict[ClientType, FormOverride] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    is_active: bool = True

    def get_field(self, name: str) -> FormField | None:
        """Return the field with the given name (or id), if declared."""
        for form_field in self.fields:
            if form_field.name == name:
                return form_field
        for form_field in self.fields:
            if form_field.id == name:
                return form_field
        return None

    def supports_client(self, client_type: ClientType | str) -> bool:
        """Return True if the form is offered to the client type."""
        return not self.client_types or client_type in self.client_types


class FormRegistryEntry(_FormModel):
    """Lightweight catalogue summary of a registered form."""

    id: str
    title: str
    description: str = ""
    module: FormModule = FormModule.ADMINISTRATION
    client_types: tuple[ClientType, ...] = ()
    permissions: dict[FormPermission, tuple[str, ...]] = Field(default_factory=dict)
    dependencies: tuple[FormDependency, ...] = ()
    version: str = "1.0.0"
    path: str = ""
    icon: str | None = None
    is_active: bool = True

    @classmethod
    def from_metadata(cls, metadata: FormMetadata, *, path: str = "") -> "FormRegistryEntry":
        """Build a registry entry summarizing `metadata`.

        Args:
            metadata: The form metadata.
            path: Application path of the form. Defaults to ``/forms/<id>``.

        Returns:
            A registry entry with the shared attributes copied over.
        """
        return cls(
            id=metadata.id,
            title=metadata.title,
            description=metadata.description,
            module=metadata.module,
            client_types=metadata.client_types,
            permissions=metadata.permissions,
            dependencies=metadata.dependencies,
            version=metadata.version,
            path=path or f"/forms/{metadata.id}",
            is_active=metadata.is_active,
        )
