"""Client-variant resolution.

Pure functions that turn a base form definition plus its client overrides
into the effective definition for one client type.

Precedence:
    1. Every attribute explicitly present (and not null) in a FormOverride
       replaces the base attribute. Collections (sections, fields,
       dependencies, permissions) are replaced wholesale, never merged per
       element.
    2. Each resulting field then receives its own FieldOverride for the
       client type, with the same replace-if-present rule.
    3. The form override's field_visibility, if present, removes hidden
       fields (and unlisted ones with show_only_listed) and forces the
       required flag of listed fields.
"""

from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from formgraph.enums import ClientType

    from ._models import FieldVisibility, FormField, FormMetadata

__all__ = [
    "apply_field_override",
    "apply_field_visibility",
    "explicit_overrides",
    "resolve_client_metadata",
]


def explicit_overrides(
    override: BaseModel, *, exclude: frozenset[str] = frozenset()
) -> dict[str, object]:
    """Collect the attributes an override model explicitly sets.

    Args:
        override: A FieldOverride or FormOverride.
        exclude: Attribute names never copied onto the base.

    Returns:
        Mapping of attribute name to override value, skipping nulls.
    """
    updates: dict[str, object] = {}
    for name in override.model_fields_set:
        if name in exclude:
            continue
        value = getattr(override, name)
        if value is not None:
            updates[name] = value
    return updates


def apply_field_override(
    form_field: "FormField", client_type: "ClientType | str | None"
) -> "FormField":
    """Return `form_field` with its override for `client_type` applied.

    Fields without an override for the client type are returned unchanged.
    The field keeps its full ``client_type_overrides`` mapping.
    """
    override = form_field.override_for(client_type)
    if override is None:
        return form_field
    updates = explicit_overrides(override)
    if not updates:
        return form_field
    return form_field.model_copy(update=updates)


def apply_field_visibility(
    fields: "tuple[FormField, ...]", visibility: "FieldVisibility"
) -> "tuple[FormField, ...]":
    """Apply client field-visibility rules to a field list.

    Args:
        fields: Fields after overrides.
        visibility: Names to hide, require or make optional.

    Returns:
        The filtered fields with adjusted required flags.
    """
    listed = set(visibility.required) | set(visibility.optional)
    result: list[FormField] = []
    for form_field in fields:
        if form_field.name in visibility.hidden:
            continue
        if visibility.show_only_listed and form_field.name not in listed:
            continue
        if form_field.name in visibility.required:
            form_field = form_field.model_copy(update={"required": True})
        elif form_field.name in visibility.optional:
            form_field = form_field.model_copy(update={"required": False})
        result.append(form_field)
    return tuple(result)


def resolve_client_metadata(
    metadata: "FormMetadata", client_type: "ClientType | str"
) -> "FormMetadata":
    """Resolve the effective metadata of a form for a client type.

    Args:
        metadata: The base form metadata.
        client_type: The client type to resolve for.

    Returns:
        The effective metadata. The base instance is returned when nothing
        applies.
    """
    form_override = metadata.client_type_overrides.get(client_type)  # pyright: ignore[reportArgumentType]

    resolved = metadata
    if form_override is not None:
        updates = explicit_overrides(form_override, exclude=frozenset({"field_visibility"}))
        if updates:
            resolved = metadata.model_copy(update=updates)

    fields = tuple(apply_field_override(f, client_type) for f in resolved.fields)

    if form_override is not None and form_override.field_visibility is not None:
        fields = apply_field_visibility(fields, form_override.field_visibility)

    if fields != resolved.fields:
        resolved = resolved.model_copy(update={"fields": fields})
    return resolved
