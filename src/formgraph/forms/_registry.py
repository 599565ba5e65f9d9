"""In-memory catalogue of form definitions.

This module provides the FormRegistry class which stores form metadata and
registry entries and answers lookup and filtering queries. Lookups never
raise: unknown ids yield None or an empty list.
"""

from typing import TYPE_CHECKING, Any, Final

from formgraph.utils import create_engine_logger, utc_now

from ._models import FormMetadata, FormRegistryEntry
from ._overrides import resolve_client_metadata

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from formgraph.enums import ClientType, FormModule, FormPermission

__all__ = ["FormRegistry"]

# Role granting a permission to everyone
WILDCARD_ROLE: Final = "*"


class FormRegistry:
    """Registry of form metadata keyed by form id.

    Registration is last-write-wins; overwriting an existing id logs a
    warning. Registered metadata is immutable, so lookups hand out the stored
    instances directly.
    """

    __slots__: Final = ("_entries", "_logger", "_metadata", "_templates")

    _entries: dict[str, FormRegistryEntry]
    _metadata: dict[str, FormMetadata]
    _templates: dict[str, FormMetadata]
    _logger: "FilteringBoundLogger"

    def __init__(self, *, logger: "FilteringBoundLogger | None" = None) -> None:
        """Initialize an empty registry.

        Args:
            logger: Logger for registration warnings. Defaults to a stderr
                logger bound to ``component="registry"``.
        """
        self._entries = {}
        self._metadata = {}
        self._templates = {}
        self._logger = logger if logger is not None else create_engine_logger(component="registry")

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(self, entry: FormRegistryEntry, metadata: FormMetadata) -> None:
        """Register a form, replacing any form with the same id.

        Args:
            entry: Catalogue summary of the form.
            metadata: Full form definition.
        """
        if entry.id in self._entries:
            self._logger.warning("form_overwritten", form_id=entry.id)
        if metadata.id != entry.id:
            self._logger.warning(
                "form_id_mismatch", entry_id=entry.id, metadata_id=metadata.id
            )
        self._entries[entry.id] = entry
        self._metadata[entry.id] = metadata
        self._logger.debug("form_registered", form_id=entry.id, fields=len(metadata.fields))

    def register_metadata(self, metadata: FormMetadata, *, path: str = "") -> FormRegistryEntry:
        """Register a form from its metadata alone.

        Args:
            metadata: Full form definition.
            path: Application path stored on the generated entry.

        Returns:
            The generated registry entry.
        """
        entry = FormRegistryEntry.from_metadata(metadata, path=path)
        self.register(entry, metadata)
        return entry

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def __contains__(self, form_id: object) -> bool:
        return form_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get_all(self) -> list[FormRegistryEntry]:
        """Return all registry entries in registration order."""
        return list(self._entries.values())

    def get_entry(self, form_id: str) -> FormRegistryEntry | None:
        """Return the registry entry for a form, or None."""
        return self._entries.get(form_id)

    def get_metadata(self, form_id: str) -> FormMetadata | None:
        """Return the metadata of a form, or None."""
        return self._metadata.get(form_id)

    def get_all_metadata(self) -> list[FormMetadata]:
        """Return the metadata of every registered form."""
        return list(self._metadata.values())

    def get_by_module(self, module: "FormModule | str") -> list[FormRegistryEntry]:
        """Return entries belonging to a module."""
        return [entry for entry in self._entries.values() if entry.module == module]

    def get_by_client_type(self, client_type: "ClientType | str") -> list[FormRegistryEntry]:
        """Return entries offered to a client type."""
        return [
            entry for entry in self._entries.values() if client_type in entry.client_types
        ]

    def get_by_permission_and_role(
        self, permission: "FormPermission | str", role: str
    ) -> list[FormRegistryEntry]:
        """Return entries granting `permission` to `role` (or to everyone)."""
        result: list[FormRegistryEntry] = []
        for entry in self._entries.values():
            roles = entry.permissions.get(permission, ())  # pyright: ignore[reportArgumentType,reportCallIssue]
            if role in roles or WILDCARD_ROLE in roles:
                result.append(entry)
        return result

    def has_form_permission(
        self, form_id: str, permission: "FormPermission | str", roles: "list[str] | tuple[str, ...]"
    ) -> bool:
        """Check whether any of `roles` holds `permission` on a form.

        Permissions are carried as data only; this is a lookup, not an
        enforcement point.
        """
        entry = self._entries.get(form_id)
        if entry is None:
            return False
        permitted = entry.permissions.get(permission, ())  # pyright: ignore[reportArgumentType,reportCallIssue]
        return WILDCARD_ROLE in permitted or any(role in permitted for role in roles)

    def get_form_dependents(
        self, form_id: str, client_type: "ClientType | str | None" = None
    ) -> list[FormRegistryEntry]:
        """Return entries of forms that declare a dependency on `form_id`.

        Args:
            form_id: The form being depended on.
            client_type: When given, dependencies scoped to other client types
                are ignored and client-override dependencies are included.

        Returns:
            Entries of the dependent forms.
        """
        dependents: list[FormRegistryEntry] = []
        for entry in self._entries.values():
            if entry.id == form_id:
                continue
            metadata = self._metadata.get(entry.id)
            declared = metadata.dependencies if metadata is not None else entry.dependencies
            found = any(
                dep.form_id == form_id
                and (client_type is None or dep.applies_to(client_type))
                for dep in declared
            )
            if not found and client_type is not None and metadata is not None:
                override = metadata.client_type_overrides.get(client_type)  # pyright: ignore[reportArgumentType]
                if override is not None and override.dependencies:
                    found = any(dep.form_id == form_id for dep in override.dependencies)
            if found:
                dependents.append(entry)
        return dependents

    def get_form_dependencies(self, form_id: str) -> list[FormRegistryEntry]:
        """Return entries of the registered forms that `form_id` depends on."""
        metadata = self._metadata.get(form_id)
        if metadata is None:
            return []
        return [
            self._entries[dep.form_id]
            for dep in metadata.dependencies
            if dep.form_id in self._entries
        ]

    def get_client_specific_metadata(
        self, form_id: str, client_type: "ClientType | str"
    ) -> FormMetadata | None:
        """Return the effective metadata of a form for a client type.

        Args:
            form_id: The form to resolve.
            client_type: The client type to resolve for.

        Returns:
            The resolved metadata, or None if the form is unknown or not
            offered to the client type.
        """
        metadata = self._metadata.get(form_id)
        if metadata is None or not metadata.supports_client(client_type):
            return None
        return resolve_client_metadata(metadata, client_type)

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------

    def register_template(self, template_id: str, template: FormMetadata) -> None:
        """Register a form template, replacing any template with the same id."""
        if template_id in self._templates:
            self._logger.warning("template_overwritten", template_id=template_id)
        self._templates[template_id] = template

    def get_template(self, template_id: str) -> FormMetadata | None:
        """Return a template, or None."""
        return self._templates.get(template_id)

    def get_all_templates(self) -> dict[str, FormMetadata]:
        """Return a copy of the template mapping."""
        return dict(self._templates)

    def create_from_template(
        self,
        form_id: str,
        template_id: str,
        *,
        entry_updates: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
        metadata_updates: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
    ) -> FormRegistryEntry | None:
        """Register a new form derived from a template.

        Args:
            form_id: ID of the new form.
            template_id: Template to copy.
            entry_updates: Attributes replacing the generated entry's values.
            metadata_updates: Attributes replacing the template's metadata.

        Returns:
            The new registry entry, or None if the template is unknown.
        """
        template = self._templates.get(template_id)
        if template is None:
            self._logger.error("template_not_found", template_id=template_id)
            return None

        now = utc_now()
        metadata = FormMetadata.model_validate(
            {
                **template.model_dump(),
                **(metadata_updates or {}),
                "id": form_id,
                "created_at": now,
                "updated_at": now,
            }
        )
        entry = FormRegistryEntry.model_validate(
            {
                **FormRegistryEntry.from_metadata(metadata).model_dump(),
                **(entry_updates or {}),
                "id": form_id,
            }
        )
        self.register(entry, metadata)
        return entry
