# pyright: reportAny=false, reportExplicitAny=false
"""Form definition file loading.

Definition files hold a ``forms`` list of form metadata objects and an
optional ``parameterDependencies`` list. JSON, TOML and YAML are supported;
keys may be camelCase or snake_case.
"""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import orjson
import yaml
from pydantic import ValidationError

from formgraph.exceptions import FormDefinitionError
from formgraph.tracking import ParameterDependency

from ._models import FormMetadata, FormRegistryEntry

__all__ = ["FormDefinitionSet", "load_form_definitions", "parse_form_definitions"]


@dataclass(frozen=True, slots=True)
class FormDefinitionSet:
    """Forms and parameter dependencies read from a definition source.

    Attributes:
        forms: (entry, metadata) pairs in file order.
        parameter_dependencies: Cross-form parameter dependencies.
    """

    forms: tuple[tuple[FormRegistryEntry, FormMetadata], ...] = ()
    parameter_dependencies: tuple[ParameterDependency, ...] = ()

    @property
    def form_ids(self) -> tuple[str, ...]:
        return tuple(metadata.id for _, metadata in self.forms)


def _read_raw(path: Path) -> Any:
    suffix = path.suffix.lower()
    try:
        if suffix == ".json":
            return orjson.loads(path.read_bytes())
        if suffix == ".toml":
            with path.open("rb") as f:
                return tomllib.load(f)
        if suffix in (".yaml", ".yml"):
            with path.open(encoding="utf-8") as f:
                return yaml.safe_load(f)
    except orjson.JSONDecodeError as e:
        msg = f"Invalid JSON in {path}: {e}"
        raise FormDefinitionError(msg, path=path) from e
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise FormDefinitionError(msg, path=path) from e
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in {path}: {e}"
        raise FormDefinitionError(msg, path=path) from e

    msg = f"Unsupported definition file type: {path.suffix or '(none)'}"
    raise FormDefinitionError(msg, path=path)


def parse_form_definitions(data: Any, *, path: Path | None = None) -> FormDefinitionSet:
    """Validate raw definition data.

    Args:
        data: A mapping with ``forms`` (and optionally
            ``parameterDependencies``), or a bare list of forms.
        path: Source file, used in error messages.

    Returns:
        The validated definitions.

    Raises:
        FormDefinitionError: If the data does not match the schema.
    """
    if isinstance(data, list):
        data = {"forms": data}
    if not isinstance(data, dict):
        msg = "Form definitions must be a mapping or a list of forms"
        raise FormDefinitionError(msg, path=path)

    raw_forms = data.get("forms", [])
    raw_dependencies = data.get("parameterDependencies", data.get("parameter_dependencies", []))

    forms: list[tuple[FormRegistryEntry, FormMetadata]] = []
    for index, raw in enumerate(raw_forms):
        try:
            metadata = FormMetadata.model_validate(raw)
        except ValidationError as e:
            form_id = raw.get("id", f"#{index}") if isinstance(raw, dict) else f"#{index}"
            msg = f"Invalid form definition {form_id}: {e}"
            raise FormDefinitionError(msg, path=path) from e
        entry_path = raw.get("path", "") if isinstance(raw, dict) else ""
        entry = FormRegistryEntry.from_metadata(metadata, path=entry_path)
        if isinstance(raw, dict) and raw.get("icon"):
            entry = entry.model_copy(update={"icon": raw["icon"]})
        forms.append((entry, metadata))

    dependencies: list[ParameterDependency] = []
    for index, raw in enumerate(raw_dependencies):
        try:
            dependencies.append(ParameterDependency.model_validate(raw))
        except ValidationError as e:
            msg = f"Invalid parameter dependency #{index}: {e}"
            raise FormDefinitionError(msg, path=path) from e

    return FormDefinitionSet(forms=tuple(forms), parameter_dependencies=tuple(dependencies))


def load_form_definitions(path: Path) -> FormDefinitionSet:
    """Load form definitions from a JSON, TOML or YAML file.

    Args:
        path: The definition file.

    Returns:
        The validated definitions.

    Raises:
        FileNotFoundError: If the file does not exist.
        FormDefinitionError: If the file cannot be parsed or validated.
    """
    return parse_form_definitions(_read_raw(path), path=path)
