# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
# ruff: noqa: A002, TC003
"""Definition file commands: check, show and workflow."""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Annotated, Literal

from cyclopts import App, Parameter
from rich.console import Console
from rich.table import Table

from formgraph._runtime import FormRuntime
from formgraph.enums import ClientType
from formgraph.exceptions import FormDefinitionError, FormNotFoundError
from formgraph.tracking import parameter_key

from ._context import CLIContext
from ._shared import ExitCode, OutputFormat, exit_with_error, format_json

__all__ = ["DefinitionIssue", "find_definition_issues", "register_commands"]


@dataclass(frozen=True, slots=True)
class DefinitionIssue:
    """A problem found in loaded form definitions.

    Attributes:
        severity: ``error`` for dangling references, ``warning`` for cycles.
        location: Form, field or parameter the issue belongs to.
        message: Human-readable description.
    """

    severity: Literal["error", "warning"]
    location: str
    message: str


def find_definition_issues(runtime: FormRuntime) -> list[DefinitionIssue]:
    """Report dangling references and dependency cycles in a runtime's forms."""
    registry = runtime.registry
    issues: list[DefinitionIssue] = []

    for metadata in registry.get_all_metadata():
        field_names = {form_field.name for form_field in metadata.fields}
        for dependency in metadata.dependencies:
            if dependency.form_id not in registry:
                issues.append(
                    DefinitionIssue(
                        "error", metadata.id, f"Depends on unknown form {dependency.form_id}"
                    )
                )
        for form_field in metadata.fields:
            for field_dependency in form_field.dependencies:
                if field_dependency.source_field not in field_names:
                    issues.append(
                        DefinitionIssue(
                            "error",
                            parameter_key(metadata.id, form_field.name),
                            f"Depends on unknown field {field_dependency.source_field}",
                        )
                    )

    for dependency in runtime.tracker.get_all_dependencies():
        for form_id, parameter_id in (
            (dependency.source_form_id, dependency.source_parameter_id),
            (dependency.target_form_id, dependency.target_parameter_id),
        ):
            metadata = registry.get_metadata(form_id)
            if metadata is None or metadata.get_field(parameter_id) is None:
                issues.append(
                    DefinitionIssue(
                        "error",
                        dependency.edge_key,
                        f"References unknown parameter {parameter_key(form_id, parameter_id)}",
                    )
                )

    cycle = runtime.tracker.graph.find_cycle()
    if cycle:
        issues.append(
            DefinitionIssue("warning", cycle[0], f"Dependency cycle: {' -> '.join(cycle)}")
        )
    return issues


def _load_runtime(definitions: Path) -> FormRuntime:
    ctx = CLIContext.get_current()
    runtime = FormRuntime.create(ctx.config, logger=ctx.logger)
    try:
        _ = runtime.load_definitions(definitions)
    except FileNotFoundError:
        exit_with_error(f"Definition file not found: {definitions}")
    except FormDefinitionError as e:
        exit_with_error(str(e))
    return runtime


def _check(
    definitions: Path,
    /,
    *,
    strict: Annotated[bool, Parameter(help="Treat warnings as errors")] = False,
    format: Annotated[
        OutputFormat, Parameter(name=["--format", "-f"], help="Output format (table, json)")
    ] = OutputFormat.TABLE,
) -> None:
    """Check a definition file for dangling references and cycles.

    Args:
        definitions: Form definition file (JSON, TOML or YAML).
        strict: Treat warnings as errors.
        format: Output format.

    Exit codes:
        0: No problems (or only warnings without --strict)
        1: The file could not be loaded
        2: Errors found, or warnings with --strict
    """
    runtime = _load_runtime(definitions)
    issues = find_definition_issues(runtime)
    console = Console()

    if format == OutputFormat.JSON:
        print(format_json([asdict(issue) for issue in issues]))  # noqa: T201
    elif not issues:
        console.print(f"[green]✓[/green] {definitions}: {len(runtime.registry)} forms, no problems")
    else:
        table = Table(title=str(definitions))
        table.add_column("Severity")
        table.add_column("Location")
        table.add_column("Message")
        for issue in issues:
            color = "red" if issue.severity == "error" else "yellow"
            table.add_row(f"[{color}]{issue.severity}[/{color}]", issue.location, issue.message)
        console.print(table)

    has_errors = any(issue.severity == "error" for issue in issues)
    if has_errors or (strict and issues):
        raise SystemExit(ExitCode.VALIDATION_ERROR)
    raise SystemExit(ExitCode.SUCCESS)


def _show(
    definitions: Path,
    form_id: str,
    /,
    *,
    client: Annotated[ClientType, Parameter(name=["--client", "-c"], help="Client type")],
    format: Annotated[
        OutputFormat, Parameter(name=["--format", "-f"], help="Output format (table, json)")
    ] = OutputFormat.TABLE,
) -> None:
    """Print the effective configuration of a form for a client type.

    Args:
        definitions: Form definition file (JSON, TOML or YAML).
        form_id: The form to show.
        client: Client type to resolve overrides for.
        format: Output format.
    """
    runtime = _load_runtime(definitions)
    config = runtime.engine.generate_form_config(form_id, client)
    if config is None:
        exit_with_error(
            f"Form {form_id} not found or not available for client type {client}",
            ExitCode.NOT_FOUND,
        )

    if format == OutputFormat.JSON:
        print(format_json(config.to_dict()))  # noqa: T201
        raise SystemExit(ExitCode.SUCCESS)

    console = Console()
    console.print(f"[bold blue]{config.title}[/bold blue] ({form_id}, {client})")
    if config.description:
        console.print(config.description)
    table = Table()
    table.add_column("Field")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Section")
    table.add_column("Required", justify="center")
    for form_field in config.fields:
        table.add_row(
            form_field.name,
            form_field.label,
            str(form_field.type),
            form_field.section or "",
            "✓" if form_field.required else "",
        )
    console.print(table)
    if config.dependencies:
        console.print(f"Depends on: {', '.join(config.dependencies)}")
    raise SystemExit(ExitCode.SUCCESS)


def _workflow(
    definitions: Path,
    /,
    *form_ids: str,
    client: Annotated[ClientType, Parameter(name=["--client", "-c"], help="Client type")],
) -> None:
    """Print the workflow path of forms in a fresh session.

    Args:
        definitions: Form definition file (JSON, TOML or YAML).
        form_ids: Forms in workflow order.
        client: Client type.
    """
    runtime = _load_runtime(definitions)
    try:
        steps = runtime.resolver.get_workflow_path(form_ids, client)
    except FormNotFoundError as e:
        exit_with_error(str(e), ExitCode.NOT_FOUND)

    table = Table()
    table.add_column("#", justify="right")
    table.add_column("Form")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Optional", justify="center")
    for index, step in enumerate(steps, start=1):
        table.add_row(
            str(index), step.form_id, step.title, str(step.status), "✓" if step.optional else ""
        )
    Console().print(table)
    raise SystemExit(ExitCode.SUCCESS)


def register_commands(app: App) -> None:
    """Register the definition file commands on an app."""
    app.command(_check, name="check")
    app.command(_show, name="show")
    app.command(_workflow, name="workflow")
