# pyright: reportExplicitAny=false
"""Shared CLI utilities for commands."""

from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING, Any, Never

import orjson

if TYPE_CHECKING:
    from rich.console import Console

__all__ = [
    "ExitCode",
    "OutputFormat",
    "exit_with_error",
    "format_json",
    "get_error_console",
]


class ExitCode(IntEnum):
    """Standard exit codes for formgraph CLI commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3


class OutputFormat(StrEnum):
    """Supported output formats for commands."""

    TABLE = "table"
    JSON = "json"


def format_json(data: Any, *, indent: bool = True) -> str:
    """Format data as JSON.

    Args:
        data: Data to format; unknown types are rendered with ``str``.
        indent: Whether to pretty-print with indentation.

    Returns:
        JSON-formatted string representation.
    """
    options = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(data, option=options, default=str).decode("utf-8")


def get_error_console() -> "Console":
    """Get a Rich console configured for error output to stderr."""
    from rich.console import Console

    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.LOAD_ERROR,
    *,
    console: "Console | None" = None,
) -> Never:
    """Print an error message and exit with the specified code.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(code)
