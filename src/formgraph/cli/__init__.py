"""The formgraph command-line interface."""

from ._app import create_app, main
from ._commands import DefinitionIssue, find_definition_issues
from ._context import CLIContext

__all__ = ["CLIContext", "DefinitionIssue", "create_app", "find_definition_issues", "main"]
