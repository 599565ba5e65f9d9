"""The command-line interface for formgraph."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from formgraph.config import load_config
from formgraph.exceptions import ConfigError
from formgraph.utils import create_engine_logger

from ._commands import register_commands
from ._context import CLIContext
from ._shared import ExitCode, exit_with_error

__all__ = ["create_app", "main"]


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Build the CLI app.

    Args:
        console: Console for regular output.
        error_console: Console for errors.
        exit_on_error: Exit the process on parse errors.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="formgraph",
        help="Inspect form definitions and their dependencies.",
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        verbose: Annotated[bool, Parameter(help="Log engine events to stderr")] = False,
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
    ) -> None:
        """Launch formgraph with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            verbose: Log engine events at debug level.
            config: Explicit path to config file.
        """
        try:
            loaded_config = load_config(config)
        except FileNotFoundError:
            exit_with_error(f"Config file not found: {config}", console=error_console)
        except ConfigError as e:
            exit_with_error(str(e), ExitCode.LOAD_ERROR, console=error_console)

        # Engine warnings would interleave with command output unless asked for
        cli_logger = create_engine_logger(
            "debug" if verbose else "error",
            log_format="text",
            log_file=loaded_config.logging.file,
        )
        CLIContext.set_current(CLIContext(config=loaded_config, verbose=verbose, logger=cli_logger))
        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


def main() -> None:
    """Default entrypoint for the `formgraph` CLI."""
    app = create_app()
    app.meta()
