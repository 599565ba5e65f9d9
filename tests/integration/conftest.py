from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from formgraph.cli import create_app


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def console() -> Console:
    return Console(
        width=100,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def formgraph_cli(console: Console) -> Callable[..., int]:
    """Run the CLI through its meta app and return the exit code.

    Global options such as ``--config`` are handled by the meta app, so
    commands see a CLIContext just as they do from the shell.
    """
    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        try:
            app.meta(list(args))
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        return 0

    return _run
