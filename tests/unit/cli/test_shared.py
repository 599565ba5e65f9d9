from io import StringIO

import orjson
import pytest
from rich.console import Console

from formgraph.cli import CLIContext
from formgraph.cli._shared import ExitCode, OutputFormat, exit_with_error, format_json
from formgraph.config import Config, LogLevel


class TestExitCode:
    def test_values(self) -> None:
        assert ExitCode.SUCCESS == 0
        assert ExitCode.LOAD_ERROR == 1
        assert ExitCode.VALIDATION_ERROR == 2
        assert ExitCode.NOT_FOUND == 3

    def test_usable_with_system_exit(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            raise SystemExit(ExitCode.NOT_FOUND)
        assert exc_info.value.code == 3


class TestFormatJson:
    def test_indented_by_default(self) -> None:
        result = format_json({"a": 1})

        assert result == '{\n  "a": 1\n}'

    def test_compact(self) -> None:
        assert format_json([1, 2], indent=False) == "[1,2]"

    def test_unknown_types_use_str(self) -> None:
        assert orjson.loads(format_json({"format": OutputFormat.JSON, "x": object})) == {
            "format": "json",
            "x": str(object),
        }


class TestExitWithError:
    def test_prints_and_exits(self) -> None:
        output = StringIO()
        console = Console(file=output, color_system=None)

        with pytest.raises(SystemExit) as exc_info:
            exit_with_error("Form intake not found", ExitCode.NOT_FOUND, console=console)

        assert exc_info.value.code == ExitCode.NOT_FOUND
        assert "Error: Form intake not found" in output.getvalue()


class TestCLIContext:
    def test_default_context(self) -> None:
        CLIContext.reset()

        ctx = CLIContext.get_current()

        assert ctx.config == Config()
        assert ctx.verbose is False
        assert ctx.logger is None

    def test_set_and_reset(self) -> None:
        config = Config.model_validate({"logging": {"level": "debug"}})
        CLIContext.set_current(CLIContext(config=config, verbose=True))

        try:
            assert CLIContext.get_current().config.logging.level == LogLevel.DEBUG
            assert CLIContext.get_current().verbose is True
        finally:
            CLIContext.reset()

        assert CLIContext.get_current().verbose is False
