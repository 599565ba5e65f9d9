from typing import TYPE_CHECKING, cast

from cyclopts import App

from formgraph import FormRuntime
from formgraph.cli import DefinitionIssue, find_definition_issues
from formgraph.cli._commands import register_commands
from formgraph.tracking import ParameterDependency
from tests.conftest import MakeForm

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


def _edge(source: str, target: str) -> ParameterDependency:
    source_form, source_parameter = source.split(".")
    target_form, target_parameter = target.split(".")
    return ParameterDependency(
        source_form_id=source_form,
        source_parameter_id=source_parameter,
        target_form_id=target_form,
        target_parameter_id=target_parameter,
    )


class TestCommandRegistration:
    def test_register_commands_registers_subcommands(self, mocker: "MockerFixture") -> None:
        mock_app = mocker.MagicMock(spec=App)
        register_commands(mock_app)

        assert cast("int", mock_app.command.call_count) == 3  # pyright: ignore[reportAny]
        names = [c.kwargs["name"] for c in mock_app.command.call_args_list]  # pyright: ignore[reportAny]
        assert names == ["check", "show", "workflow"]


class TestFindDefinitionIssues:
    def test_clean_definitions(self, runtime: FormRuntime, make_form: MakeForm) -> None:
        _ = runtime.registry.register_metadata(make_form("intake", "name"))
        _ = runtime.registry.register_metadata(
            make_form("assessment", "name", dependencies=[{"formId": "intake", "type": "prerequisite"}])
        )
        _ = runtime.tracker.register_dependency(_edge("intake.name", "assessment.name"))

        assert find_definition_issues(runtime) == []

    def test_unknown_form_dependency(self, runtime: FormRuntime, make_form: MakeForm) -> None:
        _ = runtime.registry.register_metadata(
            make_form("assessment", "name", dependencies=[{"formId": "intake", "type": "prerequisite"}])
        )

        assert find_definition_issues(runtime) == [
            DefinitionIssue("error", "assessment", "Depends on unknown form intake")
        ]

    def test_unknown_source_field(self, runtime: FormRuntime, make_form: MakeForm) -> None:
        _ = runtime.registry.register_metadata(
            make_form(
                "intake",
                {"name": "partner", "dependencies": [{"type": "visibility", "sourceField": "married"}]},
            )
        )

        issues = find_definition_issues(runtime)

        assert issues == [DefinitionIssue("error", "intake.partner", "Depends on unknown field married")]

    def test_unknown_parameter(self, runtime: FormRuntime, make_form: MakeForm) -> None:
        _ = runtime.registry.register_metadata(make_form("intake", "name"))
        _ = runtime.tracker.register_dependency(_edge("intake.name", "budget.owner"))

        issues = find_definition_issues(runtime)

        assert len(issues) == 1
        assert issues[0].location == "intake.name -> budget.owner"
        assert issues[0].message == "References unknown parameter budget.owner"

    def test_cycle_is_a_warning(self, runtime: FormRuntime, make_form: MakeForm) -> None:
        _ = runtime.registry.register_metadata(make_form("a", "x"))
        _ = runtime.registry.register_metadata(make_form("b", "y"))
        _ = runtime.tracker.register_dependency(_edge("a.x", "b.y"))
        _ = runtime.tracker.register_dependency(_edge("b.y", "a.x"))

        issues = find_definition_issues(runtime)

        assert [issue.severity for issue in issues] == ["warning"]
        assert issues[0].message.startswith("Dependency cycle: ")
