from unittest.mock import MagicMock

import pytest

from formgraph.enums import (
    ClientType,
    FormDependencyType,
    ParameterDependencyType,
    WorkflowStepStatus,
)
from formgraph.exceptions import FormNotFoundError
from formgraph.forms import FieldMapping, FormField, FormRegistry
from formgraph.resolver import (
    DependencyResolver,
    FieldMappingPair,
    FieldValidationRequest,
    map_dependency_type,
)
from formgraph.tracking import ParameterDependency, ParameterTracker
from tests.conftest import MakeForm

FDF = ClientType.FDF


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _prerequisite(form_id: str, **attributes: object) -> dict[str, object]:
    return {"formId": form_id, "type": "prerequisite", "required": True, **attributes}


def _logged(method: MagicMock) -> list[str]:
    return [c.args[0] for c in method.call_args_list]


class TestMapDependencyType:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("value", ParameterDependencyType.DIRECT),
            ("visibility", ParameterDependencyType.CONDITIONAL),
            ("derived", ParameterDependencyType.DERIVED),
            ("WORKFLOW", ParameterDependencyType.WORKFLOW),
            ("validation", ParameterDependencyType.VALIDATION),
            ("unknown", ParameterDependencyType.DIRECT),
            (None, ParameterDependencyType.DIRECT),
        ],
    )
    def test_map_dependency_type(self, value: str | None, expected: ParameterDependencyType) -> None:
        assert map_dependency_type(value) == expected


class TestRegistration:
    def test_register_form_dependency_requires_both_forms(
        self,
        registry: FormRegistry,
        resolver: DependencyResolver,
        make_form: MakeForm,
        mock_logger: MagicMock,
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "name"))

        assert resolver.register_form_dependency("intake", "missing", "reference") is False
        assert "form_dependency_reference_missing" in _logged(mock_logger.warning)
        assert resolver.get_dependent_forms("intake") == []

    def test_register_form_dependency_adds_declaration(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "name"))
        _ = registry.register_metadata(make_form("assessment", "name"))

        added = resolver.register_form_dependency(
            "intake", "assessment", FormDependencyType.PREREQUISITE, required=True, description="Intake form"
        )

        assert added is True
        dependencies = resolver.resolve_dependencies("assessment", FDF)
        assert [(d.form_id, d.type, d.required) for d in dependencies] == [
            ("intake", FormDependencyType.PREREQUISITE, True)
        ]
        assert resolver.get_dependent_forms("intake") == ["assessment"]

    def test_field_mappings_become_parameter_dependencies(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "amount"))
        _ = registry.register_metadata(make_form("budget", "total"))

        _ = resolver.register_form_dependency(
            "intake",
            "budget",
            "direct",
            client_types=[FDF],
            field_mappings=[
                FieldMapping(source_field="amount", target_field="total", transformation_rule="sourceValue * 2")
            ],
        )

        dependency = tracker.get_dependencies_between("intake", "budget")[0]
        assert dependency.transformation_function == "sourceValue * 2"
        assert dependency.client_types == (FDF,)
        assert dependency.description == "budget.total depends on intake.amount"

    def test_register_dependency_normalizes_mapping(
        self, tracker: ParameterTracker, resolver: DependencyResolver
    ) -> None:
        added = resolver.register_dependency(
            {
                "sourceFormId": "intake",
                "sourceParameterName": "status",
                "targetFormId": "review",
                "targetParameterName": "visible",
                "type": "visibility",
                "transformationRule": "sourceValue == 'open'",
                "clientType": "ADHA",
            }
        )

        assert added is True
        dependency = tracker.get_all_dependencies()[0]
        assert dependency.edge_key == "intake.status -> review.visible"
        assert dependency.dependency_type == ParameterDependencyType.CONDITIONAL
        assert dependency.transformation_function == "sourceValue == 'open'"
        assert dependency.client_types == (ClientType.ADHA,)

    def test_register_dependency_accepts_model(
        self, tracker: ParameterTracker, resolver: DependencyResolver
    ) -> None:
        dependency = ParameterDependency(
            source_form_id="a", source_parameter_id="x", target_form_id="b", target_parameter_id="y"
        )

        assert resolver.register_dependency(dependency) is True
        assert resolver.register_dependency(dependency) is False


class TestResolveDependencies:
    def test_filters_by_client_type(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(
            make_form(
                "assessment",
                "x",
                dependencies=[
                    {"formId": "intake", "type": "prerequisite"},
                    {"formId": "eligibility", "type": "reference", "clientTypes": ["ADHA"]},
                ],
            )
        )

        assert [d.form_id for d in resolver.resolve_dependencies("assessment", FDF)] == ["intake"]
        assert [d.form_id for d in resolver.resolve_dependencies("assessment", "ADHA")] == [
            "intake",
            "eligibility",
        ]

    def test_uses_client_override_dependencies(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(
            make_form(
                "assessment",
                "x",
                dependencies=[{"formId": "intake", "type": "prerequisite"}],
                clientTypeOverrides={"CASH": {"dependencies": [{"formId": "payment", "type": "reference"}]}},
            )
        )

        assert [d.form_id for d in resolver.resolve_dependencies("assessment", "CASH")] == ["payment"]

    def test_unknown_form_has_no_dependencies(self, resolver: DependencyResolver) -> None:
        assert resolver.resolve_dependencies("missing", FDF) == []

    def test_results_are_memoized_until_ttl(
        self, registry: FormRegistry, tracker: ParameterTracker, make_form: MakeForm, mock_logger: MagicMock
    ) -> None:
        clock = FakeClock()
        resolver = DependencyResolver(registry, tracker, cache_ttl_seconds=60, clock=clock, logger=mock_logger)
        _ = registry.register_metadata(make_form("assessment", "x", dependencies=[_prerequisite("intake")]))
        assert len(resolver.resolve_dependencies("assessment", FDF)) == 1

        _ = registry.register_metadata(make_form("assessment", "x"))

        assert len(resolver.resolve_dependencies("assessment", FDF)) == 1
        assert resolver.resolve_dependencies("assessment", FDF, use_cache=False) == []
        clock.now = 60
        assert resolver.resolve_dependencies("assessment", FDF) == []

    def test_notify_invalidates_dependency_cache(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(make_form("assessment", "x", dependencies=[_prerequisite("intake")]))
        _ = resolver.resolve_dependencies("assessment", FDF)
        _ = registry.register_metadata(make_form("assessment", "x"))

        _ = resolver.notify_dependent_forms("assessment", FDF)

        assert resolver.resolve_dependencies("assessment", FDF) == []

    def test_cache_is_keyed_by_user(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(make_form("assessment", "x", dependencies=[_prerequisite("intake")]))
        _ = resolver.resolve_dependencies("assessment", FDF, "user-1")
        _ = registry.register_metadata(make_form("assessment", "x"))

        assert len(resolver.resolve_dependencies("assessment", FDF, "user-1")) == 1
        assert resolver.resolve_dependencies("assessment", FDF, "user-2") == []

    def test_invalidate_dependency_cache_by_client(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(make_form("assessment", "x", dependencies=[_prerequisite("intake")]))
        _ = resolver.resolve_dependencies("assessment", FDF)
        _ = resolver.resolve_dependencies("assessment", "ADHA")

        assert resolver.invalidate_dependency_cache("assessment", FDF) == 1
        assert resolver.invalidate_dependency_cache("assessment") == 1

    def test_clear_all_caches(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "name"))
        _ = registry.register_metadata(make_form("assessment", "name"))
        _ = resolver.optimize_propagation("intake", "assessment", FDF)

        resolver.clear_all_caches()

        assert resolver.get_cached_field_mappings("intake", "assessment") is None


class TestPrerequisites:
    def test_missing_prerequisite(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(
            make_form(
                "assessment",
                "x",
                dependencies=[
                    _prerequisite("intake", description="Client intake"),
                    _prerequisite("consent"),
                    {"formId": "history", "type": "prerequisite", "required": False},
                    {"formId": "notes", "type": "reference", "required": True},
                ],
            )
        )

        check = resolver.check_prerequisites("assessment", FDF)

        assert not check.valid
        assert check.descriptions == ["Client intake", "consent"]

    def test_completed_prerequisite(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(make_form("assessment", "x", dependencies=[_prerequisite("intake")]))
        _ = tracker.set_parameter_value("intake", "id", "rec_1", FDF)

        assert resolver.check_prerequisites("assessment", FDF).valid


class TestPropagateData:
    def test_name_matching_copies_values(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "name", "age", {"name": "id", "noPropagation": True}))
        _ = registry.register_metadata(make_form("assessment", "name", "age", "id"))
        _ = tracker.set_parameter_value("intake", "name", "Ada", FDF)
        _ = tracker.set_parameter_value("intake", "id", "rec_1", FDF)

        written = resolver.propagate_data("intake", "assessment", FDF)

        assert written == 1
        assert tracker.get_parameter_value("assessment", "name") == "Ada"
        assert not tracker.has_parameter_value("assessment", "age")
        assert not tracker.has_parameter_value("assessment", "id")

    def test_converts_between_field_types(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(make_form("intake", {"name": "age", "type": "text"}))
        _ = registry.register_metadata(make_form("assessment", {"name": "age", "type": "number"}))
        _ = tracker.set_parameter_value("intake", "age", "42", FDF)

        _ = resolver.propagate_data("intake", "assessment", FDF)

        assert tracker.get_parameter_value("assessment", "age") == 42

    def test_transform_hooks(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(
            make_form("intake", {"name": "amount", "type": "number", "transformOnPropagation": "value * 10"})
        )
        _ = registry.register_metadata(
            make_form("budget", {"name": "amount", "type": "number", "transformOnReceive": "value + 1"})
        )
        _ = tracker.set_parameter_value("intake", "amount", 5, FDF)

        _ = resolver.propagate_data("intake", "budget", FDF)

        assert tracker.get_parameter_value("budget", "amount") == 51

    def test_explicit_dependencies_suppress_name_matching(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "amount", "name"))
        _ = registry.register_metadata(make_form("budget", "total", "name"))
        _ = tracker.register_dependency(
            ParameterDependency(
                source_form_id="intake",
                source_parameter_id="amount",
                target_form_id="budget",
                target_parameter_id="total",
                transformation_function="sourceValue * 2",
            )
        )
        _ = tracker.set_parameter_value("intake", "name", "Ada", FDF)
        _ = tracker.set_parameter_value("intake", "amount", 10, FDF)
        tracker.clear_parameter_values("budget")

        written = resolver.propagate_data("intake", "budget", FDF)

        assert written == 1
        assert tracker.get_parameter_value("budget", "total") == 20
        assert not tracker.has_parameter_value("budget", "name")

    def test_declared_dependency_enables_name_matching(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "amount", "name"))
        _ = registry.register_metadata(
            make_form("budget", "total", "name", dependencies=[{"formId": "intake", "type": "reference"}])
        )
        _ = tracker.register_dependency(
            ParameterDependency(
                source_form_id="intake",
                source_parameter_id="amount",
                target_form_id="budget",
                target_parameter_id="total",
            )
        )
        _ = tracker.set_parameter_value("intake", "name", "Ada", FDF)
        _ = tracker.set_parameter_value("intake", "amount", 10, FDF)
        tracker.clear_parameter_values("budget")

        written = resolver.propagate_data("intake", "budget", FDF)

        assert written == 2
        assert tracker.get_form_values("budget") == {"total": 10, "name": "Ada"}

    def test_name_matching_keeps_transformed_value(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        amount = {"name": "amount", "type": "number"}
        _ = registry.register_metadata(make_form("quote", amount, "name"))
        _ = registry.register_metadata(
            make_form("budget", amount, "name", dependencies=[{"formId": "quote", "type": "reference"}])
        )
        _ = tracker.register_dependency(
            ParameterDependency(
                source_form_id="quote",
                source_parameter_id="amount",
                target_form_id="budget",
                target_parameter_id="amount",
                dependency_type=ParameterDependencyType.DERIVED,
                transformation_function="sourceValue * 2",
            )
        )
        _ = tracker.set_parameter_value("quote", "name", "Ada", FDF)
        _ = tracker.set_parameter_value("quote", "amount", 5, FDF)
        assert tracker.get_parameter_value("budget", "amount") == 10

        written = resolver.propagate_data("quote", "budget", FDF)

        assert written == 2
        assert tracker.get_form_values("budget") == {"amount": 10, "name": "Ada"}

    def test_mapped_target_is_not_overwritten_by_name(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(make_form("quote", "gross", "net"))
        _ = registry.register_metadata(
            make_form("budget", "net", dependencies=[{"formId": "quote", "type": "reference"}])
        )
        _ = tracker.register_dependency(
            ParameterDependency(
                source_form_id="quote",
                source_parameter_id="gross",
                target_form_id="budget",
                target_parameter_id="net",
            )
        )
        _ = tracker.set_parameter_value("quote", "net", 80, FDF)
        _ = tracker.set_parameter_value("quote", "gross", 100, FDF)

        written = resolver.propagate_data("quote", "budget", FDF)

        assert written == 1
        assert tracker.get_parameter_value("budget", "net") == 100

    def test_unknown_form_writes_nothing(self, resolver: DependencyResolver) -> None:
        assert resolver.propagate_data("intake", "missing", FDF) == 0

    def test_notify_dependent_forms(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "name"))
        _ = registry.register_metadata(
            make_form("assessment", "name", dependencies=[{"formId": "intake", "type": "reference"}])
        )
        _ = registry.register_metadata(make_form("other", "name"))
        _ = tracker.set_parameter_value("intake", "name", "Ada", FDF)

        dependents = resolver.notify_dependent_forms("intake", FDF)

        assert dependents == ["assessment"]
        assert tracker.get_parameter_value("assessment", "name") == "Ada"
        assert not tracker.has_parameter_value("other", "name")

    def test_notify_triggers_workflow_dependencies(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "name", "status"))
        _ = registry.register_metadata(make_form("followup", "name"))
        _ = registry.register_metadata(make_form("closure", "name"))
        _ = tracker.register_dependency(
            ParameterDependency(
                source_form_id="intake",
                source_parameter_id="status",
                target_form_id="followup",
                target_parameter_id="name",
                dependency_type=ParameterDependencyType.WORKFLOW,
                condition="sourceValue == 'open'",
                transformation_function="'placeholder'",
            )
        )
        _ = tracker.register_dependency(
            ParameterDependency(
                source_form_id="intake",
                source_parameter_id="status",
                target_form_id="closure",
                target_parameter_id="name",
                dependency_type=ParameterDependencyType.WORKFLOW,
                condition="sourceValue == 'closed'",
            )
        )
        _ = tracker.set_parameter_value("intake", "name", "Ada", FDF)
        _ = tracker.set_parameter_value("intake", "status", "open", FDF)

        tracker.clear_parameter_values("followup")

        _ = resolver.notify_dependent_forms("intake", FDF)

        assert tracker.get_parameter_value("followup", "name") == "placeholder"
        assert not tracker.has_parameter_value("closure", "name")


class TestOptimizePropagation:
    def test_registers_auto_mappings(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "name", "age", {"name": "id", "noPropagation": True}))
        _ = registry.register_metadata(make_form("assessment", "name", "age", "id"))

        mappings = resolver.optimize_propagation("intake", "assessment", FDF)

        assert mappings == [FieldMappingPair("name", "name"), FieldMappingPair("age", "age")]
        assert resolver.get_cached_field_mappings("intake", "assessment") == mappings
        registered = tracker.get_dependencies_between("intake", "assessment")
        assert [d.client_types for d in registered] == [(FDF,), (FDF,)]

        _ = tracker.set_parameter_value("intake", "age", 30, FDF)
        assert tracker.get_parameter_value("assessment", "age") == 30

    def test_explicit_mapping_is_not_duplicated_by_name(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(make_form("quote", "amount", "name"))
        _ = registry.register_metadata(make_form("budget", "amount", "name"))
        _ = tracker.register_dependency(
            ParameterDependency(
                source_form_id="quote",
                source_parameter_id="amount",
                target_form_id="budget",
                target_parameter_id="amount",
                transformation_function="sourceValue * 2",
            )
        )

        mappings = resolver.optimize_propagation("quote", "budget", FDF)

        assert mappings == [FieldMappingPair("amount", "amount"), FieldMappingPair("name", "name")]
        assert len(tracker.get_dependencies_between("quote", "budget")) == 2
        _ = tracker.set_parameter_value("quote", "amount", 4, FDF)
        assert tracker.get_parameter_value("budget", "amount") == 8

    def test_unknown_forms(self, resolver: DependencyResolver) -> None:
        assert resolver.optimize_propagation("a", "b", FDF) == []
        assert resolver.get_cached_field_mappings("a", "b") is None


class TestValidateAcrossForms:
    def _register_pair(self, registry: FormRegistry, make_form: MakeForm, **target_field: object) -> None:
        _ = registry.register_metadata(make_form("intake", "name", {"name": "id", "localOnly": True}))
        _ = registry.register_metadata(
            make_form(
                "assessment",
                {"name": "name", **target_field},
                {"name": "id", "localOnly": True},
                dependencies=[_prerequisite("intake")],
            )
        )

    def test_reports_missing_prerequisites(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        self._register_pair(registry, make_form)

        result = resolver.validate_across_forms(["assessment"], FDF)

        assert not result.valid
        assert result.errors == {"assessment": {"prerequisites": ["Missing prerequisite: intake"]}}

    def test_reports_value_mismatch(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        self._register_pair(registry, make_form)
        _ = tracker.set_parameter_value("intake", "id", "rec_1", FDF)
        _ = tracker.set_parameter_value("assessment", "id", "rec_2", FDF)
        _ = tracker.set_parameter_value("intake", "name", "Ada", FDF)
        _ = tracker.set_parameter_value("assessment", "name", "Bob", FDF)

        result = resolver.validate_across_forms(["intake", "assessment"], FDF)

        assert not result.valid
        assert result.errors == {
            "assessment": {
                "fieldValidations": [
                    "Value mismatch between intake.name (Ada) and assessment.name (Bob)"
                ]
            }
        }

    def test_fields_without_values_are_not_compared(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        self._register_pair(registry, make_form)
        _ = tracker.set_parameter_value("intake", "id", "rec_1", FDF)
        _ = tracker.set_parameter_value("intake", "name", "Ada", FDF)

        assert resolver.validate_across_forms(["intake", "assessment"], FDF).valid

    def test_exempt_fields_are_not_compared(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        self._register_pair(registry, make_form, validationExemptions=["intake"])
        _ = tracker.set_parameter_value("intake", "id", "rec_1", FDF)
        _ = tracker.set_parameter_value("intake", "name", "Ada", FDF)
        _ = tracker.set_parameter_value("assessment", "name", "Bob", FDF)

        assert resolver.validate_across_forms(["intake", "assessment"], FDF).valid
        assert resolver.is_exempt_from_validation("intake", "assessment", "name", FDF)

    def test_client_override_exemption(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        self._register_pair(
            registry, make_form, clientTypeOverrides={"ADHA": {"validationExemptions": ["intake"]}}
        )

        assert resolver.is_exempt_from_validation("intake", "assessment", "name", "ADHA")
        assert not resolver.is_exempt_from_validation("intake", "assessment", "name", FDF)

    def test_result_cache_invalidated_by_tracker_changes(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        self._register_pair(registry, make_form)
        assert not resolver.validate_across_forms(["assessment"], FDF).valid

        _ = tracker.set_parameter_value("intake", "id", "rec_1", FDF)
        _ = tracker.set_parameter_value("assessment", "name", "x", FDF)

        assert resolver.validate_across_forms(["assessment"], FDF).valid

    def test_should_fields_match(self) -> None:
        def field(**attributes: object) -> FormField:
            return FormField.model_validate({"id": "f", "name": "f", **attributes})

        assert DependencyResolver.should_fields_match(field(), field(type="textarea"), FDF)
        assert not DependencyResolver.should_fields_match(field(), field(type="number"), FDF)
        assert not DependencyResolver.should_fields_match(field(type="calculated"), field(), FDF)
        assert not DependencyResolver.should_fields_match(field(localOnly=True), field(), FDF)
        assert not DependencyResolver.should_fields_match(field(matchAcrossForms=False), field(), FDF)
        overridden = field(clientTypeOverrides={"FDF": {"matchAcrossForms": False}})
        assert not DependencyResolver.should_fields_match(overridden, field(), FDF)
        assert DependencyResolver.should_fields_match(overridden, field(), "CASH")


class TestValidateField:
    def test_unknown_form(self, resolver: DependencyResolver) -> None:
        result = resolver.validate_field("missing", "name", "x", FDF)

        assert result.errors == ("Form metadata not found",)

    def test_unknown_field(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "name"))

        result = resolver.validate_field("intake", "age", 1, FDF)

        assert result.errors == ("Field age not found in form intake",)

    def test_required_uses_client_override(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(
            make_form(
                "intake",
                {"name": "name", "label": "Name", "clientTypeOverrides": {"ADHA": {"required": True}}},
            )
        )

        assert resolver.validate_field("intake", "name", "", FDF).valid
        assert resolver.validate_field("intake", "name", "", "ADHA").errors == ("Name is required",)

    def test_declarative_rules(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(
            make_form(
                "intake",
                {
                    "name": "code",
                    "validation": [
                        {"type": "minLength", "value": 3, "message": "Too short"},
                        {"type": "pattern", "value": "^[A-Z]+$", "message": "Uppercase only"},
                        {"type": "maxLength", "value": 1, "message": "ADHA codes are short", "clientTypes": ["ADHA"]},
                    ],
                },
            )
        )

        assert resolver.validate_field("intake", "code", "ab", FDF).errors == ("Too short", "Uppercase only")
        assert resolver.validate_field("intake", "code", "ABC", FDF).valid

    def test_custom_rule_reads_form_values(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(
            make_form(
                "intake",
                "limit",
                {"name": "amount", "validation": [{"type": "custom", "value": "value <= limit", "message": "Over limit"}]},
            )
        )
        _ = tracker.set_parameter_value("intake", "limit", 100, FDF)

        assert resolver.validate_field("intake", "amount", 50, FDF).valid
        assert resolver.validate_field("intake", "amount", 150, FDF).errors == ("Over limit",)

    def test_broken_rule_is_skipped(
        self,
        registry: FormRegistry,
        resolver: DependencyResolver,
        make_form: MakeForm,
        mock_logger: MagicMock,
    ) -> None:
        _ = registry.register_metadata(
            make_form("intake", {"name": "amount", "validation": [{"type": "custom", "value": "value <="}]})
        )

        result = resolver.validate_field("intake", "amount", 1, FDF)

        assert result.valid
        assert result.errors == ()
        assert "field_rule_failed" in _logged(mock_logger.warning)

    def test_batch_validate_fields(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(make_form("intake", {"name": "age", "type": "number", "label": "Age"}))

        results = resolver.batch_validate_fields(
            [
                FieldValidationRequest("intake", "age", 30, FDF),
                FieldValidationRequest("intake", "age", "old", FDF),
            ]
        )

        assert list(results) == ["intake:age"]
        assert results["intake:age"].errors == ("Age must be a valid number",)


class TestWorkflowPath:
    def test_statuses(
        self,
        registry: FormRegistry,
        tracker: ParameterTracker,
        resolver: DependencyResolver,
        make_form: MakeForm,
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "id"))
        _ = registry.register_metadata(make_form("assessment", "id", dependencies=[_prerequisite("intake")]))
        _ = registry.register_metadata(make_form("plan", "id", dependencies=[_prerequisite("assessment")]))
        ids = ["intake", "assessment", "plan"]

        steps = resolver.get_workflow_path(ids, FDF)
        assert [s.status for s in steps] == [
            WorkflowStepStatus.CURRENT,
            WorkflowStepStatus.PENDING,
            WorkflowStepStatus.PENDING,
        ]
        assert [s.optional for s in steps] == [False, False, True]
        assert steps[0].title == "Intake"

        _ = tracker.set_parameter_value("intake", "id", "rec_1", FDF)

        steps = resolver.get_workflow_path(ids, FDF)
        assert [s.status for s in steps] == [
            WorkflowStepStatus.COMPLETED,
            WorkflowStepStatus.CURRENT,
            WorkflowStepStatus.PENDING,
        ]

    def test_first_pending_is_current_when_none_ready(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(make_form("assessment", "id", dependencies=[_prerequisite("intake")]))
        _ = registry.register_metadata(make_form("plan", "id", dependencies=[_prerequisite("intake")]))

        steps = resolver.get_workflow_path(["assessment", "plan"], FDF)

        assert [s.status for s in steps] == [WorkflowStepStatus.CURRENT, WorkflowStepStatus.PENDING]

    def test_unknown_forms_raise(
        self, registry: FormRegistry, resolver: DependencyResolver, make_form: MakeForm
    ) -> None:
        _ = registry.register_metadata(make_form("intake", "id"))

        with pytest.raises(FormNotFoundError) as exc_info:
            _ = resolver.get_workflow_path(["intake", "ghost", "phantom"], FDF)

        assert str(exc_info.value) == "Invalid form IDs in workflow: ghost, phantom"
        assert exc_info.value.form_id == "ghost"

    def test_set_cache_expiration(
        self, registry: FormRegistry, tracker: ParameterTracker, make_form: MakeForm, mock_logger: MagicMock
    ) -> None:
        clock = FakeClock()
        resolver = DependencyResolver(registry, tracker, clock=clock, logger=mock_logger)
        _ = registry.register_metadata(make_form("assessment", "x", dependencies=[_prerequisite("intake")]))
        _ = resolver.resolve_dependencies("assessment", FDF)
        _ = registry.register_metadata(make_form("assessment", "x"))

        resolver.set_cache_expiration(5)
        clock.now = 5

        assert resolver.resolve_dependencies("assessment", FDF) == []
