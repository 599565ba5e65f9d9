"""Composition root wiring the formgraph services together."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from formgraph.config import Config
from formgraph.engine import (
    DynamicFormEngine,
    HttpSubmissionClient,
    SubmissionClient,
    condition_expression,
)
from formgraph.enums import FieldDependencyType, ParameterDependencyType
from formgraph.forms import FormRegistry, load_form_definitions
from formgraph.resolver import DependencyResolver
from formgraph.tracking import ParameterDependency, ParameterTracker
from formgraph.utils import create_engine_logger
from formgraph.validation import ValidationRuleService

if TYPE_CHECKING:
    from pathlib import Path

    from structlog.typing import FilteringBoundLogger

    from formgraph.forms import FormDefinitionSet, FormMetadata, FormRegistryEntry

__all__ = ["FormRuntime"]


@dataclass(frozen=True, slots=True)
class FormRuntime:
    """One registry, tracker, resolver, rule service and engine sharing state.

    Attributes:
        config: Settings the services were created with.
        registry: Form catalogue.
        tracker: Live parameter values.
        resolver: Cross-form dependency resolver.
        rules: Managed validation rules.
        engine: Form engine facade.
        submission_client: Client the engine reaches endpoints through.
    """

    config: Config
    registry: FormRegistry
    tracker: ParameterTracker
    resolver: DependencyResolver
    rules: ValidationRuleService
    engine: DynamicFormEngine
    submission_client: SubmissionClient

    @classmethod
    def create(
        cls,
        config: Config | None = None,
        *,
        submission_client: SubmissionClient | None = None,
        logger: "FilteringBoundLogger | None" = None,
    ) -> Self:
        """Build and wire all services.

        Args:
            config: Settings; defaults to the built-in configuration.
            submission_client: Endpoint client for submit and fetch. Defaults
                to an HttpSubmissionClient using the configured timeout.
            logger: Base logger; each service binds its own ``component``.
                Defaults to loggers built from the logging settings.

        Returns:
            A ready runtime with no forms registered.
        """
        if config is None:
            config = Config()

        def service_logger(component: str) -> "FilteringBoundLogger":
            if logger is not None:
                return logger.bind(component=component)
            return create_engine_logger(
                config.logging.level.value,
                log_format=config.logging.format.value,  # pyright: ignore[reportArgumentType]
                log_file=config.logging.file,
                component=component,
            )

        registry = FormRegistry(logger=service_logger("registry"))
        tracker = ParameterTracker(
            registry=registry,
            logger=service_logger("tracker"),
            max_propagation_depth=config.tracker.max_propagation_depth,
            raise_on_cycle=config.tracker.raise_on_cycle,
            multi_source_policy=config.tracker.multi_source_policy,
            audit_log_limit=config.tracker.audit_log_limit,
            strict_references=config.resolver.strict_references,
            reject_cycles=config.resolver.reject_cycles,
        )
        resolver = DependencyResolver(
            registry,
            tracker,
            cache_ttl_seconds=config.resolver.cache_ttl_seconds,
            logger=service_logger("resolver"),
        )
        rules = ValidationRuleService(expressions=tracker.expressions, logger=service_logger("validation"))
        if submission_client is None:
            submission_client = HttpSubmissionClient(timeout_seconds=config.engine.submit_timeout_seconds)
        engine = DynamicFormEngine(
            registry,
            tracker,
            resolver,
            rules=rules,
            submission_client=submission_client,
            validate_dependencies_on_submit=config.engine.validate_dependencies_on_submit,
            logger=service_logger("engine"),
        )
        return cls(
            config=config,
            registry=registry,
            tracker=tracker,
            resolver=resolver,
            rules=rules,
            engine=engine,
            submission_client=submission_client,
        )

    def register_form(self, entry: "FormRegistryEntry", metadata: "FormMetadata") -> int:
        """Register a form together with its declared parameter dependencies.

        Field ``value`` dependencies become same-form direct dependencies
        whose transformation is the dependency action. Form-level field
        mappings become direct dependencies from the other form.

        Returns:
            The number of parameter dependencies added.
        """
        self.registry.register(entry, metadata)
        _ = self.resolver.invalidate_dependency_cache(metadata.id)
        return self._register_parameter_dependencies(metadata)

    def _register_parameter_dependencies(self, metadata: "FormMetadata") -> int:
        added = 0
        for form_field in metadata.fields:
            for dependency in form_field.dependencies:
                if dependency.type != FieldDependencyType.VALUE:
                    continue
                added += self.tracker.register_dependency(
                    ParameterDependency(
                        source_form_id=metadata.id,
                        source_parameter_id=dependency.source_field,
                        target_form_id=metadata.id,
                        target_parameter_id=form_field.name,
                        dependency_type=ParameterDependencyType.DIRECT,
                        transformation_function=dependency.action or None,
                        condition=condition_expression(dependency.condition),
                        client_types=dependency.client_types,
                        description=dependency.description,
                    )
                )

        for form_dependency in metadata.dependencies:
            for mapping in form_dependency.field_mappings:
                added += self.resolver.register_dependency(
                    ParameterDependency(
                        source_form_id=form_dependency.form_id,
                        source_parameter_id=mapping.source_field,
                        target_form_id=metadata.id,
                        target_parameter_id=mapping.target_field,
                        dependency_type=ParameterDependencyType.DIRECT,
                        transformation_function=mapping.transformation_rule,
                        condition=form_dependency.condition,
                        client_types=form_dependency.client_types,
                        description=mapping.description,
                    )
                )
        return added

    def register_definitions(self, definitions: "FormDefinitionSet") -> int:
        """Register every form and parameter dependency of a definition set.

        Forms are registered before any dependency so references between
        them resolve.

        Returns:
            The number of parameter dependencies added.
        """
        for entry, metadata in definitions.forms:
            self.registry.register(entry, metadata)
            _ = self.resolver.invalidate_dependency_cache(metadata.id)
        added = sum(self._register_parameter_dependencies(metadata) for _, metadata in definitions.forms)
        return added + sum(
            self.resolver.register_dependency(dependency)
            for dependency in definitions.parameter_dependencies
        )

    def load_definitions(self, path: "Path") -> "FormDefinitionSet":
        """Load a definition file and register its contents.

        Raises:
            FormDefinitionError: If the file cannot be parsed or validated.
        """
        definitions = load_form_definitions(path)
        _ = self.register_definitions(definitions)
        return definitions

    def close(self) -> None:
        """Detach the resolver from the tracker."""
        self.resolver.close()

    async def aclose(self) -> None:
        """Detach the resolver and close an HTTP submission client."""
        self.close()
        if isinstance(self.submission_client, HttpSubmissionClient):
            await self.submission_client.aclose()
