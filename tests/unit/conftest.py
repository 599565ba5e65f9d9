from pathlib import Path
from unittest.mock import MagicMock

import pytest

from formgraph.engine import DynamicFormEngine, FakeSubmissionClient
from formgraph.forms import FormRegistry
from formgraph.resolver import DependencyResolver
from formgraph.tracking import ParameterTracker
from formgraph.validation import ValidationRuleService


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.unit)


@pytest.fixture
def registry(mock_logger: MagicMock) -> FormRegistry:
    return FormRegistry(logger=mock_logger)


@pytest.fixture
def tracker(registry: FormRegistry, mock_logger: MagicMock) -> ParameterTracker:
    return ParameterTracker(registry=registry, logger=mock_logger)


@pytest.fixture
def resolver(
    registry: FormRegistry, tracker: ParameterTracker, mock_logger: MagicMock
) -> DependencyResolver:
    return DependencyResolver(registry, tracker, logger=mock_logger)


@pytest.fixture
def rules(tracker: ParameterTracker, mock_logger: MagicMock) -> ValidationRuleService:
    return ValidationRuleService(expressions=tracker.expressions, logger=mock_logger)


@pytest.fixture
def engine(
    registry: FormRegistry,
    tracker: ParameterTracker,
    resolver: DependencyResolver,
    rules: ValidationRuleService,
    submission_client: FakeSubmissionClient,
    mock_logger: MagicMock,
) -> DynamicFormEngine:
    """Create an engine sharing the unit-test services."""
    return DynamicFormEngine(
        registry,
        tracker,
        resolver,
        rules=rules,
        submission_client=submission_client,
        logger=mock_logger,
    )
