"""Shared test fixtures for formgraph tests."""

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest

from formgraph import FormRuntime
from formgraph.engine import FakeSubmissionClient
from formgraph.forms import FormMetadata

MakeForm = Callable[..., FormMetadata]


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("FORMGRAPH_DEBUG", "FORMGRAPH_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_logger() -> MagicMock:
    """Create a mock structlog logger for asserting on log events."""
    return MagicMock()


@pytest.fixture
def make_form() -> MakeForm:
    """Return a factory building FormMetadata from compact field specs.

    Fields are given as a name, or as a dict of field attributes whose
    ``id`` defaults to its ``name``.
    """

    def _make(form_id: str, *fields: str | dict[str, Any], **attributes: Any) -> FormMetadata:
        field_data: list[dict[str, Any]] = []
        for entry in fields:
            if isinstance(entry, str):
                entry = {"name": entry}
            field_data.append({"id": entry["name"], **entry})
        return FormMetadata.model_validate(
            {"id": form_id, "title": form_id.title(), "fields": field_data, **attributes}
        )

    return _make


@pytest.fixture
def submission_client() -> FakeSubmissionClient:
    return FakeSubmissionClient(post_response={"id": "rec_1", "success": True})


@pytest.fixture
def runtime(mock_logger: MagicMock, submission_client: FakeSubmissionClient) -> FormRuntime:
    """Create a fully wired runtime with a fake submission client."""
    return FormRuntime.create(submission_client=submission_client, logger=mock_logger)
