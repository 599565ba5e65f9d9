# pyright: reportAny=false
from functools import partial

import anyio
import httpx
import orjson
import pytest
from pytest_mock import MockerFixture
from tenacity import wait_none

from formgraph.engine import FakeSubmissionClient, HttpSubmissionClient, SubmissionClient
from formgraph.engine._client import _send
from formgraph.exceptions import SubmissionError

BASE_URL = "https://forms.example.com"


def _client(transport: httpx.MockTransport | None = None) -> HttpSubmissionClient:
    if transport is None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200))
    return HttpSubmissionClient(client=httpx.AsyncClient(transport=transport, base_url=BASE_URL))


@pytest.fixture(autouse=True)
def _no_retry_wait(mocker: MockerFixture) -> None:
    _ = mocker.patch.object(_send.retry, "wait", wait_none())


class TestHttpSubmissionClient:
    def test_post_sends_json_and_decodes_response(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"id": "rec_1"})

        client = _client(httpx.MockTransport(handler))

        result = anyio.run(partial(client.post, "/api/intake", {"name": "Ada", "age": 36}))

        assert result == {"id": "rec_1"}
        assert seen[0].method == "POST"
        assert str(seen[0].url) == f"{BASE_URL}/api/intake"
        assert seen[0].headers["Content-Type"] == "application/json"
        assert orjson.loads(seen[0].content) == {"name": "Ada", "age": 36}

    def test_get_decodes_response(self) -> None:
        client = _client(httpx.MockTransport(lambda request: httpx.Response(200, json={"name": "Ada"})))

        assert anyio.run(partial(client.get, "/api/intake/1")) == {"name": "Ada"}

    def test_empty_response_returns_none(self) -> None:
        client = _client(httpx.MockTransport(lambda request: httpx.Response(204)))

        assert anyio.run(partial(client.post, "/api/intake", {})) is None

    def test_error_status_raises_submission_error(self) -> None:
        client = _client(httpx.MockTransport(lambda request: httpx.Response(500, text="boom")))

        with pytest.raises(SubmissionError) as exc_info:
            _ = anyio.run(partial(client.post, "/api/intake", {}))

        assert exc_info.value.status_code == 500
        assert exc_info.value.url == "/api/intake"
        assert "returned HTTP 500" in str(exc_info.value)

    def test_invalid_json_raises_submission_error(self) -> None:
        client = _client(httpx.MockTransport(lambda request: httpx.Response(200, text="not json")))

        with pytest.raises(SubmissionError, match="invalid JSON"):
            _ = anyio.run(partial(client.get, "/api/intake/1"))

    def test_connect_errors_are_retried_then_raised(self) -> None:
        attempts: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            msg = "connection refused"
            raise httpx.ConnectError(msg, request=request)

        client = _client(httpx.MockTransport(handler))

        with pytest.raises(SubmissionError, match="POST /api/intake failed"):
            _ = anyio.run(partial(client.post, "/api/intake", {}))

        assert len(attempts) == 3

    def test_recovers_after_transient_failure(self) -> None:
        attempts: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) == 1:
                msg = "timed out"
                raise httpx.ReadTimeout(msg, request=request)
            return httpx.Response(200, json={"ok": True})

        client = _client(httpx.MockTransport(handler))

        assert anyio.run(partial(client.post, "/api/intake", {})) == {"ok": True}
        assert len(attempts) == 2

    def test_is_a_submission_client(self) -> None:
        assert isinstance(_client(), SubmissionClient)


class TestFakeSubmissionClient:
    def test_records_posts(self) -> None:
        client = FakeSubmissionClient(post_response={"id": "rec_1"})

        result = anyio.run(partial(client.post, "/api/intake", {"name": "Ada"}))

        assert result == {"id": "rec_1"}
        assert client.posts == [("/api/intake", {"name": "Ada"})]

    def test_answers_gets_by_url(self) -> None:
        client = FakeSubmissionClient(get_responses={"/api/intake/1": {"name": "Ada"}})

        assert anyio.run(partial(client.get, "/api/intake/1")) == {"name": "Ada"}
        assert anyio.run(partial(client.get, "/api/intake/2")) == {}
        assert client.gets == ["/api/intake/1", "/api/intake/2"]

    def test_fail_with_raises(self) -> None:
        client = FakeSubmissionClient(fail_with=SubmissionError("down", url="/api/intake"))

        with pytest.raises(SubmissionError, match="down"):
            _ = anyio.run(partial(client.post, "/api/intake", {}))

        assert len(client.posts) == 1
