# pyright: reportAny=false, reportExplicitAny=false
"""Submission endpoint clients.

The form engine never performs network I/O itself. It hands the payload to a
SubmissionClient: HttpSubmissionClient posts to real endpoints with httpx,
FakeSubmissionClient records calls for tests.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, Self, runtime_checkable

import httpx
import orjson
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from formgraph.exceptions import SubmissionError

if TYPE_CHECKING:
    from types import TracebackType

__all__ = ["FakeSubmissionClient", "HttpSubmissionClient", "SubmissionClient"]


@runtime_checkable
class SubmissionClient(Protocol):
    """Protocol for the collaborator that talks to form endpoints."""

    async def post(self, url: str, payload: dict[str, Any]) -> Any:
        """Send a submission payload.

        Args:
            url: The form's submit endpoint.
            payload: The submission payload.

        Returns:
            The decoded endpoint response.

        Raises:
            SubmissionError: If the endpoint call fails.
        """
        ...

    async def get(self, url: str) -> Any:
        """Fetch stored form data.

        Args:
            url: The form's fetch endpoint with the record id filled in.

        Returns:
            The decoded endpoint response.

        Raises:
            SubmissionError: If the endpoint call fails.
        """
        ...


@retry(
    retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
    reraise=True,
)
async def _send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    content: bytes | None = None,
) -> httpx.Response:
    """Make a request with retry logic.

    Raises:
        httpx.ConnectError: If connection fails after retries.
        httpx.TimeoutException: If the request times out after retries.
    """
    headers = {"Content-Type": "application/json"} if content is not None else None
    return await client.request(method=method, url=url, content=content, headers=headers)


class HttpSubmissionClient:
    """SubmissionClient backed by an httpx AsyncClient.

    Example:
        >>> async with HttpSubmissionClient(base_url="https://api.example.com") as client:
        ...     await client.post("/forms/intake", {"name": "Ada"})
    """

    __slots__ = ("_client",)

    _client: httpx.AsyncClient

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Prefix for relative endpoint URLs.
            timeout_seconds: Request timeout.
            client: Preconfigured httpx client to use instead of a new one.
        """
        self._client = (
            client
            if client is not None
            else httpx.AsyncClient(base_url=base_url, timeout=httpx.Timeout(timeout_seconds))
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: "type[BaseException] | None",
        exc_val: BaseException | None,
        exc_tb: "TracebackType | None",
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    async def post(self, url: str, payload: dict[str, Any]) -> Any:
        return await self._request("POST", url, orjson.dumps(payload, default=str))

    async def get(self, url: str) -> Any:
        return await self._request("GET", url)

    async def _request(self, method: str, url: str, content: bytes | None = None) -> Any:
        try:
            response = await _send(self._client, method, url, content)
        except httpx.HTTPError as e:
            msg = f"{method} {url} failed: {e}"
            raise SubmissionError(msg, url=url) from e

        if response.is_error:
            msg = f"{method} {url} returned HTTP {response.status_code}"
            raise SubmissionError(msg, url=url, status_code=response.status_code)
        if not response.content:
            return None
        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            msg = f"{method} {url} returned invalid JSON: {e}"
            raise SubmissionError(msg, url=url, status_code=response.status_code) from e


@dataclass(slots=True)
class FakeSubmissionClient:
    """Fake SubmissionClient for testing.

    Records every call and answers with configured responses. Setting
    ``fail_with`` makes every call raise that error.

    Example:
        >>> client = FakeSubmissionClient(post_response={"id": "sub_1"})
        >>> engine = DynamicFormEngine(registry, tracker, resolver, submission_client=client)
        >>> # after submitting
        >>> assert client.posts[0][0] == "/api/intake"
    """

    post_response: Any = field(default_factory=lambda: {"success": True})
    get_responses: dict[str, Any] = field(default_factory=dict)
    fail_with: SubmissionError | None = None
    posts: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    gets: list[str] = field(default_factory=list)

    async def post(self, url: str, payload: dict[str, Any]) -> Any:
        self.posts.append((url, payload))
        if self.fail_with is not None:
            raise self.fail_with
        return self.post_response

    async def get(self, url: str) -> Any:
        self.gets.append(url)
        if self.fail_with is not None:
            raise self.fail_with
        return self.get_responses.get(url, {})
