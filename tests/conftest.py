"""Pytest fixtures and shared test configuration.

Fixtures:
    - fact_payload: A fact as the backend serialises it
    - client_config: Config pointing at a fake host with zero retry delay
    - clock: Controllable local clock for cache validity
    - mock_backend: Records requests and answers from a handler
    - fact_client / chat_client: Clients wired to mock_backend
"""

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta
from typing import Any

import httpx
import pytest

from one_fact.client import ChatClient, ClientConfig, FactClient, InMemoryFactCache

API_URL = "http://facts.test/api/v1/facts"
CHAT_URL = "http://facts.test/api/v1/chat"

Handler = Callable[[httpx.Request], Any]


class MockBackend:
    """Callable MockTransport handler that records every request.

    Attributes:
        requests: Requests received, in order.
        handler: Produces the response (or raises) for each request.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Handler = lambda request: httpx.Response(404)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        result = self.handler(request)
        if isinstance(result, httpx.Response):
            return result
        return await result

    def respond_with(self, *responses: httpx.Response | Exception) -> None:
        """Answer successive requests with the given responses; the last one repeats."""
        queue = list(responses)

        def handler(request: httpx.Request) -> httpx.Response:
            item = queue.pop(0) if len(queue) > 1 else queue[0]
            if isinstance(item, Exception):
                raise item
            return item

        self.handler = handler


class FakeClock:
    """Local clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def fact_payload() -> dict[str, Any]:
    """Return a fact in the backend's current wire format."""
    return {
        "id": "65f1c0ffee",
        "content": "Honey never spoils.",
        "source": "Smithsonian",
        "category": "Science",
        "tags": ["food", "chemistry"],
        "related_urls": ["https://example.org/honey"],
        "metadata": {
            "language": "English",
            "difficulty": "Easy",
            "references": ["Smithsonian Magazine"],
            "keywords": ["honey", "preservation"],
            "popularity": 42,
            "last_served": "2026-10-18T08:15:30.123456789Z",
            "serve_count": 7,
        },
        "verified": True,
        "score": 0.9,
        "created_at": "2026-01-02T03:04:05.678Z",
        "updated_at": "0001-01-01T00:00:00Z",
        "publish_date": "2026-10-19T00:00:00Z",
    }


@pytest.fixture
def client_config() -> ClientConfig:
    """Config for tests: fake host, 3 retries, no backoff delay."""
    return ClientConfig(
        api_base_url=API_URL,
        chat_api_url=CHAT_URL,
        max_retries=3,
        retry_base_delay=0.0,
        request_timeout=5.0,
        resource_timeout=5.0,
    )


@pytest.fixture
def clock() -> FakeClock:
    """Local clock fixed at 09:00 on 19 Oct 2026."""
    return FakeClock(datetime(2026, 10, 19, 9, 0).astimezone())


@pytest.fixture
def mock_backend() -> MockBackend:
    return MockBackend()


@pytest.fixture
def fact_cache() -> InMemoryFactCache:
    return InMemoryFactCache()


@pytest.fixture
async def fact_client(
    client_config: ClientConfig,
    mock_backend: MockBackend,
    fact_cache: InMemoryFactCache,
    clock: FakeClock,
) -> AsyncGenerator[FactClient, None]:
    """Create a FactClient whose requests go to mock_backend.

    Yields:
        FactClient sharing fact_cache and clock with the test.
    """
    http = httpx.AsyncClient(transport=httpx.MockTransport(mock_backend))
    async with http:
        yield FactClient(config=client_config, cache=fact_cache, http_client=http, clock=clock)


@pytest.fixture
async def chat_client(
    client_config: ClientConfig,
    mock_backend: MockBackend,
) -> AsyncGenerator[ChatClient, None]:
    """Create a ChatClient whose requests go to mock_backend."""
    http = httpx.AsyncClient(transport=httpx.MockTransport(mock_backend))
    async with http:
        yield ChatClient(config=client_config, http_client=http)
