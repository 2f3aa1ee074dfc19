"""Stub One Fact backend for integration tests.

Routes mirror the production API under /api/v1. Handlers read and update
``app.state`` so tests can count calls or make the next requests fail.
"""

import json
from collections.abc import AsyncGenerator, AsyncIterator
from typing import Any

import httpx
import pytest
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from one_fact.client import ChatClient, ClientConfig, FactClient, InMemoryFactCache

BASE_URL = "http://test"

FACTS: list[dict[str, Any]] = [
    {
        "id": "65f1c0ffee",
        "content": "Honey never spoils.",
        "category": "Science",
        "source": "Smithsonian",
        "tags": ["food"],
        "metadata": {"keywords": ["honey", "preservation"]},
        "created_at": "2026-10-19T00:00:00Z",
    },
    {
        "id": "65f1c0ffef",
        "content": "The Great Wall is not visible from the Moon.",
        "category": "History",
        "source": "NASA",
        "tags": ["myths"],
        "created_at": "2026-10-19T00:00:00Z",
    },
    {
        "id": "65f1c0fff0",
        "content": "Octopuses have three hearts.",
        "category": "Science Fiction & Fact",
        "tags": ["animals", "myths"],
        "created_at": "2026-10-19T00:00:00Z",
    },
]

REPLY_FRAGMENTS = ["Honey ", "is low ", "in water."]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _count(request: Request, route: str) -> int | None:
    """Record a call and return a pending failure status, if any."""
    state = request.app.state
    state.calls[route] = state.calls.get(route, 0) + 1
    if state.failures:
        return state.failures.pop(0)
    return None


facts_router = APIRouter(prefix="/api/v1/facts")
chat_router = APIRouter(prefix="/api/v1/chat")


@facts_router.get("/daily")
async def daily(request: Request) -> Any:
    if (status := _count(request, "daily")) is not None:
        return _error(status, "Internal server error")
    return [FACTS[0]]


@facts_router.get("/category/{category}/daily")
async def category_daily(category: str, request: Request) -> Any:
    if (status := _count(request, f"category/{category}")) is not None:
        return _error(status, "Internal server error")
    matches = [fact for fact in FACTS if fact["category"] == category]
    if not matches:
        return _error(404, f"No facts found for category {category}")
    return matches[0]


@facts_router.get("/search")
async def search(
    request: Request, q: str = "", category: str | None = None, tag: str | None = None
) -> Any:
    _count(request, "search")
    matches = [
        fact
        for fact in FACTS
        if q.lower() in fact["content"].lower()
        and (category is None or fact["category"] == category)
        and (tag is None or tag in fact["tags"])
    ]
    return matches or None


@facts_router.get("/random")
async def random_fact(request: Request) -> Any:
    _count(request, "random")
    return FACTS[1]


@facts_router.get("/categories")
async def categories(request: Request) -> Any:
    _count(request, "categories")
    return sorted({fact["category"] for fact in FACTS}) + [""]


@facts_router.get("/articles")
async def articles(factId: str, request: Request) -> Any:
    _count(request, "articles")
    if factId != FACTS[0]["id"]:
        return {"data": []}
    return {
        "data": [
            {
                "id": "a1",
                "title": "Why honey lasts",
                "url": "https://example.org/honey",
                "source": "Example",
                "snippet": "Low moisture and high acidity.",
                "imageUrl": "https://example.org/honey.png",
            }
        ]
    }


async def _sse_frames(fragments: list[str]) -> AsyncIterator[str]:
    for fragment in fragments:
        event = {"choices": [{"index": 0, "delta": {"content": fragment}}]}
        yield f"data: {json.dumps(event)}\n\n"
    yield "data: [DONE]\n\n"


@chat_router.post("")
async def chat(request: Request) -> Any:
    body = await request.json()
    request.app.state.chat_requests.append(body)
    if not any(fact["id"] == body.get("fact_id") for fact in FACTS):
        return _error(500, "Error fetching fact context: fact not found")
    return {"role": "assistant", "content": "".join(REPLY_FRAGMENTS)}


@chat_router.post("/stream")
async def chat_stream(request: Request) -> Any:
    body = await request.json()
    request.app.state.chat_requests.append(body)
    if not any(fact["id"] == body.get("fact_id") for fact in FACTS):
        return _error(500, "Error fetching fact context: fact not found")
    return StreamingResponse(_sse_frames(REPLY_FRAGMENTS), media_type="text/event-stream")


def create_stub_app() -> FastAPI:
    """Create a fresh stub backend with empty call counters."""
    app = FastAPI(title="One Fact stub")
    app.state.calls = {}
    app.state.failures = []
    app.state.chat_requests = []
    app.include_router(facts_router)
    app.include_router(chat_router)
    return app


@pytest.fixture
def stub_app() -> FastAPI:
    return create_stub_app()


@pytest.fixture
def stub_config() -> ClientConfig:
    """Config pointing at the stub with no backoff delay."""
    return ClientConfig(
        api_base_url=f"{BASE_URL}/api/v1/facts",
        chat_api_url=f"{BASE_URL}/api/v1/chat",
        max_retries=2,
        retry_base_delay=0.0,
    )


@pytest.fixture
async def http_client(stub_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create async HTTP client with ASGI transport."""
    transport = httpx.ASGITransport(app=stub_app)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as client:
        yield client


@pytest.fixture
def live_fact_client(stub_config: ClientConfig, http_client: httpx.AsyncClient) -> FactClient:
    return FactClient(config=stub_config, cache=InMemoryFactCache(), http_client=http_client)


@pytest.fixture
def live_chat_client(stub_config: ClientConfig, http_client: httpx.AsyncClient) -> ChatClient:
    return ChatClient(config=stub_config, http_client=http_client)
