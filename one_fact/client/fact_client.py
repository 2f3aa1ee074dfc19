"""Fact fetching with retry, same-day caching and tolerant decoding.

Core module of the client's data layer.

Behaviour worth knowing before changing anything here:

1. **Linear backoff** - The delay before retry n is ``retry_base_delay * n``
   (1s, 2s, 3s with the defaults), not exponential.

2. **Same-day cache** - Daily and per-category facts are cached until the
   local calendar date changes. The cache is injected (see cache.py), so the
   client holds no hidden global state.

3. **Decode order** - Single-fact endpoints have answered with both a bare
   object and a one-element array. The array form is tried first, then the
   bare object; only the final failure is reported.

4. **No single-flight** - Two concurrent fetches for the same key may both
   go to the network. The cache stays consistent because every access is
   locked; the second write simply overwrites the first.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from one_fact.client.cache import FactCache, InMemoryFactCache
from one_fact.client.config import ClientConfig, get_client_config
from one_fact.errors import (
    DecodeError,
    EmptyResultError,
    InvalidRequestError,
    NetworkError,
    ServerError,
)
from one_fact.models.schemas import CachedFact, ErrorBody, Fact, RelatedArticle

logger = logging.getLogger(__name__)

DAILY_CACHE_KEY = "daily"

_FACT_LIST = TypeAdapter(list[Fact])
_ARTICLE_LIST = TypeAdapter(list[RelatedArticle])
_CATEGORY_LIST = TypeAdapter(list[str])


class _ArticleEnvelope(BaseModel):
    data: list[RelatedArticle]


def _local_now() -> datetime:
    return datetime.now().astimezone()


def category_cache_key(category: str) -> str:
    """Cache key for the daily fact of a category."""
    return f"{DAILY_CACHE_KEY}_{category}"


def _error_message(response: httpx.Response) -> str | None:
    """Extract the ``{"error": ...}`` message the backend sends with failures."""
    try:
        return ErrorBody.model_validate_json(response.content).error
    except ValidationError:
        return None


def _payload(response: httpx.Response) -> Any:
    """Return the decoded JSON body of a successful response.

    Raises:
        EmptyResultError: If the body is empty or JSON null.
        DecodeError: If the body is not JSON.
    """
    if not response.content.strip():
        raise EmptyResultError(f"Empty response body from {response.url}")
    try:
        data = response.json()
    except ValueError as e:
        raise DecodeError(f"Response from {response.url} is not valid JSON") from e
    if data is None:
        raise EmptyResultError(f"Null response body from {response.url}")
    return data


def decode_fact(data: Any) -> Fact:
    """Decode a single fact from an array-wrapped or bare payload.

    Args:
        data: Decoded JSON body.

    Returns:
        The first fact of an array payload, or the bare fact.

    Raises:
        EmptyResultError: If the payload is an empty array.
        DecodeError: If neither shape matches.
    """
    try:
        facts = _FACT_LIST.validate_python(data)
    except ValidationError:
        pass
    else:
        if not facts:
            raise EmptyResultError("Server returned an empty list of facts")
        return facts[0]

    try:
        return Fact.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"Payload is neither a fact nor a list of facts: {e}") from e


def decode_fact_list(data: Any) -> list[Fact]:
    """Decode a list of facts, accepting a bare fact as a list of one.

    Raises:
        EmptyResultError: If the list is empty.
        DecodeError: If neither shape matches.
    """
    try:
        facts = _FACT_LIST.validate_python(data)
    except ValidationError:
        try:
            facts = [Fact.model_validate(data)]
        except ValidationError as e:
            raise DecodeError(f"Payload is not a list of facts: {e}") from e

    if not facts:
        raise EmptyResultError("Server returned an empty list of facts")
    return facts


class FactClient:
    """HTTP client for the fact endpoints.

    Wraps an httpx.AsyncClient with:
    - Linear-backoff retry on transport failures and error statuses
    - Same-day caching of daily and per-category facts
    - Normalisation of every failure into the errors in errors.py

    Use as an async context manager, or call aclose() when done.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        cache: FactCache | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the fact client.

        Args:
            config: Optional client configuration.
                    Loads from environment if not provided.
            cache: Cache for daily facts. Defaults to a fresh in-memory cache.
            http_client: Optional httpx client. When omitted the FactClient
                         creates one from the config and closes it in aclose().
            clock: Returns the current local time. Used for cache validity.
        """
        self._config = config or get_client_config()
        self._cache = cache if cache is not None else InMemoryFactCache()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=self._config.timeout,
            follow_redirects=True,
            headers={"Accept": "application/json"},
        )
        self._clock = clock or _local_now

    async def __aenter__(self) -> "FactClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying http client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def fetch_daily(self) -> Fact:
        """Return today's fact, from cache when fetched earlier today.

        Raises:
            ServerError: If retries ran out and the final attempt got an error status.
            NetworkError: If the final attempt failed at the transport level.
            EmptyResultError: If the server had no fact.
            DecodeError: If the payload is not a fact.
        """
        return await self._fetch_cached(
            DAILY_CACHE_KEY, f"{self._config.api_base_url}/daily"
        )

    async def fetch_by_category(self, category: str) -> Fact:
        """Return today's fact for a category, from cache when fetched earlier today.

        Args:
            category: Category name, e.g. "Science". Percent-encoded into the path.

        Raises:
            InvalidRequestError: If the category is blank.
            ServerError: If retries ran out and the final attempt got an error status.
            NetworkError: If the final attempt failed at the transport level.
            EmptyResultError: If the server had no fact.
            DecodeError: If the payload is not a fact.
        """
        category = category.strip()
        if not category:
            raise InvalidRequestError("Category must not be empty")

        encoded = quote(category, safe="")
        return await self._fetch_cached(
            category_cache_key(category),
            f"{self._config.api_base_url}/category/{encoded}/daily",
        )

    async def search(
        self,
        query: str,
        category: str | None = None,
        tag: str | None = None,
    ) -> list[Fact]:
        """Search facts. Never cached.

        Args:
            query: Full-text query.
            category: Optional category filter.
            tag: Optional tag filter.

        Returns:
            Matching facts, never empty.

        Raises:
            InvalidRequestError: If no query or filter is given.
            EmptyResultError: If nothing matched or the body was null.
            ServerError: If retries ran out and the final attempt got an error status.
            NetworkError: If the final attempt failed at the transport level.
            DecodeError: If the payload is not a list of facts.
        """
        params = {
            key: value.strip()
            for key, value in (("q", query), ("category", category), ("tag", tag))
            if value and value.strip()
        }
        if not params:
            raise InvalidRequestError("Search needs a query, category or tag")

        response = await self.fetch_with_retry(
            f"{self._config.api_base_url}/search", params=params
        )
        facts = decode_fact_list(_payload(response))
        logger.info(f"Search {params} returned {len(facts)} facts")
        return facts

    async def fetch_random(self) -> Fact:
        """Return a random fact. Never cached."""
        response = await self.fetch_with_retry(f"{self._config.api_base_url}/random")
        return decode_fact(_payload(response))

    async def fetch_categories(self) -> list[str]:
        """Return the categories known to the backend.

        Raises:
            EmptyResultError: If the backend has no categories.
            DecodeError: If the payload is not a list of strings.
        """
        response = await self.fetch_with_retry(
            f"{self._config.api_base_url}/categories"
        )
        try:
            categories = _CATEGORY_LIST.validate_python(_payload(response))
        except ValidationError as e:
            raise DecodeError(f"Payload is not a list of categories: {e}") from e

        categories = [name for name in categories if name.strip()]
        if not categories:
            raise EmptyResultError("Server returned no categories")
        return categories

    async def fetch_related_articles(self, fact_id: str) -> list[RelatedArticle]:
        """Return articles related to a fact.

        Accepts both the ``{"data": [...]}`` envelope and a bare array.
        An empty list is a valid answer here.
        """
        fact_id = str(fact_id).strip()
        if not fact_id:
            raise InvalidRequestError("Fact id must not be empty")

        response = await self.fetch_with_retry(
            f"{self._config.api_base_url}/articles", params={"factId": fact_id}
        )
        data = _payload(response)
        try:
            return _ArticleEnvelope.model_validate(data).data
        except ValidationError:
            pass
        try:
            return _ARTICLE_LIST.validate_python(data)
        except ValidationError as e:
            raise DecodeError(f"Payload is not a list of articles: {e}") from e

    def clear_cache(self) -> None:
        """Drop every cached fact. Call when the local day rolls over."""
        self._cache.clear()
        logger.info("Fact cache cleared")

    async def fetch_with_retry(
        self,
        url: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """GET a URL, retrying transport failures and error statuses.

        Makes at most ``max_retries + 1`` attempts. The delay before retry n is
        ``retry_base_delay * n``. The sleep is an await point, so cancelling
        the calling task stops the loop before the next attempt.

        Args:
            url: Absolute URL to fetch.
            params: Optional query parameters.

        Returns:
            The first 2xx response.

        Raises:
            InvalidRequestError: If the URL cannot be requested at all.
            ServerError: If retries ran out and the final attempt got an error status.
            NetworkError: If retries ran out and the final attempt failed in transport.

        The surfaced error carries ``attempts``, the number of requests made.
        """
        attempts = self._config.max_retries + 1
        last_error: ServerError | NetworkError | None = None

        for attempt in range(attempts):
            if attempt > 0:
                delay = self._config.retry_base_delay * attempt
                logger.warning(
                    f"Attempt {attempt}/{attempts} for {url} failed ({last_error}). "
                    f"Retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

            try:
                async with asyncio.timeout(self._config.resource_timeout):
                    response = await self._http.get(url, params=params)
            except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
                raise InvalidRequestError(f"Cannot request {url!r}: {e}") from e
            except (httpx.TransportError, TimeoutError) as e:
                last_error = NetworkError(e)
                continue

            logger.debug(f"GET {response.url} -> {response.status_code}")
            if response.is_success:
                return response
            last_error = ServerError(response.status_code, _error_message(response))

        assert last_error is not None
        logger.error(f"Giving up on {url} after {attempts} attempts: {last_error}")
        last_error.attempts = attempts
        if isinstance(last_error, NetworkError):
            raise last_error from last_error.cause
        raise last_error

    async def _fetch_cached(self, key: str, url: str) -> Fact:
        cached = self._cache.get(key)
        if cached is not None and cached.is_valid(self._clock()):
            logger.debug(f"Cache hit for {key!r}")
            return cached.fact

        logger.info(f"Fetching {key!r} from {url}")
        response = await self.fetch_with_retry(url)
        fact = decode_fact(_payload(response))
        self._cache.set(key, CachedFact(fact=fact, fetched_at=self._clock()))
        return fact
