"""Chat client for conversations about a fact.

Sends the conversation to the chat endpoint either as a single request or as
a streamed reply parsed by SSEStreamReader. Chat requests are not retried;
a failed send is reported to the caller, who decides whether to resend.
"""

import logging
from collections.abc import Callable

import httpx
from pydantic import ValidationError

from one_fact.client.config import ClientConfig, get_client_config
from one_fact.errors import DecodeError, InvalidRequestError, NetworkError, ServerError
from one_fact.models.schemas import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatRole,
    ErrorBody,
    Fact,
)
from one_fact.streaming.sse_reader import SSEStreamReader

logger = logging.getLogger(__name__)

CONTEXT_PROMPT = """\
You are an educational AI assistant in the "One Fact" app. Today's fact is about: {summary}

Related keywords: {keywords}
Category: {category}

Your goal is to help the user explore this fact in depth. You can:
1. Explain scientific principles related to the fact
2. Provide historical context
3. Suggest practical applications or implications
4. Connect it to other knowledge domains

Keep responses informative but conversational. If you don't know something, \
admit it rather than making up information."""


def context_message(fact: Fact) -> ChatMessage:
    """Build the system message that seeds a conversation about a fact.

    The message stays in the local history only; ChatRequest drops it.
    """
    keywords = ", ".join(fact.metadata.keywords) or fact.category
    return ChatMessage(
        role=ChatRole.SYSTEM,
        content=CONTEXT_PROMPT.format(
            summary=fact.summary, keywords=keywords, category=fact.category
        ),
    )


def _error_message(body: bytes) -> str | None:
    try:
        return ErrorBody.model_validate_json(body).error
    except ValidationError:
        return None


class ChatClient:
    """HTTP client for the chat endpoints.

    Use as an async context manager, or call aclose() when done.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the chat client.

        Args:
            config: Optional client configuration.
                    Loads from environment if not provided.
            http_client: Optional httpx client. When omitted the ChatClient
                         creates one from the config and closes it in aclose().
        """
        self._config = config or get_client_config()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self._config.timeout)

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying http client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    async def send_message(self, fact_id: str, messages: list[ChatMessage]) -> ChatMessage:
        """Send the conversation and wait for the full reply.

        Args:
            fact_id: The fact the conversation is about.
            messages: Conversation history; system messages are not sent.

        Returns:
            The reply message.

        Raises:
            InvalidRequestError: If there is nothing to send.
            ServerError: If the server answered with a non-2xx status.
            NetworkError: If the request failed at the transport level.
            DecodeError: If the reply is not a ``{role, content}`` object.
        """
        request = self._build_request(fact_id, messages)

        try:
            response = await self._http.post(
                self._config.chat_api_url, json=request.model_dump()
            )
        except httpx.TransportError as e:
            raise NetworkError(e) from e

        if not response.is_success:
            raise ServerError(response.status_code, _error_message(response.content))
        return _decode_reply(response.content)

    async def stream_message(
        self,
        fact_id: str,
        messages: list[ChatMessage],
        on_receive: Callable[[str], None] | None = None,
    ) -> ChatMessage:
        """Send the conversation and stream the reply.

        Text fragments are passed to ``on_receive`` as they arrive. A backend
        that answers with plain JSON instead of an event stream is handled
        like send_message().

        Args:
            fact_id: The fact the conversation is about.
            messages: Conversation history; system messages are not sent.
            on_receive: Called with each text fragment.

        Returns:
            The complete reply, or the fallback reply for an empty stream.

        Raises:
            InvalidRequestError: If there is nothing to send.
            ServerError: If the server answered with a non-2xx status.
            NetworkError: If the stream failed at the transport level.
        """
        request = self._build_request(fact_id, messages)
        reader = SSEStreamReader(on_receive=on_receive)
        url = f"{self._config.chat_api_url}/stream"

        try:
            async with self._http.stream(
                "POST",
                url,
                json=request.model_dump(),
                headers={"Accept": "text/event-stream"},
            ) as response:
                if not response.is_success:
                    body = await response.aread()
                    raise ServerError(response.status_code, _error_message(body))

                content_type = response.headers.get("content-type", "")
                if content_type.startswith("application/json"):
                    return _decode_reply(await response.aread())

                async for chunk in response.aiter_bytes():
                    reader.feed(chunk)
        except httpx.TransportError as e:
            logger.warning(f"Chat stream from {url} interrupted: {e}")
            return reader.complete(e)

        return reader.complete()

    def _build_request(self, fact_id: str, messages: list[ChatMessage]) -> ChatRequest:
        request = ChatRequest.from_history(fact_id, messages)
        if not request.fact_id.strip():
            raise InvalidRequestError("Fact id must not be empty")
        if not request.messages:
            raise InvalidRequestError("Conversation has no messages to send")
        logger.debug(f"Sending {len(request.messages)} chat messages for fact {fact_id}")
        return request


def _decode_reply(body: bytes) -> ChatMessage:
    try:
        return ChatResponse.model_validate_json(body).to_message()
    except ValidationError as e:
        raise DecodeError(f"Invalid chat response: {e}") from e
