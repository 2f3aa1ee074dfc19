"""Incremental Server-Sent-Events reader for streamed chat replies.

Frames look like ``data: {json}\\n\\n`` and may be split at any byte, so lines
are cut from the cumulative buffer and a trailing partial line is kept for
the next chunk. A partial line still buffered when the stream ends is
discarded.

Payloads that are not an OpenAI-style ``choices[0].delta.content`` delta are
appended as literal text rather than dropped. A backend that streams plain
text (the fallback messages of the chat service do) still renders.
"""

import json
import logging
from collections.abc import Callable

from one_fact.errors import NetworkError
from one_fact.models.schemas import ChatMessage, ChatRole

logger = logging.getLogger(__name__)

DATA_PREFIX = b"data: "
DONE_TOKEN = "[DONE]"

FALLBACK_REPLY = (
    "I'm sorry, but I couldn't process your request at this time. "
    "Please try again later."
)


def extract_delta(payload: str) -> str:
    """Return the text carried by one event payload.

    Args:
        payload: Event data with the ``data: `` prefix removed.

    Returns:
        ``choices[0].delta.content`` when present, otherwise the payload itself.
    """
    try:
        event = json.loads(payload)
    except ValueError:
        logger.debug(f"Non-JSON SSE payload, using raw text: {payload[:80]!r}")
        return payload

    try:
        content = event["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return payload
    if not isinstance(content, str):
        return payload
    return content


class SSEStreamReader:
    """Accumulates one streamed chat reply.

    Owned by a single streaming session; create a new reader per request.

    Attributes:
        on_receive: Called with every text fragment as soon as it is parsed.
    """

    def __init__(self, on_receive: Callable[[str], None] | None = None) -> None:
        self.on_receive = on_receive
        self._buffer = bytearray()
        self._parts: list[str] = []
        self._received_data = False

    @property
    def text(self) -> str:
        """Text accumulated so far."""
        return "".join(self._parts)

    @property
    def received_data(self) -> bool:
        """Whether any bytes have arrived."""
        return self._received_data

    def feed(self, chunk: bytes) -> list[str]:
        """Consume a chunk of the response body.

        Args:
            chunk: Raw bytes exactly as delivered by the transport.

        Returns:
            Text fragments extracted from the lines this chunk completed.
        """
        if not chunk:
            return []
        self._received_data = True
        self._buffer.extend(chunk)

        # Only a newline in this chunk can complete a line
        if b"\n" not in chunk:
            return []
        end = self._buffer.rfind(b"\n")
        lines = self._buffer[:end].split(b"\n")
        del self._buffer[: end + 1]

        fragments: list[str] = []
        for raw_line in lines:
            fragment = self._parse_line(bytes(raw_line))
            if not fragment:
                continue
            self._parts.append(fragment)
            fragments.append(fragment)
            if self.on_receive is not None:
                self.on_receive(fragment)
        return fragments

    def complete(self, error: BaseException | None = None) -> ChatMessage:
        """Finish the stream.

        Args:
            error: Transport error that ended the stream, if any.

        Returns:
            The assistant reply, or the fallback reply when nothing usable arrived.

        Raises:
            NetworkError: If the stream ended with a transport error.
        """
        if error is not None:
            self._reset()
            raise NetworkError(error) from error

        text = self.text
        received = self._received_data
        self._reset()

        if not received or not text:
            logger.info("Stream produced no content, using fallback reply")
            return ChatMessage(role=ChatRole.ASSISTANT, content=FALLBACK_REPLY)

        return ChatMessage(role=ChatRole.ASSISTANT, content=text)

    def _reset(self) -> None:
        self._buffer.clear()
        self._parts.clear()

    def _parse_line(self, line: bytes) -> str:
        line = line.removesuffix(b"\r")
        if not line.startswith(DATA_PREFIX):
            return ""

        payload = line[len(DATA_PREFIX):].decode("utf-8", errors="replace")
        if payload.strip() == DONE_TOKEN:
            return ""
        return extract_delta(payload)
