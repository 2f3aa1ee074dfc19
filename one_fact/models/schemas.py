"""Wire models for facts and chat messages.

The backend has shipped several fact schemas over time (integer ``ID`` keys,
camelCase legacy fields, metadata as a flat string map), so every field other
than ``content`` tolerates absence and falls back to an empty value.
"""

import re
import uuid
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationInfo, field_validator

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Go's zero time.Time, emitted for timestamps that were never set
ZERO_TIME_SENTINEL = "0001-01-01T00:00:00Z"

FALLBACK_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Go emits nanoseconds; datetime only holds microseconds
_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a backend timestamp.

    Accepts ISO-8601 (with or without fractional seconds), the fixed
    ``YYYY-MM-DD HH:MM:SS`` fallback and the zero-time sentinel.

    Args:
        value: Raw value from the payload.

    Returns:
        Timezone-aware datetime, or None for an absent value.

    Raises:
        ValueError: If the string matches none of the accepted formats.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, int | float) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, UTC)
    elif isinstance(value, str):
        text = value.strip()
        if text == ZERO_TIME_SENTINEL or text.startswith("0001-01-01"):
            return EPOCH
        try:
            parsed = datetime.fromisoformat(_EXCESS_FRACTION.sub(r"\1", text))
        except ValueError:
            try:
                parsed = datetime.strptime(text, FALLBACK_TIME_FORMAT)
            except ValueError as e:
                raise ValueError(f"Unrecognised timestamp: {value!r}") from e
    else:
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _as_str_list(value: Any) -> list[str]:
    """Coerce null, a comma-separated string or a list into a list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if not isinstance(value, list | tuple):
        raise ValueError(f"Expected a list, got {type(value).__name__}")
    return [str(item) for item in value if item is not None]


class FactMetadata(BaseModel):
    """Editorial metadata attached to a fact.

    Attributes:
        language: Language of the fact text.
        difficulty: Reading difficulty label.
        references: Free-text references.
        keywords: Keywords used for search and chat context.
        popularity: Popularity counter.
        last_served: When the fact was last served, if ever.
        serve_count: Number of times the fact was served.
    """

    language: str = ""
    difficulty: str = ""
    references: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    popularity: int = 0
    last_served: datetime | None = None
    serve_count: int = 0

    @field_validator("language", "difficulty", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("references", "keywords", mode="before")
    @classmethod
    def coerce_lists(cls, v: Any) -> list[str]:
        return _as_str_list(v)

    @field_validator("popularity", "serve_count", mode="before")
    @classmethod
    def coerce_counters(cls, v: Any) -> Any:
        if v is None or v == "":
            return 0
        return v

    @field_validator("last_served", mode="before")
    @classmethod
    def parse_last_served(cls, v: Any) -> datetime | None:
        return parse_timestamp(v)


class RelatedArticle(BaseModel):
    """An article linked from a fact."""

    id: str = Field(default="", validation_alias=AliasChoices("id", "ID"))
    title: str = ""
    url: str = ""
    source: str = ""
    image_url: str | None = Field(
        default=None, validation_alias=AliasChoices("image_url", "imageUrl")
    )
    snippet: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return "" if v is None else str(v)


class Fact(BaseModel):
    """A single fact record.

    ``id`` is the stable cache and display key. ``content`` must be non-empty;
    a payload without usable content does not decode.
    """

    id: str = Field(default="", validation_alias=AliasChoices("id", "ID", "_id"))
    content: str = Field(..., min_length=1)
    category: str = ""
    source: str = ""
    tags: list[str] = Field(default_factory=list)
    verified: bool = False
    created_at: datetime = EPOCH
    updated_at: datetime = EPOCH
    publish_date: datetime | None = None
    related_urls: list[str] = Field(default_factory=list)
    metadata: FactMetadata = Field(default_factory=FactMetadata)

    # Legacy fields from the first mobile schema
    url: str | None = None
    display_date: datetime | None = Field(
        default=None, validation_alias=AliasChoices("display_date", "displayDate")
    )
    active: bool = True
    related_articles: list[RelatedArticle] = Field(
        default_factory=list,
        validation_alias=AliasChoices("related_articles", "relatedArticles"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, v: Any) -> Any:
        """Strip whitespace from content before validation."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("category", "source", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("tags", "related_urls", mode="before")
    @classmethod
    def coerce_lists(cls, v: Any) -> list[str]:
        return _as_str_list(v)

    @field_validator("verified", "active", mode="before")
    @classmethod
    def coerce_flags(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return info.field_name == "active"
        return v

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def parse_required_timestamps(cls, v: Any) -> datetime:
        return parse_timestamp(v) or EPOCH

    @field_validator("publish_date", "display_date", mode="before")
    @classmethod
    def parse_optional_timestamps(cls, v: Any) -> datetime | None:
        return parse_timestamp(v)

    @field_validator("metadata", mode="before")
    @classmethod
    def none_to_metadata(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("related_articles", mode="before")
    @classmethod
    def none_to_articles(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def summary(self) -> str:
        """Content shortened to a single chat-context line."""
        first_line = self.content.splitlines()[0]
        if len(first_line) <= 280:
            return first_line
        return first_line[:277].rstrip() + "..."


class CachedFact(BaseModel):
    """A fact together with the time it was fetched.

    Attributes:
        fact: The cached fact.
        fetched_at: Client-local time of the successful fetch.
    """

    fact: Fact
    fetched_at: datetime

    def is_valid(self, now: datetime) -> bool:
        """Return True if the entry was fetched on the same local calendar day as ``now``."""
        return _local_date(self.fetched_at) == _local_date(now)


def _local_date(moment: datetime) -> date:
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone().date()


class ChatRole(str, Enum):
    """Speaker of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """A single message in a fact conversation.

    System messages carry the fact context for the model; they are never
    displayed and never sent over the wire.

    Attributes:
        id: Client-side message identifier.
        role: The speaker.
        content: The message text.
        created_at: Creation timestamp.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    role: ChatRole
    content: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_visible(self) -> bool:
        return self.role is not ChatRole.SYSTEM

    def to_wire(self) -> dict[str, str]:
        """Return the ``{role, content}`` form sent to the chat endpoint."""
        return {"role": self.role.value, "content": self.content}


class ChatRequest(BaseModel):
    """Request payload for the chat endpoints.

    Attributes:
        fact_id: The fact the conversation is about.
        messages: Wire-form user and assistant messages.
    """

    fact_id: str
    messages: list[dict[str, str]] = Field(default_factory=list)

    @classmethod
    def from_history(cls, fact_id: str, history: list[ChatMessage]) -> "ChatRequest":
        """Build a request from a conversation, dropping system messages."""
        return cls(
            fact_id=fact_id,
            messages=[message.to_wire() for message in history if message.is_visible],
        )


class ChatResponse(BaseModel):
    """Non-streaming response from the chat endpoint."""

    role: str
    content: str

    def to_message(self) -> ChatMessage:
        role = ChatRole.ASSISTANT if self.role == ChatRole.ASSISTANT.value else ChatRole.USER
        return ChatMessage(role=role, content=self.content)


class ErrorBody(BaseModel):
    """``{"error": ...}`` body the backend sends with failed requests."""

    error: str
