"""Pydantic models for fact and chat payloads.

Provides tolerant decoding of the backend's fact schemas and the chat wire format.

Models:
    - Fact: A single fact record
    - FactMetadata: Editorial metadata attached to a fact
    - RelatedArticle: An article linked from a fact
    - CachedFact: A fact plus the time it was fetched
    - ChatMessage: Individual message in a fact conversation
    - ChatRequest: Outgoing chat request payload
    - ChatResponse: Non-streaming chat response
"""

from one_fact.models.schemas import (
    EPOCH,
    CachedFact,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatRole,
    ErrorBody,
    Fact,
    FactMetadata,
    RelatedArticle,
    parse_timestamp,
)

__all__ = [
    "EPOCH",
    "CachedFact",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ChatRole",
    "ErrorBody",
    "Fact",
    "FactMetadata",
    "RelatedArticle",
    "parse_timestamp",
]
