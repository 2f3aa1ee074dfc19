"""HTTP clients for the One Fact backend.

Handles fact retrieval with retry and caching, and chat conversations.

Responsibilities:
    - Daily and per-category fact fetching with same-day caching
    - Linear-backoff retry of transient failures
    - Search, random facts, categories and related articles
    - Non-streaming and streaming chat replies

Configuration comes from the environment (see config.py).
"""

from one_fact.client.cache import FactCache, InMemoryFactCache, NullFactCache
from one_fact.client.chat_client import ChatClient, context_message
from one_fact.client.config import ClientConfig, get_client_config
from one_fact.client.fact_client import FactClient

__all__ = [
    "ChatClient",
    "ClientConfig",
    "FactCache",
    "FactClient",
    "InMemoryFactCache",
    "NullFactCache",
    "context_message",
    "get_client_config",
]
