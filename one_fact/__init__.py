"""One Fact - client core for the "fact of the day" service.

Fetches daily and per-category facts with retry and same-day caching, and
streams chat replies about a fact over Server-Sent Events.

Components:
    - client: Fact and chat HTTP clients, configuration and caches
    - streaming: Incremental SSE parsing of chat replies
    - models: Fact and chat payload schemas
    - errors: Typed error taxonomy shared by the clients
"""

__version__ = "0.1.0"
