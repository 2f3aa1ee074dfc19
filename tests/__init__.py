"""Test package for the One Fact client core.

Structure:
    - unit/: Clients, reader and models against httpx.MockTransport
    - integration/: Clients against a FastAPI stub of the backend

No test touches the network. Leverages pytest with pytest-check for soft assertions.
"""
