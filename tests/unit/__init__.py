"""Unit tests for isolated components.

Covers the fact client, chat client, SSE reader, caches, configuration and models.
"""
