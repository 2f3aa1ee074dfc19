"""Streaming response parsing.

Turns a Server-Sent-Events byte stream into incremental text fragments and
one final assistant message.
"""

from one_fact.streaming.sse_reader import FALLBACK_REPLY, SSEStreamReader, extract_delta

__all__ = ["FALLBACK_REPLY", "SSEStreamReader", "extract_delta"]
