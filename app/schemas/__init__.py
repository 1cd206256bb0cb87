"""Shared schemas used across the domain and API layers."""

from .stream_state import StreamState

__all__ = [
    "StreamState",
]
