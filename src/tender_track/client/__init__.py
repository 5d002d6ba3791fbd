"""Gateway client, retry policy and the timeline store built on them."""

from __future__ import annotations

from .api import DatabaseApi
from .retry import RetryPolicy, is_retryable
from .store import TimelineSnapshot, TimelineStore

__all__ = ["DatabaseApi", "RetryPolicy", "TimelineSnapshot", "TimelineStore", "is_retryable"]
