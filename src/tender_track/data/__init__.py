"""Data access layer."""

from __future__ import annotations

from .connection import ConnectionManager, ConnectionState, ExecutionResult, HealthProbe
from .gateway import QueryGateway, QueryResult, is_reset_error

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "ExecutionResult",
    "HealthProbe",
    "QueryGateway",
    "QueryResult",
    "is_reset_error",
]
