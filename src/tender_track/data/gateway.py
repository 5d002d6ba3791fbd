from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import psycopg2

from ..errors import BadRequest, QueryFailed, ServiceUnavailable
from .connection import ConnectionManager

logger = logging.getLogger(__name__)

# admin_shutdown; transport-level resets carry no pgcode
RESET_PGCODES = frozenset({"57P01"})


@dataclass(frozen=True)
class QueryResult:
    rows: List[Dict[str, Any]]
    row_count: int
    fields: Optional[List[Dict[str, Any]]] = None

    def to_payload(self) -> Dict[str, Any]:
        return {"rows": self.rows, "rowCount": self.row_count, "fields": self.fields}


def is_reset_error(exc: BaseException, manager: ConnectionManager) -> bool:
    """True when ``exc`` means the session itself was severed."""

    if getattr(exc, "pgcode", None) in RESET_PGCODES:
        return True
    if isinstance(exc, psycopg2.InterfaceError):
        return True
    if isinstance(exc, psycopg2.OperationalError) and getattr(exc, "pgcode", None) is None:
        return manager.session_closed()
    return False


@dataclass(slots=True)
class QueryGateway:
    """Executes parameterized SQL against the session owned by ``manager``."""

    manager: ConnectionManager

    def ensure_connected(self) -> None:
        if not self.manager.is_connected:
            raise ServiceUnavailable("Database not connected")

    def execute(self, text: Optional[str], params: Optional[Sequence[Any]] = None) -> QueryResult:
        self.ensure_connected()
        if not text:
            raise BadRequest("Query text is required")

        try:
            result = self.manager.execute(text, list(params) if params else None)
        except psycopg2.Error as exc:
            reset = is_reset_error(exc, self.manager)
            message = str(exc).strip() or exc.__class__.__name__
            logger.warning("Query error (pgcode=%s, reset=%s): %s", exc.pgcode, reset, message)
            if reset:
                self.manager.mark_disconnected(message)
                self.manager.reconnect_in_background()
            raise QueryFailed(message, code=exc.pgcode, reset=reset) from exc
        return QueryResult(rows=result.rows, row_count=result.row_count, fields=result.fields)
