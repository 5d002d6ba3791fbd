from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

import psycopg2
import psycopg2.extras

from ..config.settings import DatabaseSettings
from ..errors import DatabaseConnectionError

logger = logging.getLogger(__name__)

MAX_RETRIES = 5
RETRY_DELAY_SECONDS = 5.0
PROBE_QUERY = "SELECT 1"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def _release(session: Any) -> None:
    try:
        session.close()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Ignoring error while disposing stale session: %s", exc)


@dataclass(frozen=True)
class HealthProbe:
    database: str
    error: Optional[str] = None


@dataclass(frozen=True)
class ExecutionResult:
    rows: List[Dict[str, Any]]
    row_count: int
    fields: Optional[List[Dict[str, Any]]]


class ConnectionManager:
    """Owns the one long-lived database session of the gateway process.

    ``connect()`` retries sequentially with a fixed delay and gives up after
    ``max_retries`` retries without raising. Concurrent callers join the
    attempt already in flight instead of opening a second session.
    """

    def __init__(
        self,
        connection_factory: Callable[[], Any],
        *,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._connection_factory = connection_factory
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._state = ConnectionState.DISCONNECTED
        self._session: Any = None
        self.retries = 0
        self.last_error: Optional[str] = None
        self.connect_error: Optional[DatabaseConnectionError] = None
        self._closed = False
        self._lock = threading.Lock()
        self._session_lock = threading.Lock()
        self._attempt_done: Optional[threading.Event] = None
        self._attempt_result = False

    @classmethod
    def from_settings(cls, settings: DatabaseSettings, **kwargs: Any) -> "ConnectionManager":
        params = settings.connect_kwargs()
        return cls(lambda: psycopg2.connect(**params), **kwargs)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def connecting(self) -> bool:
        with self._lock:
            return self._attempt_done is not None

    def connect(self) -> bool:
        with self._lock:
            if self._state is ConnectionState.CONNECTED:
                return True
            pending = self._attempt_done
            if pending is None:
                self._attempt_done = threading.Event()
        if pending is not None:
            pending.wait()
            return self._attempt_result

        result = False
        try:
            result = self._connect_with_retries()
        finally:
            with self._lock:
                done, self._attempt_done = self._attempt_done, None
                self._attempt_result = result
            if done is not None:
                done.set()
        return result

    def _open_session(self) -> Any:
        try:
            session = self._connection_factory()
            session.autocommit = True
        except Exception as exc:  # noqa: BLE001
            raise DatabaseConnectionError(str(exc) or exc.__class__.__name__) from exc
        return session

    def _connect_with_retries(self) -> bool:
        while not self._closed:
            self._dispose_session()
            self._state = ConnectionState.CONNECTING
            try:
                session = self._open_session()
            except DatabaseConnectionError as exc:
                self._state = ConnectionState.DISCONNECTED
                self.connect_error = exc
                self.last_error = exc.message
                logger.error("Database connection error: %r", exc)
                if self.retries < self.max_retries:
                    self.retries += 1
                    logger.warning(
                        "Retrying connection (%s/%s) in %.1fs...",
                        self.retries,
                        self.max_retries,
                        self.retry_delay,
                    )
                    self._sleep(self.retry_delay)
                    continue
                logger.warning("Max connection retries reached, continuing without database")
                self.retries = 0
                return False

            with self._lock:
                stored = not self._closed
                if stored:
                    self._session = session
                    self._state = ConnectionState.CONNECTED
            if not stored:
                logger.info("Manager closed during connect; releasing new session")
                _release(session)
                break
            self.retries = 0
            self.last_error = None
            self.connect_error = None
            logger.info("Connected to database")
            return True

        self._state = ConnectionState.DISCONNECTED
        self.retries = 0
        return False

    def _dispose_session(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            _release(session)

    def reconnect_in_background(self) -> Optional[threading.Thread]:
        """Start ``connect()`` on a daemon thread unless an attempt is running."""

        if self._closed or self.connecting:
            return None
        thread = threading.Thread(target=self.connect, name="db-reconnect", daemon=True)
        thread.start()
        return thread

    def mark_disconnected(self, reason: Optional[str] = None) -> None:
        if reason:
            self.last_error = reason
        if self._state is ConnectionState.CONNECTED:
            logger.warning("Database connection lost: %s", reason or "unknown reason")
        self._state = ConnectionState.DISCONNECTED

    def probe(self) -> HealthProbe:
        if not self.is_connected:
            return HealthProbe(database="disconnected")
        try:
            self.execute(PROBE_QUERY)
        except Exception as exc:  # noqa: BLE001
            logger.error("Database health check failed: %s", exc)
            self.mark_disconnected(str(exc))
            self.reconnect_in_background()
            return HealthProbe(database="error", error=str(exc))
        return HealthProbe(database="connected")

    def execute(self, text: str, params: Optional[Sequence[Any]] = None) -> ExecutionResult:
        """Run one statement on the live session; commands are serialized."""

        with self._session_lock:
            session = self._session
            if session is None:
                raise psycopg2.InterfaceError("connection already closed")
            with session.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                cursor.execute(text, list(params) if params is not None else None)
                if cursor.description is None:
                    return ExecutionResult(rows=[], row_count=cursor.rowcount, fields=None)
                rows = [dict(row) for row in cursor.fetchall()]
                fields = [
                    {"name": column.name, "dataTypeID": column.type_code}
                    for column in cursor.description
                ]
                return ExecutionResult(rows=rows, row_count=cursor.rowcount, fields=fields)

    def session_closed(self) -> bool:
        session = self._session
        return session is None or bool(getattr(session, "closed", 0))

    def close(self) -> None:
        """Release the session. A connect attempt still in flight stops and discards its session."""

        with self._lock:
            self._closed = True
            session, self._session = self._session, None
            self._state = ConnectionState.DISCONNECTED
        if session is None:
            return
        try:
            session.close()
            logger.info("Database connection closed")
        except Exception:  # noqa: BLE001
            logger.exception("Error closing database connection")
