from __future__ import annotations

from collections import namedtuple
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import psycopg2
import pytest

from tender_track.data import ConnectionManager
from tender_track.domain import MilestoneKind

Column = namedtuple("Column", ["name", "type_code"])


class AdminShutdown(psycopg2.OperationalError):
    pgcode = "57P01"


class FakeCursor:
    def __init__(self, session: "FakeSession") -> None:
        self.session = session
        self.description: Optional[List[Column]] = None
        self.rowcount = -1
        self._rows: List[Dict[str, Any]] = []

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None

    def execute(self, text: str, params: Any = None) -> None:
        self.session.executed.append((text, params))
        if self.session.fail_with is not None:
            error = self.session.fail_with
            if self.session.close_on_failure:
                self.session.closed = 2
            raise error
        self._rows = list(self.session.rows)
        if self._rows:
            self.description = [Column(name, 25) for name in self._rows[0]]
        self.rowcount = len(self._rows)

    def fetchall(self) -> List[Dict[str, Any]]:
        return self._rows


class FakeSession:
    def __init__(self) -> None:
        self.autocommit = False
        self.closed = 0
        self.executed: List[tuple] = []
        self.rows: List[Dict[str, Any]] = []
        self.fail_with: Optional[BaseException] = None
        self.close_on_failure = False
        self.close_error: Optional[BaseException] = None

    def cursor(self, cursor_factory: Any = None) -> FakeCursor:
        return FakeCursor(self)

    def close(self) -> None:
        self.closed = 1
        if self.close_error is not None:
            raise self.close_error


class FlakyFactory:
    """Fails ``failures`` times, then hands out fresh sessions."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.calls = 0
        self.sessions: List[FakeSession] = []

    def __call__(self) -> FakeSession:
        self.calls += 1
        if self.calls <= self.failures:
            raise psycopg2.OperationalError("could not connect to server")
        session = FakeSession()
        self.sessions.append(session)
        return session


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def factory() -> FlakyFactory:
    return FlakyFactory()


@pytest.fixture
def manager(factory: FlakyFactory, sleeps: List[float]) -> ConnectionManager:
    return ConnectionManager(factory, sleep=sleeps.append)


@pytest.fixture
def connected_manager(manager: ConnectionManager) -> ConnectionManager:
    assert manager.connect()
    return manager


class InMemoryTimelinesApi:
    """Answers the store's statements the way the gateway and table would."""

    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []
        self.statements: List[str] = []
        self.fail_with: Optional[BaseException] = None
        self._tick = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def _now(self) -> datetime:
        self._tick += timedelta(minutes=1)
        return self._tick

    def _blank_row(self, company_id: str, company_name: str) -> Dict[str, Any]:
        row: Dict[str, Any] = {"company_id": company_id, "company_name": company_name}
        for kind in MilestoneKind:
            row[f"{kind.value}_date"] = None
            row[f"{kind.value}_completed"] = False
        row["updated_at"] = self._now()
        return row

    def query(self, text: str, params: Optional[List[Any]] = None) -> Dict[str, Any]:
        self.statements.append(text)
        if self.fail_with is not None:
            raise self.fail_with
        params = list(params or [])
        if text.startswith("INSERT") and "NOT EXISTS" in text:
            if self.rows:
                return {"rows": [], "rowCount": 0, "fields": None}
            for offset in range(0, len(params), 8):
                chunk = params[offset : offset + 8]
                row = self._blank_row(chunk[0], chunk[1])
                row["rfi_due_date"] = chunk[7]
                self.rows.append(row)
            return {"rows": [], "rowCount": len(params) // 8, "fields": None}
        if text.startswith("INSERT"):
            self.rows.append(self._blank_row(params[0], params[1]))
            return {"rows": [], "rowCount": 1, "fields": None}
        if text.startswith("UPDATE"):
            company_id = params[-1]
            for row in self.rows:
                if row["company_id"] != company_id:
                    continue
                for index, kind in enumerate(MilestoneKind):
                    row[f"{kind.value}_date"] = params[index * 2]
                    row[f"{kind.value}_completed"] = params[index * 2 + 1]
                row["updated_at"] = self._now()
                return {"rows": [], "rowCount": 1, "fields": None}
            return {"rows": [], "rowCount": 0, "fields": None}
        if text.startswith("SELECT"):
            ordered = sorted(self.rows, key=lambda row: row["updated_at"], reverse=True)
            return {"rows": [dict(row) for row in ordered], "rowCount": len(ordered), "fields": []}
        raise AssertionError(f"unexpected statement: {text}")


@pytest.fixture
def timelines_api() -> InMemoryTimelinesApi:
    return InMemoryTimelinesApi()


@pytest.fixture
def admin_shutdown() -> type:
    return AdminShutdown
