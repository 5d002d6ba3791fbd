from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Sequence, Union

from ..domain import (
    CompanyTimeline,
    Milestone,
    MilestoneKind,
    Notification,
    generate_notifications,
    sort_timelines,
)
from ..errors import TimelineUpdateError, ValidationError
from . import queries
from .retry import is_retryable

logger = logging.getLogger(__name__)


class QueryClient(Protocol):
    def query(self, text: str, params: Optional[Sequence[Any]] = None) -> Dict[str, Any]: ...


class _Unchanged(Enum):
    TOKEN = "unchanged"


# passed as ``date`` to keep the stored value; ``None`` clears it
UNCHANGED = _Unchanged.TOKEN


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TimelineSnapshot:
    """What the dashboard renders; replaced as a whole, never patched."""

    timelines: tuple[CompanyTimeline, ...] = ()
    notifications: tuple[Notification, ...] = ()
    loading: bool = False
    error: Optional[str] = None


class CompanyIdGenerator:
    """Millisecond timestamps, kept strictly increasing within the process."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            candidate = int(self._clock() * 1000)
            self._last = max(candidate, self._last + 1)
            return str(self._last)


def _message(exc: BaseException, fallback: str) -> str:
    return str(exc) or fallback


@dataclass
class TimelineStore:
    """Client-side cache of all company timelines.

    Every write is followed by a full refetch; nothing is merged locally.
    """

    api: QueryClient
    clock: Callable[[], datetime] = utcnow
    new_company_id: Callable[[], str] = field(default_factory=CompanyIdGenerator)
    snapshot: TimelineSnapshot = field(default_factory=TimelineSnapshot, init=False)
    _initialized: bool = field(default=False, init=False)

    @property
    def timelines(self) -> list[CompanyTimeline]:
        return list(self.snapshot.timelines)

    @property
    def notifications(self) -> list[Notification]:
        return list(self.snapshot.notifications)

    @property
    def loading(self) -> bool:
        return self.snapshot.loading

    @property
    def error(self) -> Optional[str]:
        return self.snapshot.error

    def _publish(self, **changes: Any) -> TimelineSnapshot:
        current = self.snapshot
        values = {
            "timelines": current.timelines,
            "notifications": current.notifications,
            "loading": current.loading,
            "error": current.error,
        }
        values.update(changes)
        self.snapshot = TimelineSnapshot(**values)
        return self.snapshot

    def _seed(self) -> None:
        """Fill an empty table with the default vendors.

        A failed seed never blocks loading what is already stored. Permanent
        failures are not repeated; transient ones are tried on the next fetch.
        """

        text, params = queries.seed_statement()
        try:
            result = self.api.query(text, params)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to seed default vendors: %s", exc)
            self._initialized = not is_retryable(exc)
            return
        inserted = result.get("rowCount") or 0
        if inserted:
            logger.info("Seeded %s default vendor timelines", inserted)
        self._initialized = True

    def fetch(self) -> TimelineSnapshot:
        self._publish(loading=True, error=None)
        if not self._initialized:
            self._seed()
        try:
            result = self.api.query(queries.SELECT_ALL)
            timelines = sort_timelines(
                CompanyTimeline.from_record(row) for row in result.get("rows") or []
            )
            notifications = generate_notifications(timelines, self.clock())
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to fetch timelines: %s", exc)
            return self._publish(loading=False, error=_message(exc, "Failed to fetch timelines"))
        return self._publish(
            timelines=tuple(timelines),
            notifications=tuple(notifications),
            loading=False,
            error=None,
        )

    def update(self, timeline: CompanyTimeline) -> TimelineSnapshot:
        try:
            self.api.query(queries.UPDATE_MILESTONES, queries.update_params(timeline))
        except Exception as exc:
            logger.warning("Failed to update timeline %s: %s", timeline.company_id, exc)
            raise TimelineUpdateError(_message(exc, "Failed to update timeline")) from exc
        return self.fetch()

    def mark_milestone(
        self,
        company_id: str,
        kind: MilestoneKind,
        *,
        completed: bool,
        date: Union[datetime, None, _Unchanged] = UNCHANGED,
    ) -> TimelineSnapshot:
        current = next((item for item in self.snapshot.timelines if item.company_id == company_id), None)
        if current is None:
            raise ValidationError(f"Unknown company: {company_id}")
        if date is UNCHANGED:
            date = current.milestone(kind).date
        milestone = Milestone(date=date, is_completed=completed)
        return self.update(current.with_milestone(kind, milestone))

    def create(self, company_name: str, contact_email: str, scope: Mapping[str, bool]) -> str:
        if not company_name.strip():
            raise ValidationError("Company name is required")
        if not contact_email.strip():
            raise ValidationError("Contact email is required")
        if not any(scope.values()):
            raise ValidationError("At least one scope must be selected")

        company_id = self.new_company_id()
        try:
            self.api.query(queries.INSERT_COMPANY, queries.insert_params(company_id, company_name.strip()))
        except Exception as exc:
            logger.warning("Failed to add vendor %s: %s", company_name, exc)
            raise TimelineUpdateError(_message(exc, "Failed to add vendor")) from exc
        logger.info("Added vendor %s as %s", company_name, company_id)
        self.fetch()
        return company_id
