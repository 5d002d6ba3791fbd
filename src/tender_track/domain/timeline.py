"""Ordering and alert derivation for company timelines.

Both functions are pure: they take the rows as fetched and return new lists.
Notifications are derived from the current flags every time, so a completed
stage is reported again on every refresh.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from .enums import MilestoneKind, NotificationKind, Severity
from .models import CompanyTimeline, Milestone, Notification

UPCOMING_WINDOW = timedelta(days=3)
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

SEVERITY_BY_KIND = {
    NotificationKind.OVERDUE: Severity.HIGH,
    NotificationKind.UPCOMING_DUE: Severity.MEDIUM,
    NotificationKind.STAGE_COMPLETED: Severity.LOW,
}


def sort_timelines(timelines: Iterable[CompanyTimeline]) -> List[CompanyTimeline]:
    """Most recently updated first; ties keep their fetch order."""

    # reverse=True keeps sort stability; undated rows sort last
    return sorted(
        timelines,
        key=lambda timeline: (timeline.updated_at is not None, timeline.updated_at or _EPOCH),
        reverse=True,
    )


def _classify(
    kind: MilestoneKind,
    milestone: Milestone,
    now: datetime,
    window: timedelta,
) -> Optional[NotificationKind]:
    if kind.is_deadline and not milestone.is_completed and milestone.date is not None:
        if milestone.date < now:
            return NotificationKind.OVERDUE
        if milestone.date <= now + window:
            return NotificationKind.UPCOMING_DUE
    if milestone.is_completed:
        return NotificationKind.STAGE_COMPLETED
    return None


def _message(timeline: CompanyTimeline, kind: MilestoneKind, notification: NotificationKind, milestone: Milestone) -> str:
    name = timeline.company_name or timeline.company_id
    if notification is NotificationKind.OVERDUE:
        return f"{kind.label} for {name} is overdue (was due {milestone.date:%Y-%m-%d})"
    if notification is NotificationKind.UPCOMING_DUE:
        return f"{kind.label} for {name} is due on {milestone.date:%Y-%m-%d}"
    return f"{name} completed {kind.label}"


def generate_notifications(
    timelines: Iterable[CompanyTimeline],
    now: datetime,
    *,
    window: timedelta = UPCOMING_WINDOW,
) -> List[Notification]:
    """Derive alerts, highest severity first.

    Each milestone contributes at most one notification. ``now`` must be
    timezone-aware, like the milestone dates.
    """

    notifications: list[Notification] = []
    for timeline in timelines:
        for kind in MilestoneKind:
            milestone = timeline.milestone(kind)
            notification_kind = _classify(kind, milestone, now, window)
            if notification_kind is None:
                continue
            notifications.append(
                Notification(
                    company_id=timeline.company_id,
                    company_name=timeline.company_name,
                    milestone=kind,
                    kind=notification_kind,
                    message=_message(timeline, kind, notification_kind, milestone),
                    severity=SEVERITY_BY_KIND[notification_kind],
                )
            )
    return sorted(notifications, key=lambda item: item.severity, reverse=True)
