"""Domain models for vendor tender timelines."""

from __future__ import annotations

from .enums import MilestoneKind, NotificationKind, Severity
from .models import CompanyTimeline, Milestone, Notification
from .timeline import generate_notifications, sort_timelines

__all__ = [
    "CompanyTimeline",
    "Milestone",
    "MilestoneKind",
    "Notification",
    "NotificationKind",
    "Severity",
    "generate_notifications",
    "sort_timelines",
]
