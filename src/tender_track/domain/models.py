from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Optional

from .enums import MilestoneKind, NotificationKind, Severity


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported datetime value: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "t", "yes"}
    return bool(value)


@dataclass(frozen=True, slots=True)
class Milestone:
    date: Optional[datetime] = None
    is_completed: bool = False


@dataclass(frozen=True, slots=True)
class CompanyTimeline:
    company_id: str
    company_name: str
    milestones: Dict[MilestoneKind, Milestone] = field(default_factory=dict)
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        filled = {kind: self.milestones.get(kind, Milestone()) for kind in MilestoneKind}
        object.__setattr__(self, "milestones", filled)

    def milestone(self, kind: MilestoneKind) -> Milestone:
        return self.milestones[kind]

    def with_milestone(self, kind: MilestoneKind, milestone: Milestone) -> "CompanyTimeline":
        milestones = dict(self.milestones)
        milestones[kind] = milestone
        return replace(self, milestones=milestones)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CompanyTimeline":
        milestones = {
            kind: Milestone(
                date=_parse_datetime(record.get(f"{kind.value}_date")),
                is_completed=_parse_bool(record.get(f"{kind.value}_completed")),
            )
            for kind in MilestoneKind
        }
        return cls(
            company_id=str(record["company_id"]),
            company_name=str(record.get("company_name") or ""),
            milestones=milestones,
            updated_at=_parse_datetime(record.get("updated_at")),
        )

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "company_id": self.company_id,
            "company_name": self.company_name,
        }
        for kind, milestone in self.milestones.items():
            record[f"{kind.value}_date"] = milestone.date.isoformat() if milestone.date else None
            record[f"{kind.value}_completed"] = milestone.is_completed
        record["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return record


@dataclass(frozen=True, slots=True)
class Notification:
    company_id: str
    company_name: str
    milestone: MilestoneKind
    kind: NotificationKind
    message: str
    severity: Severity

    def to_record(self) -> Dict[str, Any]:
        return {
            "company_id": self.company_id,
            "company_name": self.company_name,
            "milestone": self.milestone.value,
            "kind": self.kind.value,
            "message": self.message,
            "severity": self.severity.name,
        }
