from __future__ import annotations

from enum import Enum


class MilestoneKind(str, Enum):
    """Tender milestones, declared in canonical order."""

    NDA_RECEIVED = "nda_received"
    NDA_SIGNED = "nda_signed"
    RFI_SENT = "rfi_sent"
    RFI_DUE = "rfi_due"
    OFFER_RECEIVED = "offer_received"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def is_deadline(self) -> bool:
        return self in DEADLINE_MILESTONES


_LABELS = {
    MilestoneKind.NDA_RECEIVED: "NDA Received",
    MilestoneKind.NDA_SIGNED: "NDA Signed",
    MilestoneKind.RFI_SENT: "RFI Sent",
    MilestoneKind.RFI_DUE: "RFI Due",
    MilestoneKind.OFFER_RECEIVED: "Offer Received",
}

DEADLINE_MILESTONES = frozenset({MilestoneKind.RFI_DUE})


class NotificationKind(str, Enum):
    OVERDUE = "OVERDUE"
    UPCOMING_DUE = "UPCOMING_DUE"
    STAGE_COMPLETED = "STAGE_COMPLETED"


class Severity(int, Enum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3
