"""SQL statements issued against the ``timelines`` table."""

from __future__ import annotations

from typing import Any, List, Tuple

from ..domain import CompanyTimeline, MilestoneKind
from .vendors import DEFAULT_RFI_DUE_DATE, SEED_VENDORS, SeedVendor

TABLE = "timelines"

_MILESTONE_COLUMNS = [
    column
    for kind in MilestoneKind
    for column in (f"{kind.value}_date", f"{kind.value}_completed")
]

_COLUMN_TYPES = ",\n    ".join(
    f"{column} TIMESTAMPTZ" if column.endswith("_date") else f"{column} BOOLEAN NOT NULL DEFAULT FALSE"
    for column in _MILESTONE_COLUMNS
)

CREATE_TABLE = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    company_id TEXT NOT NULL UNIQUE,
    company_name TEXT NOT NULL,
    {_COLUMN_TYPES},
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""

SELECT_ALL = f"SELECT * FROM {TABLE} ORDER BY updated_at DESC"

UPDATE_MILESTONES = (
    f"UPDATE {TABLE} SET "
    + ", ".join(f"{column} = %s" for column in _MILESTONE_COLUMNS)
    + ", updated_at = NOW() WHERE company_id = %s"
)

_COMPLETED_COLUMNS = [f"{kind.value}_completed" for kind in MilestoneKind]

INSERT_COMPANY = (
    f"INSERT INTO {TABLE} (company_id, company_name, {', '.join(_COMPLETED_COLUMNS)}) "
    f"VALUES ({', '.join(['%s'] * (2 + len(_COMPLETED_COLUMNS)))})"
)


def update_params(timeline: CompanyTimeline) -> List[Any]:
    params: List[Any] = []
    for kind in MilestoneKind:
        milestone = timeline.milestone(kind)
        params.extend([milestone.date, milestone.is_completed])
    params.append(timeline.company_id)
    return params


def insert_params(company_id: str, company_name: str) -> List[Any]:
    return [company_id, company_name] + [False] * len(_COMPLETED_COLUMNS)


def seed_statement(vendors: Tuple[SeedVendor, ...] = SEED_VENDORS) -> Tuple[str, List[Any]]:
    """One conditional insert that only fills an empty table.

    Racing callers collide on the ``company_id`` uniqueness constraint and
    insert nothing instead of duplicating rows. The conflict target is left
    open so tables created without that constraint still accept the seed.
    """

    columns = ["company_id", "company_name", *_COMPLETED_COLUMNS, "rfi_due_date"]
    # parameters cross the gateway as JSON, so the date needs an explicit cast
    row = "(" + ", ".join(["%s"] * (len(columns) - 1) + ["%s::timestamptz"]) + ")"
    text = (
        f"INSERT INTO {TABLE} ({', '.join(columns)}) "
        f"SELECT * FROM (VALUES {', '.join([row] * len(vendors))}) AS seed ({', '.join(columns)}) "
        f"WHERE NOT EXISTS (SELECT 1 FROM {TABLE}) "
        f"ON CONFLICT DO NOTHING"
    )
    params: List[Any] = []
    for vendor in vendors:
        params.extend([vendor.company_id, vendor.company_name])
        params.extend([False] * len(_COMPLETED_COLUMNS))
        params.append(DEFAULT_RFI_DUE_DATE)
    return text, params
