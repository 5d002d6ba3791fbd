"""Vendors seeded into an empty ``timelines`` table."""

from __future__ import annotations

from datetime import date
from typing import NamedTuple


class SeedVendor(NamedTuple):
    company_id: str
    company_name: str


DEFAULT_RFI_DUE_DATE = date(2025, 2, 7)

SEED_VENDORS: tuple[SeedVendor, ...] = (
    SeedVendor("1", "Accenture"),
    SeedVendor("2", "Capgemini"),
    SeedVendor("3", "Deloitte"),
    SeedVendor("4", "EY"),
    SeedVendor("5", "IBM"),
    SeedVendor("6", "KPMG"),
    SeedVendor("7", "PwC"),
)
