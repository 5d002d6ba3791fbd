"""Tender Track: vendor tender milestones behind a resilient query gateway."""

from __future__ import annotations

from .cli import main as main

__all__ = ["main"]
