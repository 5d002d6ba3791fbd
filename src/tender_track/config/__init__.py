"""Configuration models and helpers."""

from __future__ import annotations

from .settings import DATA_DIR, AppSettings, DatabaseSettings, get_settings

__all__ = ["AppSettings", "DATA_DIR", "DatabaseSettings", "get_settings"]
