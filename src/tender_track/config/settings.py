from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from platformdirs import user_data_dir

load_dotenv()

APP_NAME = "Tender Track"
APP_AUTHOR = "TenderTrack"
DATA_DIR = Path(user_data_dir(APP_NAME, APP_AUTHOR))

DEFAULT_DB_PORT = 5432
CONNECT_TIMEOUT_SECONDS = 30
STATEMENT_TIMEOUT_MS = 30_000


@dataclass(frozen=True)
class DatabaseSettings:
    host: Optional[str]
    name: Optional[str]
    user: Optional[str]
    password: Optional[str]
    port: int = DEFAULT_DB_PORT

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.name and self.user and self.password)

    @property
    def missing_env_vars(self) -> list[str]:
        missing = []
        if not self.host:
            missing.append("AZURE_DB_HOST")
        if not self.name:
            missing.append("AZURE_DB_NAME")
        if not self.user:
            missing.append("AZURE_DB_USER")
        if not self.password:
            missing.append("AZURE_DB_PASSWORD")
        return missing

    def connect_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``psycopg2.connect``."""

        return {
            "host": self.host,
            "dbname": self.name,
            "user": self.user,
            "password": self.password,
            "port": self.port,
            "sslmode": "require",
            "connect_timeout": CONNECT_TIMEOUT_SECONDS,
            "options": f"-c statement_timeout={STATEMENT_TIMEOUT_MS}",
        }


@dataclass(frozen=True)
class AppSettings:
    database: DatabaseSettings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    database = DatabaseSettings(
        host=os.getenv("AZURE_DB_HOST"),
        name=os.getenv("AZURE_DB_NAME"),
        user=os.getenv("AZURE_DB_USER"),
        password=os.getenv("AZURE_DB_PASSWORD"),
    )
    return AppSettings(database=database)
