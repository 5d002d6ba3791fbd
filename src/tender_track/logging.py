from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import DATA_DIR

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
# per-request chatter from the HTTP stack drowns out reconnect messages
NOISY_LOGGERS = ("httpx", "httpcore", "hypercorn.access")

_configured_level: Optional[int] = None


def configure_logging(level: str = "INFO", *, log_path: Optional[Path] = None, to_file: bool = True) -> None:
    """Send records to the console and, unless disabled, a rotating file in the data dir.

    Calling again only adjusts the level; handlers are installed once.
    """

    global _configured_level
    resolved = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(resolved)
    if _configured_level is not None:
        _configured_level = resolved
        return

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    log_file = None
    if to_file:
        log_file = log_path or DATA_DIR / "tender_track.log"
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(str(log_file), maxBytes=1_000_000, backupCount=5, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))

    _configured_level = resolved
    logging.getLogger(__name__).debug("Logging configured at %s; file: %s", logging.getLevelName(resolved), log_file)


__all__ = ["configure_logging"]
