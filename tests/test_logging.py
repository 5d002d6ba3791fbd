import logging

import pytest

from tender_track import logging as tt_logging


@pytest.fixture
def fresh_root(monkeypatch):
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    monkeypatch.setattr(tt_logging, "_configured_level", None)
    yield root
    for handler in root.handlers[len(handlers):]:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_writes_to_rotating_file(fresh_root, tmp_path):
    log_file = tmp_path / "logs" / "gateway.log"

    tt_logging.configure_logging("debug", log_path=log_file)
    logging.getLogger("tender_track.test").warning("Database connection lost")
    for handler in fresh_root.handlers:
        handler.flush()

    assert fresh_root.level == logging.DEBUG
    assert "Database connection lost" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger("httpx").level == logging.WARNING


def test_second_call_only_changes_level(fresh_root):
    before = len(fresh_root.handlers)
    tt_logging.configure_logging("INFO", to_file=False)
    tt_logging.configure_logging("ERROR", to_file=False)

    assert len(fresh_root.handlers) == before + 1
    assert fresh_root.level == logging.ERROR
