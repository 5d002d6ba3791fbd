import json

import pytest

from conftest import FlakyFactory
from tender_track import cli
from tender_track.client.vendors import SEED_VENDORS
from tender_track.config import AppSettings, DatabaseSettings
from tender_track.data import ConnectionManager


@pytest.fixture
def gateway(timelines_api, monkeypatch):
    class _Api:
        def __init__(self, url):
            self.url = url

        def __enter__(self):
            return timelines_api

        def __exit__(self, *exc_info):
            return None

    monkeypatch.setattr(cli, "DatabaseApi", _Api)
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
    return timelines_api


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_timelines_json(gateway, capsys):
    assert cli.main(["timelines", "--json"]) == 0

    rows = json.loads(capsys.readouterr().out)
    assert len(rows) == len(SEED_VENDORS)
    assert {row["company_name"] for row in rows} == {vendor.company_name for vendor in SEED_VENDORS}


def test_add_vendor_validation_error_exits_nonzero(gateway):
    assert cli.main(["add-vendor", "--name", "Acme", "--email", "a@b.com"]) == 1
    assert gateway.statements == []


def test_update_marks_milestone(gateway, capsys):
    assert cli.main(["update", "3", "nda_signed", "--date", "2025-01-20"]) == 0

    row = next(row for row in gateway.rows if row["company_id"] == "3")
    assert row["nda_signed_completed"] is True
    assert row["nda_signed_date"].isoformat() == "2025-01-20T00:00:00+00:00"
    assert "[x] NDA Signed" in capsys.readouterr().out


def test_update_without_date_keeps_stored_date(gateway):
    assert cli.main(["update", "3", "rfi_due"]) == 0

    row = next(row for row in gateway.rows if row["company_id"] == "3")
    assert row["rfi_due_completed"] is True
    assert row["rfi_due_date"] is not None


def test_update_clear_date(gateway):
    assert cli.main(["update", "3", "rfi_due", "--clear-date", "--incomplete"]) == 0

    row = next(row for row in gateway.rows if row["company_id"] == "3")
    assert row["rfi_due_date"] is None
    assert row["rfi_due_completed"] is False


def test_init_db_reports_connection_error(monkeypatch, caplog):
    settings = AppSettings(database=DatabaseSettings(host="db", name="tenders", user="app", password="secret"))
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(
        cli.ConnectionManager,
        "from_settings",
        lambda _settings, **kwargs: ConnectionManager(FlakyFactory(failures=1), **kwargs),
    )

    assert cli.main(["init-db"]) == 1
    assert "could not connect to server" in caplog.text
