"""End-to-end tests for the command-line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from fleet import db
from fleet.cli import cli
from fleet.collectors.sheets_api import SheetsApiError


@pytest.fixture
def run(db_path):
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(cli, ["--db-path", str(db_path), *args])

    return invoke


def test_register_record_and_report(run, db_path):
    assert run("equipment", "add", "E1", "--name", "Volvo", "--rate", "9000").exit_code == 0
    assert run(
        "equipment", "add", "H1", "--name", "Loader", "--category", "H", "--rate", "10000"
    ).exit_code == 0

    assert run("entry", "add", "E1", "--date", "2026-01-01", "--end", "120.0").exit_code == 0
    assert run("entry", "add", "E1", "--date", "2026-01-02", "--end", "170").exit_code == 0
    assert run("entry", "add", "E1", "--date", "2026-01-03", "--broken").exit_code == 0
    result = run("entry", "add", "H1", "--date", "2026-01-02", "--hours", "8", "--minutes", "30")
    assert result.exit_code == 0, result.output

    entries = db.list_entries(db_path, equipment_id="E1")
    assert [str(e.start_value) for e in entries] == ["0", "120.0", "170"]

    result = run("report", "--from", "2026-01-01", "--to", "2026-01-31", "--json")
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)

    assert data["distance"][0]["production"] == 170.0
    assert data["distance"][0]["active_days"] == 2
    assert data["distance"][0]["amount_due"] == 600.0
    assert data["duration"][0]["production"] == 8.5
    assert data["totals"]["production_hours"] == 8.5


def test_entry_going_backwards_fails(run):
    run("equipment", "add", "E1", "--name", "Volvo", "--rate", "9000")
    run("entry", "add", "E1", "--date", "2026-01-01", "--end", "100")

    result = run("entry", "add", "E1", "--date", "2026-01-02", "--end", "90")

    assert result.exit_code == 1
    assert "Negative production" in result.output


def test_entry_for_unknown_equipment_fails(run):
    result = run("entry", "add", "ghost", "--end", "10")
    assert result.exit_code == 1
    assert "Unknown equipment" in result.output


def test_report_rejects_inverted_window(run):
    result = run("report", "--from", "2026-02-01", "--to", "2026-01-01")
    assert result.exit_code == 1
    assert "Invalid window" in result.output


def test_report_writes_html(run, tmp_path):
    run("equipment", "add", "E1", "--name", "Volvo", "--rate", "9000")
    out = tmp_path / "report.html"

    result = run("report", "--days", "7", "--html", str(out))

    assert result.exit_code == 0, result.output
    assert "Fleet Report" in out.read_text()


def test_stats_and_listing(run):
    run("equipment", "add", "E1", "--name", "Volvo", "--plate", "XYZ-1234", "--rate", "9000")

    assert "Volvo" in run("equipment", "list").output
    assert "Entries" in run("database", "stats").output
    assert "30 days" in run("config").output


def test_equipment_list_shows_last_reading(run):
    run("equipment", "add", "E1", "--name", "Volvo", "--rate", "9000")
    run("entry", "add", "E1", "--date", "2026-01-01", "--end", "120")
    run("entry", "add", "E1", "--date", "2026-01-02", "--end", "175")

    output = run("equipment", "list").output

    assert "175" in output
    assert "02/01/2026" in output


def test_report_rejects_zero_days(run):
    result = run("report", "--days", "0")

    assert result.exit_code == 1
    assert "days must be at least 1" in result.output


def test_entry_add_pushes_to_spreadsheet(run, db_path):
    run("equipment", "add", "E1", "--name", "Volvo", "--rate", "9000")

    with patch("fleet.collectors.sheets_api.push_entry") as push:
        result = run(
            "entry", "add", "E1", "--date", "2026-01-01", "--end", "120",
            "--push", "--url", "https://example.test/exec",
        )

    assert result.exit_code == 0, result.output
    push.assert_called_once_with(db.list_entries(db_path)[0], "https://example.test/exec")


def test_entry_add_without_push_stays_local(run):
    run("equipment", "add", "E1", "--name", "Volvo", "--rate", "9000")

    with patch("fleet.collectors.sheets_api.push_entry") as push:
        run("entry", "add", "E1", "--date", "2026-01-01", "--end", "120")

    push.assert_not_called()


def test_equipment_add_push_failure_keeps_local_copy(run, db_path):
    with patch(
        "fleet.collectors.sheets_api.push_equipment",
        side_effect=SheetsApiError("HTTP error from spreadsheet API: 500"),
    ) as push:
        result = run("equipment", "add", "E1", "--name", "Volvo", "--rate", "9000", "--push")

    assert result.exit_code == 1
    assert "not pushed" in result.output
    assert push.call_args.args[0].id == "E1"
    assert db.get_equipment("E1", db_path) is not None
