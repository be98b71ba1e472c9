"""Tests for report serialization and the printable HTML report."""

from datetime import date
from decimal import Decimal

import pytest
from conftest import daily_entries, make_equipment

from fleet.analysis.aggregation import compute_report, daily_production
from fleet.models import EntryStatus, MeasurementCategory, Window
from fleet.reports.printable import generate_report_html
from fleet.reports.summary import format_report_text, money, report_to_dict

WINDOW = Window(date(2026, 1, 1), date(2026, 1, 31))


@pytest.fixture
def sample():
    roster = [
        make_equipment("E1", rate="9000", name="Volvo FH"),
        make_equipment("H1", MeasurementCategory.DURATION, rate="10000", name="Loader <CAT>"),
    ]
    entries = (
        daily_entries("E1", date(2026, 1, 1), [50] * 10)
        + daily_entries("H1", date(2026, 1, 1), [11] * 20)
        + daily_entries("E1", date(2026, 1, 20), [0], status=EntryStatus.BROKEN, start="500")
    )
    report = compute_report(roster, entries, WINDOW, today=date(2026, 1, 20))
    return roster, entries, report


def test_money_rounds_half_up():
    assert money(Decimal("6666.665")) == Decimal("6666.67")
    assert money(Decimal("0.004")) == Decimal("0.00")


def test_report_to_dict(sample):
    _, _, report = sample
    data = report_to_dict(report)

    assert data["period"] == {"start": "2026-01-01", "end": "2026-01-31", "days": 31}
    assert data["fleet"]["active_now_label"] == "1/2"
    assert data["fleet"]["unavailability_percent"] == 50
    assert data["totals"]["production_hours"] == 220.0
    assert data["totals"]["revenue"] == 10666.67

    truck = data["distance"][0]
    assert truck["amount_due"] == 3000.0
    assert truck["broken_days"] == 1
    assert truck["availability_percent"] == 90.9

    loader = data["duration"][0]
    assert loader["base_amount"] == 6666.67
    assert loader["overtime_amount"] == 1000.0
    assert loader["amount_due"] == 7666.67


def test_format_report_text(sample):
    _, _, report = sample
    text = format_report_text(report_to_dict(report))

    assert "Fleet Report: 2026-01-01 to 2026-01-31" in text
    assert "Active now: 1/2" in text
    assert "Unavailability: 50%" in text
    assert "Hours accumulated: 220.0h" in text
    assert "Estimated revenue: 10,666.67" in text
    assert "overtime 1,000.00" in text
    assert "unknown equipment" not in text


def test_generate_report_html(sample):
    roster, entries, report = sample
    html = generate_report_html(report, daily_production(roster, entries, WINDOW))

    assert html.startswith("<!DOCTYPE html>")
    assert "Loader &lt;CAT&gt;" in html
    assert "7,666.67" in html
    assert '"day": "2026-01-01"' in html
