"""Tests for building new readings with carry-forward."""

import threading
import time
from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from conftest import make_equipment

from fleet import db
from fleet.errors import NegativeProduction, UnknownEquipmentReference
from fleet.ledger import Ledger
from fleet.models import Entry, EntryStatus, MeasurementCategory
from fleet.readings import (
    build_distance_entry,
    build_duration_entry,
    build_entry,
    carry_forward_start,
    record_entry,
)

TRUCK = make_equipment("E1", MeasurementCategory.DISTANCE)
LOADER = make_equipment("H1", MeasurementCategory.DURATION, rate="10000")


def test_carry_forward_from_previous_entry():
    ledger = Ledger([Entry(date(2026, 1, 1), "E1", Decimal("100.0"), Decimal("120.0"))])

    new = build_distance_entry(ledger, TRUCK, date(2026, 1, 2), end_value=Decimal("150"))

    assert new.start_value == Decimal("120.0")
    assert new.production == Decimal(30)


def test_carry_forward_defaults_to_zero():
    assert carry_forward_start(Ledger(), "E1", date(2026, 1, 1)) == 0


def test_carry_forward_ignores_same_day_and_later_entries():
    ledger = Ledger([
        Entry(date(2026, 1, 1), "E1", Decimal(0), Decimal(10)),
        Entry(date(2026, 1, 5), "E1", Decimal(10), Decimal(20)),
        Entry(date(2026, 1, 9), "E1", Decimal(20), Decimal(30)),
    ])
    assert carry_forward_start(ledger, "E1", date(2026, 1, 5)) == Decimal(10)


def test_duration_entry_adds_hours_and_minutes():
    ledger = Ledger([Entry(date(2026, 1, 1), "H1", Decimal(0), Decimal(100))])

    new = build_duration_entry(ledger, LOADER, date(2026, 1, 2), hours=2, minutes=30)

    assert new.start_value == Decimal(100)
    assert new.end_value == Decimal("102.50")


def test_duration_entry_rounds_to_cents_at_commit():
    new = build_duration_entry(Ledger(), LOADER, date(2026, 1, 2), hours=1, minutes=1)
    assert new.end_value == Decimal("1.02")

    new = build_duration_entry(Ledger(), LOADER, date(2026, 1, 2), hours=0, minutes=20)
    assert new.end_value == Decimal("0.33")


def test_duration_entry_rejects_bad_time():
    with pytest.raises(ValueError):
        build_duration_entry(Ledger(), LOADER, date(2026, 1, 2), hours=1, minutes=60)
    with pytest.raises(NegativeProduction):
        build_duration_entry(Ledger(), LOADER, date(2026, 1, 2), hours=-1)


def test_distance_entry_must_not_go_backwards():
    ledger = Ledger([Entry(date(2026, 1, 1), "E1", Decimal(0), Decimal(500))])

    with pytest.raises(NegativeProduction) as exc:
        build_distance_entry(ledger, TRUCK, date(2026, 1, 2), end_value=Decimal(499))

    assert exc.value.start_value == Decimal(500)
    assert exc.value.end_value == Decimal(499)


def test_broken_distance_entry_defaults_to_zero_production():
    ledger = Ledger([Entry(date(2026, 1, 1), "E1", Decimal(0), Decimal(500))])

    new = build_distance_entry(ledger, TRUCK, date(2026, 1, 2), status=EntryStatus.BROKEN)

    assert new.start_value == new.end_value == Decimal(500)
    assert new.status is EntryStatus.BROKEN


def test_active_distance_entry_requires_end_value():
    with pytest.raises(ValueError):
        build_distance_entry(Ledger(), TRUCK, date(2026, 1, 2))


def test_build_entry_dispatches_by_category():
    day = date(2026, 1, 2)
    assert build_entry(Ledger(), LOADER, day, hours=3).end_value == Decimal("3.00")
    assert build_entry(Ledger(), TRUCK, day, end_value=Decimal(42)).end_value == Decimal(42)


def test_record_entry_carries_forward_in_database(db_path):
    db.add_equipment(TRUCK, db_path)

    first = record_entry("E1", date(2026, 1, 1), end_value=Decimal("120.0"), db_path=db_path)
    second = record_entry("E1", date(2026, 1, 2), end_value=Decimal("180.5"), db_path=db_path)

    assert first.start_value == 0
    assert second.start_value == Decimal("120.0")
    assert db.list_entries(db_path) == [first, second]


def test_record_entry_unknown_equipment(db_path):
    with pytest.raises(UnknownEquipmentReference):
        record_entry("missing", date(2026, 1, 1), end_value=Decimal(1), db_path=db_path)


def test_record_entry_is_serialized_with_concurrent_recordings(db_path):
    """A recording waits for an in-flight one instead of reading a stale predecessor."""
    db.add_equipment(TRUCK, db_path)
    record_entry("E1", date(2026, 1, 1), end_value=Decimal("100"), db_path=db_path)

    building = threading.Event()
    release = threading.Event()

    def slow_build(ledger, equipment, day, *args):
        if day == date(2026, 1, 2):
            building.set()
            release.wait(timeout=5)
        return build_entry(ledger, equipment, day, *args)

    errors = []

    def record(day, end_value):
        try:
            record_entry("E1", day, end_value=Decimal(end_value), db_path=db_path)
        except Exception as e:
            errors.append(e)

    with patch("fleet.readings.build_entry", side_effect=slow_build):
        first = threading.Thread(target=record, args=(date(2026, 1, 2), "150"))
        first.start()
        assert building.wait(timeout=5)

        second = threading.Thread(target=record, args=(date(2026, 1, 3), "200"))
        second.start()
        time.sleep(0.2)
        release.set()

        first.join(timeout=10)
        second.join(timeout=10)

    assert errors == []
    entries = {e.date: e for e in db.list_entries(db_path)}
    assert entries[date(2026, 1, 2)].start_value == Decimal("100")
    assert entries[date(2026, 1, 3)].start_value == Decimal("150")


def test_record_entry_rolls_back_on_failure(db_path):
    db.add_equipment(TRUCK, db_path)
    record_entry("E1", date(2026, 1, 1), end_value=Decimal("100"), db_path=db_path)

    with pytest.raises(NegativeProduction):
        record_entry("E1", date(2026, 1, 2), end_value=Decimal("90"), db_path=db_path)

    assert len(db.list_entries(db_path)) == 1
    # The write lock is released after the failure
    record_entry("E1", date(2026, 1, 2), end_value=Decimal("110"), db_path=db_path)
    assert len(db.list_entries(db_path)) == 2
