from datetime import date, timedelta
from decimal import Decimal

import pytest

from fleet import db
from fleet.models import Entry, EntryStatus, Equipment, MeasurementCategory


def make_equipment(equipment_id="E1", category=MeasurementCategory.DISTANCE, rate="9000", name=None):
    return Equipment(
        id=equipment_id,
        name=name or f"Truck {equipment_id}",
        plate=f"ABC-{equipment_id}",
        category=category,
        monthly_rate=Decimal(rate),
    )


def daily_entries(equipment_id, first_day, deltas, status=EntryStatus.ACTIVE, start="0"):
    """Consecutive carried-forward entries, one per delta."""
    entries = []
    value = Decimal(start)
    for i, delta in enumerate(deltas):
        end = value + Decimal(delta)
        entries.append(Entry(first_day + timedelta(days=i), equipment_id, value, end, status))
        value = end
    return entries


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "fleet.db"
    db.init_db(path)
    return path


@pytest.fixture
def today():
    return date(2026, 3, 15)
