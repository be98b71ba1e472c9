"""Construction of new daily readings with carry-forward.

A new entry starts where the previous one for the same equipment ended.
Hour-metered equipment is recorded as hours and minutes worked; the end
value is derived and rounded to two decimals only when the entry is built.
Odometer equipment is recorded with the end value read by the operator.
"""

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path

from . import db
from .errors import NegativeProduction
from .ledger import Ledger
from .models import Entry, EntryStatus, Equipment, MeasurementCategory

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
MINUTES_PER_HOUR = 60


def carry_forward_start(ledger: Ledger, equipment_id: str, day: date) -> Decimal:
    """Start value for a new entry: the previous entry's end, or 0."""
    previous = ledger.most_recent_before(equipment_id, day)
    if previous is None:
        return Decimal(0)
    return previous.end_value


def build_duration_entry(
    ledger: Ledger,
    equipment: Equipment,
    day: date,
    hours: int | Decimal = 0,
    minutes: int | Decimal = 0,
    status: EntryStatus = EntryStatus.ACTIVE,
) -> Entry:
    """Build an hour-meter entry from the time worked on `day`."""
    hours = Decimal(hours)
    minutes = Decimal(minutes)
    start = carry_forward_start(ledger, equipment.id, day)

    if hours < 0 or minutes < 0:
        raise NegativeProduction(equipment.id, day, start, start + hours + minutes / MINUTES_PER_HOUR)
    if minutes >= MINUTES_PER_HOUR:
        raise ValueError(f"minutes must be below {MINUTES_PER_HOUR}, got {minutes}")

    end = (start + hours + minutes / MINUTES_PER_HOUR).quantize(CENTS, rounding=ROUND_HALF_UP)
    return Entry(date=day, equipment_id=equipment.id, start_value=start, end_value=end, status=status)


def build_distance_entry(
    ledger: Ledger,
    equipment: Equipment,
    day: date,
    end_value: Decimal | None = None,
    status: EntryStatus = EntryStatus.ACTIVE,
    start_value: Decimal | None = None,
) -> Entry:
    """Build an odometer entry from the end value read on `day`.

    The start value is carried forward unless given explicitly. A broken
    day may omit the end value, which then equals the start value.
    """
    start = Decimal(start_value) if start_value is not None else carry_forward_start(ledger, equipment.id, day)

    if end_value is None:
        if status is not EntryStatus.BROKEN:
            raise ValueError("end_value is required for an active distance entry")
        end = start
    else:
        end = Decimal(end_value)

    if end < start:
        raise NegativeProduction(equipment.id, day, start, end)

    return Entry(date=day, equipment_id=equipment.id, start_value=start, end_value=end, status=status)


def build_entry(
    ledger: Ledger,
    equipment: Equipment,
    day: date,
    status: EntryStatus = EntryStatus.ACTIVE,
    end_value: Decimal | None = None,
    hours: int | Decimal = 0,
    minutes: int | Decimal = 0,
) -> Entry:
    """Build an entry using the input style of the equipment's category."""
    if equipment.category is MeasurementCategory.DURATION:
        return build_duration_entry(ledger, equipment, day, hours, minutes, status)
    if equipment.category is MeasurementCategory.DISTANCE:
        return build_distance_entry(ledger, equipment, day, end_value, status)
    raise ValueError(f"Unsupported measurement category: {equipment.category}")


def record_entry(
    equipment_id: str,
    day: date,
    status: EntryStatus = EntryStatus.ACTIVE,
    end_value: Decimal | None = None,
    hours: int | Decimal = 0,
    minutes: int | Decimal = 0,
    db_path: Path | None = None,
) -> Entry:
    """Build an entry against the stored ledger and append it.

    The carry-forward lookup and the insert run in one transaction.

    Raises UnknownEquipmentReference if the equipment is not registered.
    """

    def build(equipment: Equipment, entries: list[Entry]) -> Entry:
        return build_entry(Ledger(entries), equipment, day, status, end_value, hours, minutes)

    entry = db.append_with_carry_forward(equipment_id, build, db_path)

    logger.info(
        "Recorded %s entry for %s on %s: %s -> %s",
        entry.status.name, equipment_id, day, entry.start_value, entry.end_value,
    )
    return entry
