"""CSV importer for equipment rosters and reading logs.

Equipment CSV columns: id, name, plate, kind, category, monthly_rate
Entries CSV columns: date, equipment_id, start_value, end_value, status

Category accepts KM/H or DISTANCE/DURATION; status accepts ACTIVE/BROKEN.
Malformed rows are logged and skipped; the rest of the file is imported.
"""

import csv
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Iterator

from .. import db
from ..errors import UnknownEquipmentReference
from ..models import DEFAULT_KIND, Entry, EntryStatus, Equipment, MeasurementCategory

logger = logging.getLogger(__name__)


def parse_equipment_row(row: dict) -> Equipment:
    """Convert one CSV row. Raises ValueError on bad data."""
    try:
        return Equipment(
            id=row["id"].strip(),
            name=row["name"].strip(),
            plate=(row.get("plate") or "").strip(),
            kind=(row.get("kind") or DEFAULT_KIND).strip(),
            category=MeasurementCategory.parse(row["category"]),
            monthly_rate=Decimal(row["monthly_rate"]),
        )
    except (KeyError, AttributeError, TypeError, InvalidOperation) as e:
        # Short rows come back from DictReader with None values
        raise ValueError(f"invalid equipment row: {e!r}")


def parse_entry_row(row: dict) -> Entry:
    """Convert one CSV row. Raises ValueError on bad data."""
    try:
        return Entry(
            date=date.fromisoformat(row["date"].strip()),
            equipment_id=row["equipment_id"].strip(),
            start_value=Decimal(row["start_value"]),
            end_value=Decimal(row["end_value"]),
            status=EntryStatus.parse(row.get("status") or "ACTIVE"),
        )
    except (KeyError, AttributeError, TypeError, InvalidOperation) as e:
        raise ValueError(f"invalid entry row: {e!r}")


def _parse_file(csv_path: Path, parser: Callable[[dict], object]) -> Iterator[object | None]:
    """Yield parsed rows, or None for each row that fails to parse."""
    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        for line, row in enumerate(reader, start=2):
            try:
                yield parser(row)
            except ValueError as e:
                logger.warning("Skipping %s:%d: %s", csv_path, line, e)
                yield None


def parse_equipment_csv(csv_path: Path) -> tuple[list[Equipment], int]:
    """Parse an equipment CSV file. Returns (equipment, skipped row count)."""
    rows = list(_parse_file(csv_path, parse_equipment_row))
    return [r for r in rows if r is not None], rows.count(None)


def parse_entries_csv(csv_path: Path) -> tuple[list[Entry], int]:
    """Parse an entries CSV file. Returns (entries, skipped row count)."""
    rows = list(_parse_file(csv_path, parse_entry_row))
    return [r for r in rows if r is not None], rows.count(None)


def import_equipment(csv_path: Path, db_path: Path | None = None) -> dict:
    """Import equipment from CSV.

    Returns dict with 'imported' and 'skipped' counts.
    """
    imported = 0
    skipped = 0

    for equipment in _parse_file(csv_path, parse_equipment_row):
        if equipment is None:
            skipped += 1
            continue
        try:
            db.add_equipment(equipment, db_path)
            imported += 1
        except ValueError as e:
            # Duplicate id or negative rate
            logger.warning("Skipping equipment %s: %s", equipment.id, e)
            skipped += 1

    return {"imported": imported, "skipped": skipped}


def import_entries(csv_path: Path, db_path: Path | None = None) -> dict:
    """Import readings from CSV as stored, without carry-forward.

    Returns dict with 'imported' and 'skipped' counts.
    """
    imported = 0
    skipped = 0

    for entry in _parse_file(csv_path, parse_entry_row):
        if entry is None:
            skipped += 1
            continue
        try:
            db.append_entry(entry, db_path)
            imported += 1
        except UnknownEquipmentReference as e:
            logger.warning("Skipping entry on %s: %s", entry.date, e)
            skipped += 1

    return {"imported": imported, "skipped": skipped}
