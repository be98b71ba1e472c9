"""Spreadsheet web app collector.

The fleet's shared spreadsheet is exposed through a small web app:
GET ?action=getEquipments / ?action=getEntries return JSON lists, and
POST {"action": "addEquipment" | "addEntry", ...} appends a row.
Field names are the spreadsheet's column names (Portuguese).
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import httpx

from .. import db
from ..config import get_api_url
from ..models import DEFAULT_KIND, Entry, EntryStatus, Equipment, MeasurementCategory

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0


class SheetsApiError(Exception):
    """Base exception for spreadsheet API errors."""
    pass


def _request(method: str, base_url: str | None, **kwargs) -> Any:
    url = base_url or get_api_url()
    try:
        # Apps Script answers through a redirect to googleusercontent.com
        with httpx.Client(follow_redirects=True, timeout=REQUEST_TIMEOUT) as client:
            response = client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPStatusError as e:
        raise SheetsApiError(f"HTTP error from spreadsheet API: {e.response.status_code}")
    except httpx.HTTPError as e:
        raise SheetsApiError(f"Network error connecting to spreadsheet API: {e}")
    except ValueError as e:
        raise SheetsApiError(f"Invalid JSON from spreadsheet API: {e}")


def _decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal(0)
    # Spreadsheet cells may use a decimal comma
    return Decimal(str(value).replace(",", "."))


def parse_equipment(row: dict) -> Equipment:
    """Convert a spreadsheet equipment row. Raises ValueError on bad data."""
    try:
        return Equipment(
            id=str(row["id"]),
            name=str(row.get("nome", "")),
            plate=str(row.get("placa", "")),
            kind=str(row.get("tipo") or DEFAULT_KIND),
            category=MeasurementCategory.parse(row["categoria"]),
            monthly_rate=_decimal(row.get("valor_mensal")),
        )
    except (KeyError, InvalidOperation) as e:
        raise ValueError(f"Invalid equipment row {row!r}: {e}")


def parse_entry(row: dict) -> Entry:
    """Convert a spreadsheet entry row. Raises ValueError on bad data."""
    try:
        # Dates may arrive as full ISO timestamps
        day = date.fromisoformat(str(row["data"])[:10])
        return Entry(
            date=day,
            equipment_id=str(row["id_equipamento"]),
            start_value=_decimal(row.get("valor_inicial")),
            end_value=_decimal(row.get("valor_final")),
            status=EntryStatus.parse(row.get("status") or EntryStatus.ACTIVE.value),
        )
    except (KeyError, InvalidOperation) as e:
        raise ValueError(f"Invalid entry row {row!r}: {e}")


def _parse_rows(rows: Any, parser) -> tuple[list, int]:
    if not isinstance(rows, list):
        raise SheetsApiError(f"Expected a list from spreadsheet API, got {type(rows).__name__}")

    parsed = []
    skipped = 0
    for row in rows:
        try:
            parsed.append(parser(row))
        except (ValueError, TypeError) as e:
            logger.warning("Skipping row: %s", e)
            skipped += 1
    return parsed, skipped


def fetch_equipment(base_url: str | None = None) -> list[Equipment]:
    """Fetch the equipment roster. Rows that fail to parse are skipped."""
    rows = _request("GET", base_url, params={"action": "getEquipments"})
    equipment, _ = _parse_rows(rows, parse_equipment)
    return equipment


def fetch_entries(base_url: str | None = None) -> list[Entry]:
    """Fetch all entries. Rows that fail to parse are skipped."""
    rows = _request("GET", base_url, params={"action": "getEntries"})
    entries, _ = _parse_rows(rows, parse_entry)
    return entries


def push_equipment(equipment: Equipment, base_url: str | None = None) -> Any:
    """Append an equipment row to the spreadsheet."""
    return _request(
        "POST",
        base_url,
        json={
            "action": "addEquipment",
            "nome": equipment.name,
            "placa": equipment.plate,
            "tipo": equipment.kind,
            "categoria": equipment.category.value,
            "valorMensal": str(equipment.monthly_rate),
        },
    )


def push_entry(entry: Entry, base_url: str | None = None) -> Any:
    """Append an entry row to the spreadsheet."""
    return _request(
        "POST",
        base_url,
        json={
            "action": "addEntry",
            "data": entry.date.isoformat(),
            "idEquipamento": entry.equipment_id,
            "valorInicial": str(entry.start_value),
            "valorFinal": str(entry.end_value),
            "status": entry.status.value,
        },
    )


def _entry_key(entry: Entry) -> tuple:
    return (entry.date, entry.equipment_id, entry.start_value, entry.end_value, entry.status)


def import_from_api(base_url: str | None = None, db_path: Path | None = None) -> dict:
    """Copy the spreadsheet's equipment and entries into the local database.

    Equipment already present (same id) and entries identical to a stored
    one are skipped, so the import can be repeated.

    Returns dict with 'imported' and 'skipped' counts per kind.
    """
    equipment = fetch_equipment(base_url)
    entries = fetch_entries(base_url)

    result = {"equipment": {"imported": 0, "skipped": 0}, "entries": {"imported": 0, "skipped": 0}}

    known = {eq.id for eq in db.list_equipment(db_path)}
    for eq in equipment:
        if eq.id in known:
            result["equipment"]["skipped"] += 1
            continue
        try:
            db.add_equipment(eq, db_path)
        except ValueError as e:
            logger.warning("Skipping equipment %s: %s", eq.id, e)
            result["equipment"]["skipped"] += 1
            continue
        known.add(eq.id)
        result["equipment"]["imported"] += 1

    existing = {_entry_key(e) for e in db.list_entries(db_path)}
    for entry in entries:
        if _entry_key(entry) in existing or entry.equipment_id not in known:
            result["entries"]["skipped"] += 1
            continue
        db.append_entry(entry, db_path)
        existing.add(_entry_key(entry))
        result["entries"]["imported"] += 1

    logger.info("Spreadsheet import finished: %s", result)
    return result
