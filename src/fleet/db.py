"""Database connection, schema management and fleet storage."""

import os
import sqlite3
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterator

from .errors import UnknownEquipmentReference
from .models import DEFAULT_KIND, Entry, EntryStatus, Equipment, MeasurementCategory

DEFAULT_DB_PATH = Path.home() / ".local" / "share" / "fleet-metering" / "fleet.db"

SCHEMA = f"""
-- Equipment roster
-- Decimal values are stored as TEXT to keep exact amounts
CREATE TABLE IF NOT EXISTS equipment (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    plate TEXT NOT NULL DEFAULT '',
    kind TEXT NOT NULL DEFAULT '{DEFAULT_KIND}',
    category TEXT NOT NULL CHECK (category IN ('KM', 'H')),
    monthly_rate TEXT NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

-- Daily meter readings (append only)
CREATE TABLE IF NOT EXISTS entries (
    id INTEGER PRIMARY KEY,
    date TEXT NOT NULL,
    equipment_id TEXT NOT NULL,
    start_value TEXT NOT NULL,
    end_value TEXT NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('ACTIVE', 'BROKEN')),
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (equipment_id) REFERENCES equipment(id)
);

CREATE INDEX IF NOT EXISTS idx_entries_equipment ON entries(equipment_id, date);
CREATE INDEX IF NOT EXISTS idx_entries_date ON entries(date);
"""


def get_db_path() -> Path:
    """Get the database path, creating parent directories if needed."""
    db_path = Path(os.environ.get("FLEET_DB_PATH") or DEFAULT_DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


@contextmanager
def get_connection(db_path: Path | None = None) -> Iterator[sqlite3.Connection]:
    """Get a database connection with row factory enabled."""
    path = db_path or get_db_path()
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    with get_connection(db_path) as conn:
        conn.executescript(SCHEMA)
        conn.commit()


def _row_to_equipment(row: sqlite3.Row) -> Equipment:
    return Equipment(
        id=row["id"],
        name=row["name"],
        plate=row["plate"],
        kind=row["kind"],
        category=MeasurementCategory(row["category"]),
        monthly_rate=Decimal(row["monthly_rate"]),
    )


def _row_to_entry(row: sqlite3.Row) -> Entry:
    return Entry(
        date=date.fromisoformat(row["date"]),
        equipment_id=row["equipment_id"],
        start_value=Decimal(row["start_value"]),
        end_value=Decimal(row["end_value"]),
        status=EntryStatus[row["status"]],
    )


def add_equipment(equipment: Equipment, db_path: Path | None = None) -> Equipment:
    """Register an equipment. Raises ValueError on a negative rate or duplicate id."""
    if equipment.monthly_rate < 0:
        raise ValueError(f"Monthly rate must not be negative: {equipment.monthly_rate}")

    with get_connection(db_path) as conn:
        try:
            conn.execute(
                """INSERT INTO equipment (id, name, plate, kind, category, monthly_rate)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    equipment.id,
                    equipment.name,
                    equipment.plate,
                    equipment.kind,
                    equipment.category.value,
                    str(equipment.monthly_rate),
                ),
            )
        except sqlite3.IntegrityError:
            raise ValueError(f"Equipment {equipment.id} already exists")
        conn.commit()
    return equipment


def get_equipment(equipment_id: str, db_path: Path | None = None) -> Equipment | None:
    with get_connection(db_path) as conn:
        row = conn.execute("SELECT * FROM equipment WHERE id = ?", (equipment_id,)).fetchone()
        return _row_to_equipment(row) if row else None


def list_equipment(db_path: Path | None = None) -> list[Equipment]:
    """Return the roster in registration order."""
    with get_connection(db_path) as conn:
        rows = conn.execute("SELECT * FROM equipment ORDER BY rowid").fetchall()
        return [_row_to_equipment(row) for row in rows]


def list_entries(db_path: Path | None = None, equipment_id: str | None = None) -> list[Entry]:
    """Return all entries in insertion order, optionally for one equipment."""
    query = "SELECT * FROM entries"
    params = []
    if equipment_id is not None:
        query += " WHERE equipment_id = ?"
        params.append(equipment_id)
    query += " ORDER BY id"

    with get_connection(db_path) as conn:
        rows = conn.execute(query, params).fetchall()
        return [_row_to_entry(row) for row in rows]


def _insert_entry(conn: sqlite3.Connection, entry: Entry) -> None:
    conn.execute(
        """INSERT INTO entries (date, equipment_id, start_value, end_value, status)
           VALUES (?, ?, ?, ?, ?)""",
        (
            entry.date.isoformat(),
            entry.equipment_id,
            str(entry.start_value),
            str(entry.end_value),
            entry.status.name,
        ),
    )


def append_entry(entry: Entry, db_path: Path | None = None) -> Entry:
    """Append a reading. The caller is responsible for carry-forward."""
    with get_connection(db_path) as conn:
        exists = conn.execute(
            "SELECT 1 FROM equipment WHERE id = ?", (entry.equipment_id,)
        ).fetchone()
        if not exists:
            raise UnknownEquipmentReference(entry.equipment_id)

        _insert_entry(conn, entry)
        conn.commit()
    return entry


def append_with_carry_forward(
    equipment_id: str,
    build: Callable[[Equipment, list[Entry]], Entry],
    db_path: Path | None = None,
) -> Entry:
    """Read an equipment's entries, build the next one and append it atomically.

    `build` receives the equipment and its entries in insertion order. The
    write lock is held from the read until the insert commits, so concurrent
    recordings for the same database are serialized.

    Raises UnknownEquipmentReference if the equipment is not registered.
    """
    with get_connection(db_path) as conn:
        conn.isolation_level = None
        conn.execute("BEGIN IMMEDIATE")
        try:
            row = conn.execute("SELECT * FROM equipment WHERE id = ?", (equipment_id,)).fetchone()
            if row is None:
                raise UnknownEquipmentReference(equipment_id)

            rows = conn.execute(
                "SELECT * FROM entries WHERE equipment_id = ? ORDER BY id", (equipment_id,)
            ).fetchall()
            entry = build(_row_to_equipment(row), [_row_to_entry(r) for r in rows])
            _insert_entry(conn, entry)
        except Exception:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    return entry


def get_stats(db_path: Path | None = None) -> dict:
    """Get database statistics."""
    with get_connection(db_path) as conn:
        stats = {}

        rows = conn.execute(
            "SELECT category, COUNT(*) as count FROM equipment GROUP BY category"
        ).fetchall()
        stats["equipment_by_category"] = {row["category"]: row["count"] for row in rows}
        stats["equipment"] = {"count": sum(stats["equipment_by_category"].values())}

        row = conn.execute(
            "SELECT COUNT(*) as count, MIN(date) as earliest, MAX(date) as latest FROM entries"
        ).fetchone()
        stats["entries"] = {
            "count": row["count"],
            "earliest": row["earliest"],
            "latest": row["latest"],
        }

        rows = conn.execute(
            "SELECT status, COUNT(*) as count FROM entries GROUP BY status"
        ).fetchall()
        stats["entries_by_status"] = {row["status"]: row["count"] for row in rows}

        # Entries whose equipment was never registered (e.g. bad imports)
        row = conn.execute(
            """SELECT COUNT(*) as count FROM entries e
               LEFT JOIN equipment q ON q.id = e.equipment_id
               WHERE q.id IS NULL"""
        ).fetchone()
        stats["orphaned_entries"] = {"count": row["count"]}

        return stats
