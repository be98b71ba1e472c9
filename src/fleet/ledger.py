"""In-memory ledger of daily meter readings."""

from datetime import date
from typing import Iterable, Iterator

from .models import Entry, Window


class Ledger:
    """Ordered collection of entries answering per-equipment queries.

    Insertion order is kept so entries sharing a date stay in the order
    they were recorded. The ledger applies no business rules.
    """

    def __init__(self, entries: Iterable[Entry] = ()):
        self._entries: list[Entry] = list(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def append(self, entry: Entry) -> Entry:
        self._entries.append(entry)
        return entry

    def _for_equipment(self, equipment_id: str) -> list[Entry]:
        # sorted() is stable, so equal dates keep insertion order
        return sorted(
            (e for e in self._entries if e.equipment_id == equipment_id),
            key=lambda e: e.date,
        )

    def entries_for(self, equipment_id: str, window: Window) -> Iterator[Entry]:
        """Yield one equipment's entries inside the window, oldest first."""
        for entry in self._for_equipment(equipment_id):
            if window.contains(entry.date):
                yield entry

    def most_recent_before(self, equipment_id: str, day: date) -> Entry | None:
        """Latest entry dated strictly before `day`.

        When several entries share that date the last one recorded wins.
        """
        found = None
        for entry in self._for_equipment(equipment_id):
            if entry.date >= day:
                break
            found = entry
        return found

    def latest(self, equipment_id: str) -> Entry | None:
        """Most recent entry for the equipment regardless of date."""
        entries = self._for_equipment(equipment_id)
        return entries[-1] if entries else None
