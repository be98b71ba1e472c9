"""Utilization and billing aggregation over a date window."""

import logging
from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from ..billing import DEFAULT_PARAMETERS, bill
from ..config import BillingParameters
from ..errors import InvalidWindow, NegativeProduction
from ..models import (
    Entry,
    EntryStatus,
    Equipment,
    EquipmentStats,
    MeasurementCategory,
    Report,
    Window,
)

logger = logging.getLogger(__name__)


def equipment_stats(
    equipment: Equipment,
    entries: Iterable[Entry],
    params: BillingParameters = DEFAULT_PARAMETERS,
) -> EquipmentStats:
    """Production, day counts and charge for one equipment.

    `entries` must already be filtered to the window and to this equipment.
    """
    production = Decimal(0)
    active_days = 0
    broken_days = 0

    for entry in entries:
        delta = entry.production
        if delta < 0:
            raise NegativeProduction(equipment.id, entry.date, entry.start_value, entry.end_value)
        production += delta
        if entry.status is EntryStatus.ACTIVE:
            active_days += 1
        else:
            broken_days += 1

    charge = bill(equipment, active_days, production, params)
    return EquipmentStats(
        equipment=equipment,
        production=production,
        active_days=active_days,
        broken_days=broken_days,
        base_amount=charge.base,
        overtime_amount=charge.overtime,
    )


def _ratio(part: int, whole: int) -> Decimal:
    if whole == 0:
        return Decimal(0)
    return Decimal(part) / Decimal(whole)


def _percent(part: int, whole: int) -> int:
    """Percentage rounded half-up to the nearest integer."""
    return int((_ratio(part, whole) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_report(
    equipment: list[Equipment],
    entries: list[Entry],
    window: Window,
    today: date | None = None,
    params: BillingParameters = DEFAULT_PARAMETERS,
) -> Report:
    """Compute fleet KPIs and per-category breakdowns for a window.

    Entries outside the window are ignored entirely. Entries referencing
    equipment missing from the roster are excluded and counted in
    `orphaned_entries`. The "broken today" signal looks at `today`
    (default: the current date) regardless of the window.

    Raises InvalidWindow, NegativeProduction or NegativeRate; no partial
    report is ever returned.
    """
    if window.start > window.end:
        raise InvalidWindow(window.start, window.end)
    today = today or date.today()

    roster_ids = {eq.id for eq in equipment}

    grouped: dict[str, list[Entry]] = defaultdict(list)
    broken_today_ids = set()
    orphaned = 0

    for entry in entries:
        if entry.equipment_id not in roster_ids:
            if window.contains(entry.date):
                orphaned += 1
            continue
        if entry.date == today and entry.status is EntryStatus.BROKEN:
            broken_today_ids.add(entry.equipment_id)
        if window.contains(entry.date):
            grouped[entry.equipment_id].append(entry)

    if orphaned:
        logger.warning("Excluded %d entries referencing unknown equipment", orphaned)

    distance = []
    duration = []
    for eq in equipment:
        stats = equipment_stats(eq, grouped.get(eq.id, []), params)
        if eq.category is MeasurementCategory.DISTANCE:
            distance.append(stats)
        elif eq.category is MeasurementCategory.DURATION:
            duration.append(stats)
        else:
            raise ValueError(f"Unsupported measurement category: {eq.category}")

    total = len(equipment)
    broken_today = len(broken_today_ids)

    return Report(
        window=window,
        today=today,
        equipment_count=total,
        active_now=total - broken_today,
        broken_today=broken_today,
        fleet_active_now=_ratio(total - broken_today, total),
        unavailability_rate=_percent(broken_today, total),
        total_production_hours=sum((s.production for s in duration), Decimal(0)),
        total_revenue=sum((s.amount_due for s in distance + duration), Decimal(0)),
        distance=tuple(distance),
        duration=tuple(duration),
        orphaned_entries=orphaned,
    )


def recent_production(
    equipment: list[Equipment], entries: list[Entry], limit: int = 10
) -> list[dict]:
    """Last `limit` entries by date with their production.

    Feeds the "recent production" chart. Entries for unknown equipment are
    listed under their raw id.
    """
    names = {eq.id: eq.name for eq in equipment}
    latest = sorted(entries, key=lambda e: e.date)[-limit:] if limit > 0 else []
    return [
        {
            "date": e.date,
            "equipment_id": e.equipment_id,
            "name": names.get(e.equipment_id, e.equipment_id),
            "production": e.production,
            "status": e.status,
        }
        for e in latest
    ]


def daily_production(
    equipment: list[Equipment], entries: list[Entry], window: Window
) -> list[dict]:
    """Production per day and category inside the window, oldest day first."""
    categories = {eq.id: eq.category for eq in equipment}
    days: dict[date, dict[MeasurementCategory, Decimal]] = {}

    for entry in entries:
        category = categories.get(entry.equipment_id)
        if category is None or not window.contains(entry.date):
            continue
        totals = days.setdefault(
            entry.date, {c: Decimal(0) for c in MeasurementCategory}
        )
        totals[category] += entry.production

    return [
        {
            "date": day,
            "distance": days[day][MeasurementCategory.DISTANCE],
            "duration": days[day][MeasurementCategory.DURATION],
        }
        for day in sorted(days)
    ]
