"""Data models for equipment, meter readings and derived reports."""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from .errors import InvalidWindow

# Vehicle type used when none is given (informational only)
DEFAULT_KIND = "Truck"


class MeasurementCategory(Enum):
    """How an equipment's usage is metered."""

    DISTANCE = "KM"  # odometer
    DURATION = "H"  # hour meter

    @classmethod
    def parse(cls, value: str) -> "MeasurementCategory":
        """Accept either the wire code ('KM', 'H') or the member name."""
        text = str(value).strip().upper()
        for member in cls:
            if text in (member.value, member.name):
                return member
        raise ValueError(f"Unknown measurement category: {value!r}")


class EntryStatus(Enum):
    """Availability of an equipment on the day of a reading."""

    ACTIVE = "Ativo"
    BROKEN = "Quebrado"

    @classmethod
    def parse(cls, value: str) -> "EntryStatus":
        """Accept either the wire code ('Ativo', 'Quebrado') or the member name."""
        text = str(value).strip()
        for member in cls:
            if text.lower() in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown entry status: {value!r}")


@dataclass(frozen=True)
class Equipment:
    """A billable unit of the fleet."""

    id: str
    name: str
    plate: str
    category: MeasurementCategory
    monthly_rate: Decimal
    kind: str = DEFAULT_KIND


@dataclass(frozen=True)
class Entry:
    """A daily meter reading pair for one equipment."""

    date: date
    equipment_id: str
    start_value: Decimal
    end_value: Decimal
    status: EntryStatus = EntryStatus.ACTIVE

    @property
    def production(self) -> Decimal:
        return self.end_value - self.start_value


@dataclass(frozen=True)
class Window:
    """Inclusive date range used for aggregation."""

    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidWindow(self.start, self.end)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        """Number of calendar days covered, both ends included."""
        return (self.end - self.start).days + 1

    @classmethod
    def month_to_date(cls, today: date) -> "Window":
        return cls(today.replace(day=1), today)

    @classmethod
    def last_days(cls, days: int, today: date) -> "Window":
        """Window of `days` days ending today."""
        if days < 1:
            raise ValueError("days must be at least 1")
        return cls(today - timedelta(days=days - 1), today)


@dataclass(frozen=True)
class EquipmentStats:
    """Production, availability and billing for one equipment in a window."""

    equipment: Equipment
    production: Decimal
    active_days: int
    broken_days: int
    base_amount: Decimal
    overtime_amount: Decimal

    @property
    def amount_due(self) -> Decimal:
        return self.base_amount + self.overtime_amount

    @property
    def availability(self) -> Decimal:
        """Share of recorded days the equipment was available."""
        recorded = self.active_days + self.broken_days
        if recorded == 0:
            return Decimal(0)
        return Decimal(self.active_days) / Decimal(recorded)


@dataclass(frozen=True)
class Report:
    """Fleet-wide KPIs plus per-category breakdowns for one window."""

    window: Window
    today: date
    equipment_count: int
    active_now: int
    broken_today: int
    fleet_active_now: Decimal  # ratio, 0..1
    unavailability_rate: int  # percent
    total_production_hours: Decimal
    total_revenue: Decimal
    distance: tuple[EquipmentStats, ...] = field(default_factory=tuple)
    duration: tuple[EquipmentStats, ...] = field(default_factory=tuple)
    orphaned_entries: int = 0
