"""Errors raised while validating readings and computing reports."""

from datetime import date
from decimal import Decimal


class FleetError(Exception):
    """Base exception for fleet metering errors."""
    pass


class InvalidWindow(FleetError):
    """The aggregation window ends before it starts."""

    def __init__(self, start: date, end: date):
        self.start = start
        self.end = end
        super().__init__(f"Invalid window: {start} is after {end}")


class UnknownEquipmentReference(FleetError):
    """An entry points at an equipment that is not in the roster."""

    def __init__(self, equipment_id: str):
        self.equipment_id = equipment_id
        super().__init__(f"Unknown equipment: {equipment_id}")


class NegativeProduction(FleetError):
    """A reading ends below where it started."""

    def __init__(self, equipment_id: str, day: date | None, start: Decimal, end: Decimal):
        self.equipment_id = equipment_id
        self.date = day
        self.start_value = start
        self.end_value = end
        super().__init__(
            f"Negative production for {equipment_id} on {day}: "
            f"end value {end} is below start value {start}"
        )


class NegativeRate(FleetError):
    """An equipment carries a negative monthly rate."""

    def __init__(self, equipment_id: str, rate: Decimal):
        self.equipment_id = equipment_id
        self.rate = rate
        super().__init__(f"Negative monthly rate for {equipment_id}: {rate}")
