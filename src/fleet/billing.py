"""Billing formulas for distance- and duration-metered equipment.

Distance (KM) equipment is paid a daily rate for each active day:

    amount = monthly_rate / reference_month_days * active_days

Duration (H) equipment gets the same base amount plus overtime for every
hour above the monthly allowance, billed at monthly_rate / threshold:

    overtime = (production - threshold) * monthly_rate / threshold

All arithmetic uses Decimal. Nothing is rounded here; rounding to cents is
left to presentation.
"""

from dataclasses import dataclass
from decimal import Decimal

from .config import BillingParameters
from .errors import NegativeRate
from .models import Equipment, MeasurementCategory

DEFAULT_PARAMETERS = BillingParameters()


@dataclass(frozen=True)
class Charge:
    """Amount owed for one equipment, split into its components."""

    base: Decimal
    overtime: Decimal

    @property
    def total(self) -> Decimal:
        return self.base + self.overtime


def check_rate(equipment: Equipment) -> Decimal:
    """Return the equipment's monthly rate, rejecting negative values."""
    rate = Decimal(equipment.monthly_rate)
    if rate < 0:
        raise NegativeRate(equipment.id, rate)
    return rate


def daily_rate(monthly_rate: Decimal, params: BillingParameters = DEFAULT_PARAMETERS) -> Decimal:
    return monthly_rate / params.reference_month_days


def base_amount(
    monthly_rate: Decimal, active_days: int, params: BillingParameters = DEFAULT_PARAMETERS
) -> Decimal:
    """Daily rate times the number of days the equipment was available."""
    return daily_rate(monthly_rate, params) * active_days


def overtime_amount(
    monthly_rate: Decimal, production: Decimal, params: BillingParameters = DEFAULT_PARAMETERS
) -> Decimal:
    """Overtime owed for duration production above the threshold."""
    threshold = Decimal(params.overtime_threshold)
    if production <= threshold:
        return Decimal(0)
    return (production - threshold) * (monthly_rate / threshold)


def bill(
    equipment: Equipment,
    active_days: int,
    production: Decimal,
    params: BillingParameters = DEFAULT_PARAMETERS,
) -> Charge:
    """Compute the charge for one equipment over a window."""
    rate = check_rate(equipment)

    if equipment.category is MeasurementCategory.DISTANCE:
        return Charge(base=base_amount(rate, active_days, params), overtime=Decimal(0))

    if equipment.category is MeasurementCategory.DURATION:
        return Charge(
            base=base_amount(rate, active_days, params),
            overtime=overtime_amount(rate, production, params),
        )

    raise ValueError(f"Unsupported measurement category: {equipment.category}")
