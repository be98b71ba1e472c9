"""Billing parameters and environment configuration."""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from dotenv import load_dotenv

load_dotenv()

DEFAULT_REFERENCE_MONTH_DAYS = 30
DEFAULT_OVERTIME_THRESHOLD = 200


@dataclass(frozen=True)
class BillingParameters:
    """Business constants used by the billing formulas.

    reference_month_days: divisor turning a monthly rate into a daily rate.
    overtime_threshold: duration units included in the monthly rate before
        overtime applies. Applied as a flat amount per window, not pro-rated.
    """

    reference_month_days: int = DEFAULT_REFERENCE_MONTH_DAYS
    overtime_threshold: int = DEFAULT_OVERTIME_THRESHOLD

    def __post_init__(self):
        if self.reference_month_days <= 0:
            raise ValueError("reference_month_days must be positive")
        if self.overtime_threshold <= 0:
            raise ValueError("overtime_threshold must be positive")


def get_config_path() -> Path | None:
    """Find the billing.yaml config file, if any."""
    candidates = [
        Path.cwd() / "config" / "billing.yaml",
        Path(__file__).parent.parent.parent / "config" / "billing.yaml",
        Path.home() / ".config" / "fleet-metering" / "billing.yaml",
    ]
    for path in candidates:
        if path.exists():
            return path
    return None


def load_billing_parameters(config_path: Path | None = None) -> BillingParameters:
    """Load billing parameters from YAML, falling back to defaults."""
    path = config_path or get_config_path()
    if path is None:
        return BillingParameters()

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    billing = data.get("billing", {})
    return BillingParameters(
        reference_month_days=int(billing.get("reference_month_days", DEFAULT_REFERENCE_MONTH_DAYS)),
        overtime_threshold=int(billing.get("overtime_threshold", DEFAULT_OVERTIME_THRESHOLD)),
    )


def get_api_url() -> str:
    """Get the remote spreadsheet API URL from environment."""
    url = os.environ.get("FLEET_API_URL")
    if not url:
        raise ValueError(
            "FLEET_API_URL environment variable not set.\n"
            "Set it to the deployed spreadsheet web app URL: export FLEET_API_URL='https://...'"
        )
    return url


def get_log_level() -> str:
    return os.environ.get("LOG_LEVEL", "WARNING").upper()
