"""Convert engine reports into display- and JSON-friendly shapes."""

from decimal import ROUND_HALF_UP, Decimal

from ..models import EquipmentStats, Report

CENTS = Decimal("0.01")
TENTHS = Decimal("0.1")


def money(value: Decimal) -> Decimal:
    """Round an amount to cents for display."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def quantity(value: Decimal) -> Decimal:
    return value.quantize(TENTHS, rounding=ROUND_HALF_UP)


def stats_to_dict(stats: EquipmentStats) -> dict:
    eq = stats.equipment
    return {
        "id": eq.id,
        "name": eq.name,
        "plate": eq.plate,
        "kind": eq.kind,
        "category": eq.category.value,
        "monthly_rate": float(money(eq.monthly_rate)),
        "production": float(quantity(stats.production)),
        "active_days": stats.active_days,
        "broken_days": stats.broken_days,
        "availability_percent": float(quantity(stats.availability * 100)),
        "base_amount": float(money(stats.base_amount)),
        "overtime_amount": float(money(stats.overtime_amount)),
        "amount_due": float(money(stats.amount_due)),
    }


def report_to_dict(report: Report) -> dict:
    """Serialize a report with amounts rounded to cents."""
    return {
        "period": {
            "start": report.window.start.isoformat(),
            "end": report.window.end.isoformat(),
            "days": report.window.days,
        },
        "today": report.today.isoformat(),
        "fleet": {
            "equipment_count": report.equipment_count,
            "active_now": report.active_now,
            "broken_today": report.broken_today,
            "active_now_label": f"{report.active_now}/{report.equipment_count}",
            "unavailability_percent": report.unavailability_rate,
        },
        "totals": {
            "production_hours": float(quantity(report.total_production_hours)),
            "revenue": float(money(report.total_revenue)),
        },
        "distance": [stats_to_dict(s) for s in report.distance],
        "duration": [stats_to_dict(s) for s in report.duration],
        "orphaned_entries": report.orphaned_entries,
    }


def format_report_text(summary: dict) -> str:
    """Format a serialized report as human-readable text."""
    lines = [
        f"Fleet Report: {summary['period']['start']} to {summary['period']['end']}",
        f"({summary['period']['days']} days)",
        "",
        "Fleet:",
        f"  - Active now: {summary['fleet']['active_now_label']}",
        f"  - Unavailability: {summary['fleet']['unavailability_percent']}%",
        f"  - Hours accumulated: {summary['totals']['production_hours']:.1f}h",
        f"  - Estimated revenue: {summary['totals']['revenue']:,.2f}",
    ]

    sections = [("Distance (KM)", summary["distance"], "km"), ("Duration (H)", summary["duration"], "h")]
    for title, rows, unit in sections:
        if not rows:
            continue
        lines.extend(["", f"{title}:"])
        for row in rows:
            line = (
                f"  - {row['name']} ({row['plate']}): {row['production']:.1f}{unit}, "
                f"{row['active_days']} active / {row['broken_days']} broken, "
                f"due {row['amount_due']:,.2f}"
            )
            if row["overtime_amount"]:
                line += f" (overtime {row['overtime_amount']:,.2f})"
            lines.append(line)

    if summary["orphaned_entries"]:
        lines.extend(["", f"Warning: {summary['orphaned_entries']} entries reference unknown equipment"])

    return "\n".join(lines)
