"""Generate a printable HTML billing report."""

import json
from datetime import datetime
from html import escape

from ..models import Report
from .summary import report_to_dict


def _rows_html(rows: list[dict], unit: str) -> str:
    if not rows:
        return '<tr><td colspan="7" class="px-4 py-6 text-center text-slate-400">No equipment</td></tr>'

    items = []
    for row in rows:
        overtime = f"{row['overtime_amount']:,.2f}" if row["overtime_amount"] else "-"
        items.append(f"""            <tr class="border-b border-slate-100">
                <td class="px-4 py-2">
                    <div class="font-bold text-slate-800">{escape(row['name'])}</div>
                    <div class="text-xs text-slate-400">{escape(row['plate'])}</div>
                </td>
                <td class="px-4 py-2 text-right">{row['monthly_rate']:,.2f}</td>
                <td class="px-4 py-2 text-right">{row['production']:.1f} {unit}</td>
                <td class="px-4 py-2 text-right">{row['active_days']}</td>
                <td class="px-4 py-2 text-right">{row['broken_days']}</td>
                <td class="px-4 py-2 text-right">{overtime}</td>
                <td class="px-4 py-2 text-right font-semibold">{row['amount_due']:,.2f}</td>
            </tr>""")
    return "\n".join(items)


def _table_html(title: str, rows: list[dict], unit: str) -> str:
    return f"""        <section class="card rounded-xl p-6 shadow mb-6">
            <h2 class="font-bold text-slate-800 mb-4">{title}</h2>
            <table class="w-full text-left text-sm">
                <thead class="text-slate-500 text-xs uppercase tracking-wider">
                    <tr>
                        <th class="px-4 py-2">Equipment</th>
                        <th class="px-4 py-2 text-right">Monthly rate</th>
                        <th class="px-4 py-2 text-right">Production</th>
                        <th class="px-4 py-2 text-right">Active</th>
                        <th class="px-4 py-2 text-right">Broken</th>
                        <th class="px-4 py-2 text-right">Overtime</th>
                        <th class="px-4 py-2 text-right">Amount due</th>
                    </tr>
                </thead>
                <tbody>
{_rows_html(rows, unit)}
                </tbody>
            </table>
        </section>"""


def generate_report_html(report: Report, daily: list[dict] | None = None) -> str:
    """Generate a self-contained HTML document for a report.

    Args:
        report: Report returned by compute_report
        daily: Optional output of daily_production, drawn as a bar chart

    Returns:
        Complete HTML document as a string
    """
    summary = report_to_dict(report)
    period = summary["period"]
    fleet = summary["fleet"]
    totals = summary["totals"]
    generated_date = datetime.now().strftime("%Y-%m-%d %H:%M")

    chart_data = json.dumps([
        {
            "day": d["date"].isoformat(),
            "distance": float(d["distance"]),
            "duration": float(d["duration"]),
        }
        for d in daily or []
    ])

    html = f'''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Fleet Report {period["start"]} - {period["end"]}</title>
    <script src="https://cdn.tailwindcss.com"></script>
    <script src="https://cdn.jsdelivr.net/npm/chart.js"></script>
    <style>
        @media print {{
            .no-print {{ display: none; }}
        }}
        .card {{
            background: #ffffff;
        }}
    </style>
</head>
<body class="bg-slate-50 min-h-screen">
    <div class="container mx-auto px-4 py-8">
        <header class="mb-8">
            <h1 class="text-3xl font-bold text-slate-900 mb-1">Fleet Report</h1>
            <p class="text-slate-500">{period["start"]} to {period["end"]} ({period["days"]} days)</p>
        </header>

        <div class="grid grid-cols-2 md:grid-cols-4 gap-4 mb-8">
            <div class="card rounded-xl p-4 shadow">
                <div class="text-xs text-slate-400 uppercase">Active fleet</div>
                <div class="text-2xl font-bold">{fleet["active_now_label"]}</div>
            </div>
            <div class="card rounded-xl p-4 shadow">
                <div class="text-xs text-slate-400 uppercase">Unavailability</div>
                <div class="text-2xl font-bold">{fleet["unavailability_percent"]}%</div>
            </div>
            <div class="card rounded-xl p-4 shadow">
                <div class="text-xs text-slate-400 uppercase">Hours accumulated</div>
                <div class="text-2xl font-bold">{totals["production_hours"]:.1f}h</div>
            </div>
            <div class="card rounded-xl p-4 shadow">
                <div class="text-xs text-slate-400 uppercase">Estimated revenue</div>
                <div class="text-2xl font-bold">{totals["revenue"]:,.2f}</div>
            </div>
        </div>

{_table_html("Distance metered (KM)", summary["distance"], "km")}

{_table_html("Duration metered (H)", summary["duration"], "h")}

        <section class="card rounded-xl p-6 shadow mb-6 no-print">
            <h2 class="font-bold text-slate-800 mb-4">Daily production</h2>
            <div class="h-64"><canvas id="daily-chart"></canvas></div>
        </section>

        <footer class="text-center text-slate-400 text-sm py-8">
            <p>Generated {generated_date}</p>
        </footer>
    </div>

    <script>
        const dailyData = {chart_data};

        if (dailyData.length) {{
            new Chart(document.getElementById('daily-chart').getContext('2d'), {{
                type: 'bar',
                data: {{
                    labels: dailyData.map(d => d.day),
                    datasets: [{{
                        label: 'KM',
                        data: dailyData.map(d => d.distance),
                        backgroundColor: 'rgb(3, 105, 161)'
                    }}, {{
                        label: 'H',
                        data: dailyData.map(d => d.duration),
                        backgroundColor: 'rgb(245, 158, 11)'
                    }}]
                }},
                options: {{
                    responsive: true,
                    maintainAspectRatio: false
                }}
            }});
        }}
    </script>
</body>
</html>'''

    return html
