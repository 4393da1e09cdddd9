"""Export functions for stored package history."""

import csv
import io
import json
from datetime import datetime, timezone

from .types import DailyStatistic

EXPORT_FORMATS = ("csv", "json", "markdown", "md")


def export_csv(statistics: list[DailyStatistic], output: io.StringIO | None = None) -> str:
    """Export daily statistics to CSV format."""
    if output is None:
        output = io.StringIO()

    writer = csv.writer(output)
    writer.writerow(["day", "downloads"])
    for s in statistics:
        writer.writerow([s["day"].isoformat(), s["downloads"]])

    return output.getvalue()


def export_json(name: str, statistics: list[DailyStatistic]) -> str:
    """Export daily statistics to JSON format."""
    export_data = {
        "generated": datetime.now(timezone.utc).isoformat(),
        "package": name,
        "downloads": [
            {"day": s["day"].isoformat(), "downloads": s["downloads"]}
            for s in statistics
        ],
    }
    return json.dumps(export_data, indent=2)


def export_markdown(statistics: list[DailyStatistic]) -> str:
    """Export daily statistics to a Markdown table; unavailable days show as n/a."""
    lines = [
        "| Day | Downloads |",
        "|-----|----------:|",
    ]

    for s in statistics:
        downloads = "n/a" if s["downloads"] < 0 else f"{s['downloads']:,}"
        lines.append(f"| {s['day'].isoformat()} | {downloads} |")

    return "\n".join(lines)


def export_statistics(name: str, statistics: list[DailyStatistic], fmt: str) -> str:
    """Export statistics in one of EXPORT_FORMATS."""
    if fmt == "csv":
        return export_csv(statistics)
    if fmt == "json":
        return export_json(name, statistics)
    if fmt in ("markdown", "md"):
        return export_markdown(statistics)
    raise ValueError(f"Unknown format: {fmt}")
