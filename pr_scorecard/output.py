"""
JSON and CSV output writers.
"""

import csv
import io
import json
import sys
from pathlib import Path
from typing import Any, Mapping, TextIO


def _stats_rows(report: Mapping[str, Any]) -> list[list[str]]:
    rows = [["metric", "count", "mean", "median", "p95"]]
    for name, stats in report.get("metrics", {}).items():
        rows.append(
            [
                name,
                str(stats.get("count", "")),
                "" if stats.get("mean") is None else str(stats["mean"]),
                "" if stats.get("median") is None else str(stats["median"]),
                "" if stats.get("p95") is None else str(stats["p95"]),
            ]
        )
    return rows


def format_output(report: Mapping[str, Any], format: str = "json") -> str:
    """
    Render a report as JSON or CSV.

    The CSV form lists one row per summarized metric; other report members
    are only present in JSON.

    Raises:
        ValueError: If ``format`` is not ``json`` or ``csv``.
    """
    if format == "json":
        return json.dumps(report, indent=2, ensure_ascii=False)
    if format == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerows(_stats_rows(report))
        return buffer.getvalue().rstrip("\n")
    raise ValueError(f"Unsupported output format: {format}. Use json or csv.")


def write_output(
    report: Mapping[str, Any],
    format: str = "json",
    destination: str | Path | TextIO = "stdout",
) -> None:
    """
    Write a report to stdout, stderr, a file path or a text stream.
    """
    text = format_output(report, format) + "\n"
    if destination == "stdout":
        sys.stdout.write(text)
    elif destination == "stderr":
        sys.stderr.write(text)
    elif isinstance(destination, (str, Path)):
        Path(destination).write_text(text, encoding="utf-8")
    else:
        destination.write(text)
