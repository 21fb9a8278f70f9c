"""Output formatters for coalescer statistics."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path

from dyntranslate.reporting.report import CoalescerStats


def to_json(stats: CoalescerStats, indent: int = 2) -> str:
    """Format stats as JSON string."""
    return json.dumps(stats.to_dict(), indent=indent, default=str)


def to_markdown(stats: CoalescerStats) -> str:
    """Format stats as Markdown."""
    lines = [
        "# Translation Stats",
        "",
        "| Field | Value |",
        "|-------|-------|",
        f"| Backend | {stats.backend} |",
        f"| Source language | {stats.source_lang} |",
        f"| Target language | {stats.target_lang} |",
        "",
        "## Requests",
        "",
        "| Metric | Count |",
        "|--------|-------|",
        f"| Requests | {stats.requests} |",
        f"| Short-circuited | {stats.short_circuits} |",
        f"| Cache hits | {stats.cache_hits} |",
        f"| Joined in-flight | {stats.dedup_joins} |",
        f"| Batches flushed | {stats.batches_flushed} |",
        f"| Provider calls | {stats.provider_calls} |",
        f"| Items sent | {stats.items_sent} |",
        f"| Translated | {stats.items_translated} |",
        f"| Missing from response | {stats.items_missing} |",
        f"| Absorbed failures | {stats.absorbed_failures} |",
        f"| Timeouts | {stats.timeouts} |",
        f"| Invalidations | {stats.invalidations} |",
        f"| Duration | {stats.duration_seconds:.1f}s |",
    ]

    if stats.last_error:
        lines.extend([
            "",
            "## Last error",
            "",
            f"- {stats.last_error}",
        ])

    return "\n".join(lines) + "\n"


def to_csv(stats: CoalescerStats) -> str:
    """Format stats as a single-row CSV."""
    output = io.StringIO()
    data = stats.to_dict()
    data["last_error"] = data["last_error"] or ""
    writer = csv.DictWriter(output, fieldnames=data.keys())
    writer.writeheader()
    writer.writerow(data)
    return output.getvalue()


def save_report(stats: CoalescerStats, path: str | Path) -> None:
    """Save stats to file, auto-detecting format from extension."""
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix in (".md", ".markdown"):
        content = to_markdown(stats)
    elif suffix == ".csv":
        content = to_csv(stats)
    else:
        content = to_json(stats)

    path.write_text(content, encoding="utf-8")
