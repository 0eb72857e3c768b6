"""Export insight analyses to CSV or JSON."""

from __future__ import annotations

import csv
import json
from dataclasses import asdict

from .models import EmailAnalysis


def _insight_rows(analysis: EmailAnalysis) -> list[dict]:
    rows = []
    for rank, insight in enumerate(analysis.insights, start=1):
        rows.append(
            {
                "rank": rank,
                "priority": insight.priority.value,
                "category": insight.category.value,
                "type": insight.type.value,
                "title": insight.title,
                "description": insight.description,
                "action": insight.action.operation if insight.action else "",
            }
        )
    return rows


def export_analysis(analysis: EmailAnalysis, format: str, output_path: str) -> None:
    """Export an analysis to a file.

    Args:
        analysis: The analysis to export.
        format: Output format, either 'csv' or 'json'. CSV holds the insights
            only; JSON holds insights, stats and scores.
        output_path: Path to write the output file.
    """
    if format == "csv":
        with open(output_path, "w", newline="") as f:
            writer = csv.DictWriter(
                f,
                fieldnames=["rank", "priority", "category", "type", "title", "description", "action"],
            )
            writer.writeheader()
            writer.writerows(_insight_rows(analysis))
    elif format == "json":
        with open(output_path, "w") as f:
            json.dump(asdict(analysis), f, indent=2, default=str)
    else:
        raise ValueError(f"Unsupported export format: {format}")
