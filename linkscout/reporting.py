"""
Report generation for Link Scout.

Writes sweep rankings as JSON, Markdown and HTML, the production link lists
(plain and scored) consumed by page rendering, and the geo doctor report.
"""

import json
import logging
from html import escape
from pathlib import Path
from typing import Iterable, Optional

from .config import ReportingConfig
from .doctor import DoctorReport
from .scorer import LinkSet
from .sweep import SweepReport, SweepResult

logger = logging.getLogger(__name__)

SWEEP_JSON = "policy.sweep.json"
SWEEP_MARKDOWN = "policy.sweep.md"
SWEEP_HTML = "policy.sweep.html"
LINKS_JSON = "links.json"
LINKS_SCORED_JSON = "links.scored.json"
DOCTOR_JSON = "geo.doctor.json"

TABLE_COLUMNS = [
    "Rank", "Kind", "weightCluster", "weightDistance", "distanceScaleKm",
    "weightReciprocalEdge", "weightHubDamping", "Gini (lower)", "Avg km (lower)", "Purity (higher)",
]


def _format_number(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    return f"{value:g}"


def _table_row(rank: int, result: SweepResult) -> list[str]:
    weights = result.weights.to_dict()
    metrics = result.metrics
    return [
        str(rank),
        result.kind,
        _format_number(weights["weightCluster"]),
        _format_number(weights["weightDistance"]),
        _format_number(weights["distanceScaleKm"]),
        _format_number(weights["weightReciprocalEdge"]),
        _format_number(weights["weightHubDamping"]),
        _format_number(metrics.gini),
        _format_number(metrics.avg_km),
        _format_number(metrics.cluster_purity),
    ]


def render_markdown(report: SweepReport, top: int = 10) -> str:
    """Markdown table of the top variants."""
    lines = [
        "# Policy Sweep Results",
        "",
        f"Service: **{report.service}**",
        f"Variants tried: **{report.variants_tried}** ({report.mode})",
        f"Generated: {report.generated_at}",
        "",
        "## Top Suggestions",
        "",
        "| " + " | ".join(TABLE_COLUMNS) + " |",
        "|---:|---|" + "---:|" * (len(TABLE_COLUMNS) - 2),
    ]
    for rank, result in enumerate(report.top(top), start=1):
        lines.append("| " + " | ".join(_table_row(rank, result)) + " |")
    return "\n".join(lines) + "\n"


def render_html(report: SweepReport, top: int = 10) -> str:
    """Standalone HTML page with the top variants."""
    header = "".join(f"<th>{escape(col)}</th>" for col in TABLE_COLUMNS)
    rows = []
    for rank, result in enumerate(report.top(top), start=1):
        cells = "".join(f"<td>{escape(cell)}</td>" for cell in _table_row(rank, result))
        rows.append(f"<tr>{cells}</tr>")

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Policy Sweep Results - {escape(report.service)}</title>
<style>
body {{ font-family: system-ui, sans-serif; margin: 2rem; color: #1f2933; }}
table {{ border-collapse: collapse; }}
th, td {{ border: 1px solid #cbd2d9; padding: 0.35rem 0.6rem; text-align: right; }}
th {{ background: #f5f7fa; }}
td:nth-child(2) {{ text-align: left; }}
</style>
</head>
<body>
<h1>Policy Sweep Results</h1>
<p>Service: <strong>{escape(report.service)}</strong> &middot;
Variants tried: <strong>{report.variants_tried}</strong> ({escape(report.mode)}) &middot;
Generated: {escape(report.generated_at)}</p>
<table>
<thead><tr>{header}</tr></thead>
<tbody>
{chr(10).join(rows)}
</tbody>
</table>
</body>
</html>
"""


class ReportGenerator:
    """Writes Link Scout artifacts to the configured output directory."""

    def __init__(self, config: ReportingConfig):
        self.config = config
        self.output_dir = Path(config.output_dir)

    def _write(self, name: str, content: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / name
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        logger.info(f"Wrote {path}")
        return path

    @staticmethod
    def _json(payload) -> str:
        return json.dumps(payload, indent=2) + "\n"

    def write_sweep_report(self, report: SweepReport, top: int = 10) -> list[Path]:
        """
        Write the sweep ranking.

        The JSON file holds the full ranking; Markdown and HTML show the top N.

        Returns:
            Paths of the files written.
        """
        paths = [self._write(SWEEP_JSON, self._json(report.to_dict()))]
        if self.config.write_markdown:
            paths.append(self._write(SWEEP_MARKDOWN, render_markdown(report, top)))
        if self.config.write_html:
            paths.append(self._write(SWEEP_HTML, render_html(report, top)))
        return paths

    def write_link_sets(self, link_sets: Iterable[LinkSet]) -> list[Path]:
        """
        Write production link lists for page rendering.

        links.json holds the plain neighbor lists; links.scored.json pairs
        every neighbor with its score for review.

        Returns:
            Paths of the files written.
        """
        link_sets = list(link_sets)
        return [
            self._write(LINKS_JSON, self._json([ls.to_dict() for ls in link_sets])),
            self._write(LINKS_SCORED_JSON, self._json([ls.to_scored_dict() for ls in link_sets])),
        ]

    def write_doctor_report(self, report: DoctorReport) -> Path:
        return self._write(DOCTOR_JSON, self._json(report.to_dict()))

    def print_summary(self, report: SweepReport, top: int = 10) -> None:
        """Print the top variants to the console."""
        print("\n" + "=" * 60)
        print(f"POLICY SWEEP: {report.service} ({report.variants_tried} variants, {report.mode})")
        print("=" * 60)
        for rank, result in enumerate(report.top(top), start=1):
            m = result.metrics
            print(
                f"{rank:>3}. {result.kind:<28} gini={m.gini:<7} "
                f"avgKm={_format_number(m.avg_km):<7} purity={m.cluster_purity}"
            )
        print("=" * 60 + "\n")
