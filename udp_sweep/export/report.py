"""Plain-text ping reports and the unified report generator."""

from datetime import datetime
from typing import Dict, List, Optional, TYPE_CHECKING
from pathlib import Path

from .json_exporter import JSONExporter
from ..analysis.latency_analyzer import LatencyAnalyzer
from ..models.matrix import CellResult, ProbeOutcome

if TYPE_CHECKING:
    from ..sweep.controller import SweepResult

RULE = "-" * 30


def format_cell(cell: CellResult) -> str:
    """One report line for a probe, numbered from 1."""
    number = cell.sequence + 1
    if cell.outcome == ProbeOutcome.NO_REPLY:
        return f"{number}. No reply."
    if cell.outcome == ProbeOutcome.TIMEOUT:
        return f"{number}. Timeout ({cell.elapsed_us}us)."
    return f"{number}. Roundtrip in {cell.elapsed_us}us."


def summary_line(result: "SweepResult") -> str:
    """Totals line, e.g. '6 sent. 1 dropped. 0 timed out.'"""
    summary = LatencyAnalyzer(result.max_time_us).summary(result)
    return f"{summary.sent} sent. {summary.lost} dropped. {summary.timed_out} timed out."


class ReportGenerator:
    """Unified interface for generating reports in multiple formats."""

    def __init__(self, output_dir: str = "./reports"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.json_exporter = JSONExporter(output_dir)

    def render_lines(self, result: "SweepResult") -> List[str]:
        """Per-target probe lines followed by the summary counts."""
        lines = [f"Package size={result.packet_size} bytes. TTL={result.ttl}."]

        for index, address in enumerate(result.targets):
            lines.append(f"-----{result.num_probes} pings to {address}-----")
            lines.extend(format_cell(cell) for cell in result.row(index))

        lines.append(RULE)
        lines.append(summary_line(result))
        return lines

    def render_text(self, result: "SweepResult") -> str:
        header = f"Ping Report {result.started_at.strftime('%m-%d-%H:%M')}"
        return "\n".join([header] + self.render_lines(result)) + "\n"

    def write_text(self, result: "SweepResult", filename: Optional[str] = None) -> str:
        """Write the plain-text report. Returns its path."""
        if filename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"ping_report_{timestamp}.txt"

        filepath = self.output_dir / filename
        with open(filepath, 'w') as f:
            f.write(self.render_text(result))
        return str(filepath)

    def generate(
        self,
        result: "SweepResult",
        formats: List[str] = None,
        base_filename: Optional[str] = None
    ) -> Dict[str, str]:
        """
        Generate reports in specified formats.

        Args:
            result: Finished sweep
            formats: List of formats to generate ('text', 'json'). Default: all
            base_filename: Base filename (timestamp added automatically if omitted)

        Returns:
            Dictionary mapping format to output filepath
        """
        if formats is None:
            formats = ["text", "json"]

        if base_filename:
            base = base_filename
        else:
            base = f"ping_report_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

        results = {}

        if "text" in formats:
            results["text"] = self.write_text(result, filename=f"{base}.txt")

        if "json" in formats:
            results["json"] = self.json_exporter.export_result(result, filename=f"{base}.json")

        return results

    def existing_reports(self, formats: List[str], base_filename: str) -> List[str]:
        """Paths that generate() would overwrite."""
        suffixes = {"text": ".txt", "json": ".json"}
        paths = [self.output_dir / f"{base_filename}{suffixes[f]}" for f in formats if f in suffixes]
        return [str(p) for p in paths if p.exists()]
