"""JSON export functionality."""

import json
from datetime import datetime
from typing import Any, Dict, Optional, TYPE_CHECKING
from pathlib import Path

from ..analysis.latency_analyzer import LatencyAnalyzer

if TYPE_CHECKING:
    from ..sweep.controller import SweepResult


class JSONExporter:
    """Export sweep results to JSON format."""

    def __init__(self, output_dir: str = "./reports"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def build(self, result: "SweepResult") -> Dict[str, Any]:
        """Build the JSON document for a sweep."""
        analyzer = LatencyAnalyzer(result.max_time_us)
        summary = analyzer.summary(result)

        data = {
            "export_time": datetime.now().isoformat(),
            "started_at": result.started_at.isoformat(),
            "duration_s": result.duration,
            "completion_reason": result.reason.value if result.reason else None,
            "packet_size": result.packet_size,
            "ttl": result.ttl,
            "max_time_us": result.max_time_us,
            "summary": {
                "sent": summary.sent,
                "replied": summary.replied,
                "lost": summary.lost,
                "timed_out": summary.timed_out,
                "loss_percent": summary.loss_percent,
            },
            "sender": {
                "probes_sent": result.sender_stats.probes_sent,
                "send_errors": result.sender_stats.send_errors,
                "bytes_sent": result.sender_stats.bytes_sent,
            },
            "correlator": {
                "replies_received": result.correlator_stats.replies_received,
                "replies_matched": result.correlator_stats.replies_matched,
                "stray_packets": result.correlator_stats.stray_packets,
                "duplicate_replies": result.correlator_stats.duplicate_replies,
                "receive_errors": result.correlator_stats.receive_errors,
            },
            "targets": [],
        }

        for stats in analyzer.analyze(result):
            data["targets"].append({
                "address": stats.address,
                "index": stats.target_index,
                "sent": stats.sent,
                "replied": stats.replied,
                "lost": stats.lost,
                "timed_out": stats.timed_out,
                "loss_percent": stats.loss_percent,
                "min_us": stats.min_us,
                "avg_us": stats.avg_us,
                "max_us": stats.max_us,
                "median_us": stats.median_us,
                "std_dev_us": stats.std_dev_us,
                "quality": stats.quality,
                "probes": [
                    {
                        "sequence": cell.sequence + 1,
                        "outcome": cell.outcome.value,
                        "elapsed_us": cell.elapsed_us,
                    }
                    for cell in result.row(stats.target_index)
                ],
            })

        return data

    def export_result(
        self,
        result: "SweepResult",
        filename: Optional[str] = None
    ) -> str:
        """Export a sweep result to JSON."""
        if filename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"ping_report_{timestamp}.json"

        filepath = self.output_dir / filename
        with open(filepath, 'w') as f:
            json.dump(self.build(result), f, indent=2)

        return str(filepath)
