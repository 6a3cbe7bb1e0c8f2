"""Per-target loss and round-trip analysis."""

from dataclasses import dataclass, field
from typing import Dict, List, TYPE_CHECKING
import statistics

from ..models.matrix import ProbeMatrix, ProbeOutcome

if TYPE_CHECKING:
    from ..sweep.controller import SweepResult


@dataclass
class TargetStats:
    """Round-trip statistics for one target. Times are in microseconds."""
    address: str
    target_index: int
    sent: int = 0
    replied: int = 0
    lost: int = 0
    timed_out: int = 0
    min_us: float = 0.0
    avg_us: float = 0.0
    max_us: float = 0.0
    median_us: float = 0.0
    std_dev_us: float = 0.0

    # Quality assessment
    quality: str = "unknown"  # excellent, good, acceptable, poor, critical, unreachable

    @property
    def loss_percent(self) -> float:
        if self.sent == 0:
            return 0.0
        return (self.lost + self.timed_out) / self.sent * 100

    @property
    def avg_ms(self) -> float:
        return self.avg_us / 1000

    def assess_quality(self) -> str:
        """Assess latency quality based on industry standards."""
        if self.replied == 0:
            self.quality = "unreachable"
        elif self.avg_ms <= 50:
            self.quality = "excellent"
        elif self.avg_ms <= 100:
            self.quality = "good"
        elif self.avg_ms <= 150:
            self.quality = "acceptable"
        elif self.avg_ms <= 400:
            self.quality = "poor"
        else:
            self.quality = "critical"
        return self.quality


@dataclass
class SweepSummary:
    """Totals across all targets of a sweep."""
    sent: int = 0
    replied: int = 0
    lost: int = 0
    timed_out: int = 0
    outcome_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def loss_percent(self) -> float:
        if self.sent == 0:
            return 0.0
        return (self.lost + self.timed_out) / self.sent * 100


class LatencyAnalyzer:
    """
    Turns a ProbeMatrix into per-target statistics.

    Only replies within max_time_us count as round-trip samples; late
    replies are counted as timeouts.
    """

    def __init__(self, max_time_us: int):
        self.max_time_us = max_time_us

    def analyze_target(self, matrix: ProbeMatrix, target_index: int, address: str = "") -> TargetStats:
        stats = TargetStats(address=address, target_index=target_index, sent=matrix.num_probes)
        samples: List[int] = []

        for cell in matrix.row(target_index, self.max_time_us):
            if cell.outcome == ProbeOutcome.NO_REPLY:
                stats.lost += 1
            elif cell.outcome == ProbeOutcome.TIMEOUT:
                stats.timed_out += 1
            else:
                samples.append(cell.elapsed_us)

        stats.replied = len(samples)
        if samples:
            stats.min_us = min(samples)
            stats.max_us = max(samples)
            stats.avg_us = statistics.mean(samples)
            stats.median_us = statistics.median(samples)
            stats.std_dev_us = statistics.stdev(samples) if len(samples) > 1 else 0.0

        stats.assess_quality()
        return stats

    def analyze(self, result: "SweepResult") -> List[TargetStats]:
        """Statistics for every target, in target order."""
        return [
            self.analyze_target(result.matrix, index, str(address))
            for index, address in enumerate(result.targets)
        ]

    def summary(self, result: "SweepResult") -> SweepSummary:
        summary = SweepSummary()
        for stats in self.analyze(result):
            summary.sent += stats.sent
            summary.replied += stats.replied
            summary.lost += stats.lost
            summary.timed_out += stats.timed_out

        summary.outcome_counts = {
            ProbeOutcome.REPLIED.value: summary.replied,
            ProbeOutcome.NO_REPLY.value: summary.lost,
            ProbeOutcome.TIMEOUT.value: summary.timed_out,
        }
        return summary
