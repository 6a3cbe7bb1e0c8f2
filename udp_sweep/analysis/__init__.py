"""Sweep result analysis."""

from .latency_analyzer import LatencyAnalyzer, TargetStats, SweepSummary

__all__ = [
    "LatencyAnalyzer",
    "TargetStats",
    "SweepSummary",
]
