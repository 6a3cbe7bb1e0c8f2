"""Data models for udp-sweep."""

from .probe import ProbePacket, reflect
from .matrix import ProbeMatrix, ProbeOutcome, CellResult

__all__ = [
    "ProbePacket",
    "reflect",
    "ProbeMatrix",
    "ProbeOutcome",
    "CellResult",
]
