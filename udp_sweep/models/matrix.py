"""Per-probe timing tables."""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .probe import MAX_INDEX

MAX_TARGETS = MAX_INDEX + 1
MAX_PROBES = MAX_INDEX + 1


class ProbeOutcome(Enum):
    """Result of a single probe after a sweep."""
    NO_REPLY = "no_reply"
    TIMEOUT = "timeout"
    REPLIED = "replied"


@dataclass
class CellResult:
    """Outcome of one (target, sequence) probe."""
    target_index: int
    sequence: int
    elapsed_us: int
    outcome: ProbeOutcome

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed_us / 1000


class ProbeMatrix:
    """
    Send timestamps and round-trip durations for every probe of a sweep.

    Times are monotonic microseconds. An elapsed value of 0 means no reply
    was recorded; recorded durations are clamped to at least 1us so a very
    fast loopback reply can never read as a loss. The first reply for a cell
    wins, later duplicates are ignored.
    """

    def __init__(self, num_targets: int, num_probes: int):
        if not 1 <= num_targets <= MAX_TARGETS:
            raise ValueError(f"num_targets must be in 1..{MAX_TARGETS}, got {num_targets}")
        if not 1 <= num_probes <= MAX_PROBES:
            raise ValueError(f"num_probes must be in 1..{MAX_PROBES}, got {num_probes}")

        self.num_targets = num_targets
        self.num_probes = num_probes
        self.send_times: List[List[Optional[int]]] = [
            [None] * num_probes for _ in range(num_targets)
        ]
        self.elapsed: List[List[int]] = [
            [0] * num_probes for _ in range(num_targets)
        ]
        self._lock = threading.Lock()

    def __contains__(self, cell: Tuple[int, int]) -> bool:
        target, seq = cell
        return 0 <= target < self.num_targets and 0 <= seq < self.num_probes

    @property
    def shape(self) -> Tuple[int, int]:
        return self.num_targets, self.num_probes

    @property
    def last_cell(self) -> Tuple[int, int]:
        """The last probe dispatched in target-major order."""
        return self.num_targets - 1, self.num_probes - 1

    @property
    def last_send_time(self) -> Optional[int]:
        target, seq = self.last_cell
        return self.send_times[target][seq]

    def is_last_cell(self, target: int, seq: int) -> bool:
        return (target, seq) == self.last_cell

    def record_send(self, target: int, seq: int, now_us: int) -> None:
        """Record the dispatch time of a probe."""
        if (target, seq) not in self:
            raise IndexError(f"probe ({target}, {seq}) outside {self.shape}")
        with self._lock:
            self.send_times[target][seq] = now_us

    def record_reply(self, target: int, seq: int, now_us: int) -> Optional[int]:
        """
        Record a reply arriving at now_us.

        Returns the stored duration, or None if the reply was ignored
        (unknown cell, probe never sent, or a duplicate).
        """
        if (target, seq) not in self:
            return None

        with self._lock:
            sent = self.send_times[target][seq]
            if sent is None or self.elapsed[target][seq] != 0:
                return None
            duration = max(1, now_us - sent)
            self.elapsed[target][seq] = duration
            return duration

    def get_elapsed(self, target: int, seq: int) -> int:
        return self.elapsed[target][seq]

    def has_reply(self, target: int, seq: int) -> bool:
        return self.elapsed[target][seq] > 0

    @property
    def replied_count(self) -> int:
        return sum(1 for row in self.elapsed for value in row if value > 0)

    @property
    def total_probes(self) -> int:
        return self.num_targets * self.num_probes

    @property
    def all_replied(self) -> bool:
        return self.replied_count == self.total_probes

    def outcome(self, target: int, seq: int, max_time_us: int) -> ProbeOutcome:
        """Classify a probe against the sweep's timeout."""
        value = self.elapsed[target][seq]
        if value == 0:
            return ProbeOutcome.NO_REPLY
        if value > max_time_us:
            return ProbeOutcome.TIMEOUT
        return ProbeOutcome.REPLIED

    def cell(self, target: int, seq: int, max_time_us: int) -> CellResult:
        return CellResult(
            target_index=target,
            sequence=seq,
            elapsed_us=self.elapsed[target][seq],
            outcome=self.outcome(target, seq, max_time_us),
        )

    def row(self, target: int, max_time_us: int) -> List[CellResult]:
        """All probe results for one target, in sequence order."""
        return [self.cell(target, seq, max_time_us) for seq in range(self.num_probes)]
