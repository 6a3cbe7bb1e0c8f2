"""State shared by the sender, correlator and controller of one sweep."""

import logging
import threading
import time
from enum import Enum
from ipaddress import IPv4Address
from typing import Callable, Optional, Sequence, Tuple

from ..models.matrix import ProbeMatrix
from ..models.probe import DEFAULT_MAX_TIME_US

logger = logging.getLogger(__name__)


class CompletionReason(Enum):
    """Why a sweep stopped waiting for replies."""
    LAST_REPLY = "last_reply"
    TIMEOUT = "timeout"
    RECEIVE_ERROR = "receive_error"


def monotonic_us() -> int:
    """Monotonic clock in microseconds."""
    return time.monotonic_ns() // 1000


class SweepSession:
    """
    One sweep: its targets, its ProbeMatrix and its completion signal.

    The completion signal is one-shot. Once set it is never cleared, and
    only the first caller of complete() gets to record a reason.
    """

    def __init__(
        self,
        targets: Sequence[IPv4Address],
        num_probes: int,
        max_time_us: int = DEFAULT_MAX_TIME_US,
        clock: Callable[[], int] = monotonic_us,
    ):
        if max_time_us <= 0:
            raise ValueError(f"max_time_us must be positive, got {max_time_us}")

        self.targets: Tuple[IPv4Address, ...] = tuple(targets)
        self.num_probes = num_probes
        self.max_time_us = max_time_us
        self.clock = clock
        self.matrix = ProbeMatrix(len(self.targets), num_probes)

        self._completed = threading.Event()
        self._reason_lock = threading.Lock()
        self.completion_reason: Optional[CompletionReason] = None

    @property
    def num_targets(self) -> int:
        return len(self.targets)

    def now_us(self) -> int:
        return self.clock()

    @property
    def is_complete(self) -> bool:
        return self._completed.is_set()

    def complete(self, reason: CompletionReason) -> bool:
        """Mark the sweep finished. Returns True only for the first call."""
        with self._reason_lock:
            if self._completed.is_set():
                return False
            self.completion_reason = reason
            self._completed.set()
        logger.debug("Sweep complete: %s", reason.value)
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the sweep completes or timeout seconds elapse."""
        return self._completed.wait(timeout)

    def last_probe_expired(self, now_us: Optional[int] = None) -> bool:
        """True once the final probe has been outstanding longer than max_time_us."""
        sent = self.matrix.last_send_time
        if sent is None:
            return False
        if now_us is None:
            now_us = self.now_us()
        return now_us - sent > self.max_time_us
