"""Reply reception and correlation."""

import logging
import socket
import threading
from dataclasses import dataclass
from queue import Queue, Empty
from typing import List, Optional, Tuple

from ..models.probe import ProbePacket
from .session import SweepSession, CompletionReason

logger = logging.getLogger(__name__)

# Extra room so oversized strays are read whole and discarded
RECV_BUFFER_SIZE = 65535


@dataclass
class CorrelatorStats:
    """Statistics for reply correlation."""
    replies_received: int = 0
    replies_matched: int = 0
    stray_packets: int = 0
    duplicate_replies: int = 0
    receive_errors: int = 0


class ReplyCorrelator:
    """
    Matches echoed probes against the session's ProbeMatrix.

    Reception and correlation run on separate daemon threads joined by a
    queue. The receive thread timestamps each datagram on arrival and goes
    straight back to recvfrom, so no reply waits on the bookkeeping of the
    previous one. The correlation thread records the round trip and decides
    whether the sweep is finished.
    """

    def __init__(
        self,
        session: SweepSession,
        sock: socket.socket,
        receive_timeout: float = 0.1,
    ):
        self.session = session
        self.sock = sock
        self.receive_timeout = receive_timeout

        self._running = False
        self._threads: List[threading.Thread] = []
        self._queue: "Queue[Optional[Tuple[bytes, int]]]" = Queue()
        self._stats = CorrelatorStats()
        self._stats_lock = threading.Lock()

    def start(self) -> None:
        """Start listening. Must be called before the first probe is sent."""
        if self._running:
            return

        self._running = True
        self.sock.settimeout(self.receive_timeout)

        for target, name in (
            (self._receive_loop, "reply-receiver"),
            (self._correlate_loop, "reply-correlator"),
        ):
            thread = threading.Thread(target=target, daemon=True, name=name)
            thread.start()
            self._threads.append(thread)

    def stop(self, drain_queue: bool = True) -> None:
        """Stop both threads.

        Args:
            drain_queue: If True, correlate datagrams already received before returning
        """
        self._running = False
        self._queue.put(None)
        for thread in self._threads:
            thread.join(timeout=2.0)
        self._threads.clear()

        if drain_queue:
            while True:
                try:
                    item = self._queue.get_nowait()
                except Empty:
                    break
                if item is not None:
                    self.process_datagram(*item)

    def is_running(self) -> bool:
        return self._running

    def _receive_loop(self) -> None:
        """Receive datagrams until stopped or the socket fails."""
        while self._running:
            try:
                data, _ = self.sock.recvfrom(RECV_BUFFER_SIZE)
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    with self._stats_lock:
                        self._stats.receive_errors += 1
                    logger.error("Reply socket failed, ending sweep early: %s", e)
                    self.session.complete(CompletionReason.RECEIVE_ERROR)
                break

            self._queue.put((data, self.session.now_us()))

    def _correlate_loop(self) -> None:
        while self._running:
            try:
                item = self._queue.get(timeout=self.receive_timeout)
            except Empty:
                continue
            if item is None:
                break
            self.process_datagram(*item)

    def process_datagram(self, data: bytes, recv_time_us: int) -> bool:
        """
        Correlate one received datagram.

        Returns True if it was recorded as the reply to an outstanding probe.
        Datagrams without the reply marker never touch the matrix or the
        completion state.
        """
        with self._stats_lock:
            self._stats.replies_received += 1

        try:
            packet = ProbePacket.decode(data)
        except ValueError:
            self._count_stray(data)
            return False
        if not packet.is_reply:
            self._count_stray(data)
            return False

        matrix = self.session.matrix
        target, seq = packet.target_index, packet.sequence
        elapsed = matrix.record_reply(target, seq, recv_time_us)

        if elapsed is not None:
            with self._stats_lock:
                self._stats.replies_matched += 1
        elif (target, seq) in matrix and matrix.has_reply(target, seq):
            with self._stats_lock:
                self._stats.duplicate_replies += 1
            logger.debug("Duplicate reply for probe %d/%d ignored", target, seq)
        else:
            self._count_stray(data)

        self._check_complete(target, seq)
        return elapsed is not None

    def _check_complete(self, target: int, seq: int) -> None:
        if self.session.is_complete:
            return
        matrix = self.session.matrix
        if matrix.is_last_cell(target, seq) and matrix.has_reply(target, seq):
            self.session.complete(CompletionReason.LAST_REPLY)
        elif self.session.last_probe_expired():
            self.session.complete(CompletionReason.TIMEOUT)

    def _count_stray(self, data: bytes) -> None:
        with self._stats_lock:
            self._stats.stray_packets += 1
        logger.debug("Ignoring stray datagram (%d bytes)", len(data))

    def get_stats(self) -> CorrelatorStats:
        with self._stats_lock:
            return CorrelatorStats(
                replies_received=self._stats.replies_received,
                replies_matched=self._stats.replies_matched,
                stray_packets=self._stats.stray_packets,
                duplicate_replies=self._stats.duplicate_replies,
                receive_errors=self._stats.receive_errors,
            )
