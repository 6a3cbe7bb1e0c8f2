"""Sweep orchestration."""

import logging
import socket
import time
from dataclasses import dataclass, field
from datetime import datetime
from ipaddress import IPv4Address
from typing import Callable, List, Optional, Sequence

from ..config import ProbeConfig, SweepConfig
from ..models.matrix import ProbeMatrix, CellResult, MAX_TARGETS
from .correlator import ReplyCorrelator, CorrelatorStats
from .sender import ProbeSender, SenderStats
from .session import SweepSession, CompletionReason, monotonic_us

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Everything a reporter needs from a finished sweep."""
    targets: List[IPv4Address]
    matrix: ProbeMatrix
    max_time_us: int
    packet_size: int
    ttl: int
    reason: Optional[CompletionReason]
    sender_stats: SenderStats = field(default_factory=SenderStats)
    correlator_stats: CorrelatorStats = field(default_factory=CorrelatorStats)
    started_at: datetime = field(default_factory=datetime.now)
    duration: float = 0.0

    @property
    def num_probes(self) -> int:
        return self.matrix.num_probes

    def row(self, target_index: int) -> List[CellResult]:
        return self.matrix.row(target_index, self.max_time_us)


class SweepController:
    """
    Runs one sweep end to end.

    The correlator is started before the first probe leaves, probes are
    sent synchronously, and the controller then waits on the session's
    completion signal. It re-checks the last probe's timeout on every tick,
    so the sweep ends even when not a single reply comes back.
    """

    def __init__(
        self,
        targets: Sequence[IPv4Address],
        probe_config: Optional[ProbeConfig] = None,
        sweep_config: Optional[SweepConfig] = None,
        send_sock: Optional[socket.socket] = None,
        reply_sock: Optional[socket.socket] = None,
        clock: Callable[[], int] = monotonic_us,
    ):
        self.targets = list(targets)
        self.probe_config = probe_config or ProbeConfig()
        self.sweep_config = sweep_config or SweepConfig()
        self.clock = clock

        self.send_sock = send_sock
        self.reply_sock = reply_sock
        self._owned_sockets: List[socket.socket] = []

        self.session: Optional[SweepSession] = None
        self.sender: Optional[ProbeSender] = None
        self.correlator: Optional[ReplyCorrelator] = None

    def check_ready(self) -> List[str]:
        """
        Validate inputs and open sockets.
        Returns list of issues, empty if ready.
        """
        issues = []

        if not self.targets:
            issues.append("No targets to probe")
        elif len(self.targets) > MAX_TARGETS:
            issues.append(f"Too many targets: {len(self.targets)} (max {MAX_TARGETS})")
        if issues:
            return issues

        try:
            self.session = SweepSession(
                self.targets,
                self.probe_config.count,
                max_time_us=self.probe_config.max_time_us,
                clock=self.clock,
            )
        except ValueError as e:
            return [str(e)]

        if self.reply_sock is None:
            try:
                self.reply_sock = self._open_reply_socket()
            except OSError as e:
                issues.append(
                    f"Cannot listen on {self.probe_config.bind_address}:{self.probe_config.port}: {e}"
                )

        if self.send_sock is None:
            try:
                self.send_sock = self._open_send_socket()
            except OSError as e:
                issues.append(f"Cannot create probe socket: {e}")

        return issues

    def _open_reply_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((self.probe_config.bind_address, self.probe_config.port))
        except OSError:
            sock.close()
            raise
        self._owned_sockets.append(sock)
        return sock

    def _open_send_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, self.probe_config.ttl)
        self._owned_sockets.append(sock)
        return sock

    def run(self) -> SweepResult:
        """Run the sweep and return its results."""
        if self.session is None or self.reply_sock is None or self.send_sock is None:
            issues = self.check_ready()
            if issues:
                self.close()
                raise RuntimeError("Cannot start sweep:\n" + "\n".join(issues))

        session = self.session
        started_at = datetime.now()
        start = time.time()

        self.correlator = ReplyCorrelator(
            session,
            self.reply_sock,
            receive_timeout=self.sweep_config.receive_timeout,
        )
        self.sender = ProbeSender(
            session,
            self.send_sock,
            self.probe_config.probe_port,
            packet_size=self.probe_config.packet_size,
        )

        logger.info(
            "Probing %d target(s) x %d probe(s) on port %d",
            session.num_targets, session.num_probes, self.probe_config.probe_port,
        )

        self.correlator.start()
        try:
            sender_stats = self.sender.send_all()
            self._wait_for_completion()
        finally:
            self.correlator.stop(drain_queue=True)
            self.close()

        result = SweepResult(
            targets=list(session.targets),
            matrix=session.matrix,
            max_time_us=session.max_time_us,
            packet_size=self.probe_config.packet_size,
            ttl=self.probe_config.ttl,
            reason=session.completion_reason,
            sender_stats=sender_stats,
            correlator_stats=self.correlator.get_stats(),
            started_at=started_at,
            duration=time.time() - start,
        )
        logger.info(
            "Sweep finished (%s) in %.2fs: %d/%d replies",
            result.reason.value if result.reason else "unknown",
            result.duration,
            session.matrix.replied_count,
            session.matrix.total_probes,
        )
        return result

    def _wait_for_completion(self) -> None:
        session = self.session
        while not session.wait(self.sweep_config.poll_interval):
            if session.last_probe_expired():
                session.complete(CompletionReason.TIMEOUT)

    def close(self) -> None:
        """Close sockets opened by this controller."""
        for sock in self._owned_sockets:
            sock.close()
        self._owned_sockets.clear()

    def __enter__(self) -> "SweepController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
