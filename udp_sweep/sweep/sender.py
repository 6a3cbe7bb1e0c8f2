"""Probe dispatch."""

import logging
import socket
from dataclasses import dataclass
from ipaddress import IPv4Address

from ..models.probe import ProbePacket, DEFAULT_PACKET_SIZE
from .session import SweepSession

logger = logging.getLogger(__name__)


@dataclass
class SenderStats:
    """Statistics for probe dispatch."""
    probes_sent: int = 0
    send_errors: int = 0
    bytes_sent: int = 0

    @property
    def probes_attempted(self) -> int:
        return self.probes_sent + self.send_errors


class ProbeSender:
    """
    Fire-and-forget probe emitter.

    Probes go out target-major, sequence-minor, without pacing or retries.
    A failed send is logged and counted; the probe simply stays unanswered
    in the matrix.
    """

    def __init__(
        self,
        session: SweepSession,
        sock: socket.socket,
        probe_port: int,
        packet_size: int = DEFAULT_PACKET_SIZE,
    ):
        self.session = session
        self.sock = sock
        self.probe_port = probe_port
        self.packet_size = packet_size
        self._stats = SenderStats()

    def send_all(self) -> SenderStats:
        """Dispatch every probe of the session. Returns once all sends are issued."""
        matrix = self.session.matrix
        for target_index, address in enumerate(self.session.targets):
            for seq in range(matrix.num_probes):
                self.send_probe(target_index, seq, address)

        logger.debug(
            "Dispatched %d probes to %d targets (%d errors)",
            self._stats.probes_sent,
            self.session.num_targets,
            self._stats.send_errors,
        )
        return self.get_stats()

    def send_probe(self, target_index: int, seq: int, address: IPv4Address) -> bool:
        """Send one probe. Returns False if the datagram could not be handed to the OS."""
        payload = ProbePacket(target_index, seq).encode(self.packet_size)
        self.session.matrix.record_send(target_index, seq, self.session.now_us())

        try:
            sent = self.sock.sendto(payload, (str(address), self.probe_port))
        except OSError as e:
            self._stats.send_errors += 1
            logger.warning("Send to %s:%d failed (probe %d/%d): %s",
                           address, self.probe_port, target_index, seq, e)
            return False

        self._stats.probes_sent += 1
        self._stats.bytes_sent += sent
        return True

    def get_stats(self) -> SenderStats:
        return SenderStats(
            probes_sent=self._stats.probes_sent,
            send_errors=self._stats.send_errors,
            bytes_sent=self._stats.bytes_sent,
        )
