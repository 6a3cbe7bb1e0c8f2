"""Echo responder run on each probed host."""

import logging
import socket
import threading
import time
from dataclasses import dataclass
from typing import Optional

from ..models.probe import DEFAULT_PORT, reflect

logger = logging.getLogger(__name__)


@dataclass
class ResponderStats:
    """Statistics for the echo responder."""
    probes_received: int = 0
    replies_sent: int = 0
    malformed: int = 0
    send_errors: int = 0
    start_time: float = 0.0

    @property
    def duration(self) -> float:
        if self.start_time == 0:
            return 0.0
        return time.time() - self.start_time


class EchoResponder:
    """
    Reflects probes back to the sweeping host.

    Listens on port + 1, stamps the reply marker into each probe and sends
    it to the probe's source address on port.
    """

    def __init__(
        self,
        port: int = DEFAULT_PORT,
        bind_address: str = "0.0.0.0",
        sock: Optional[socket.socket] = None,
        receive_timeout: float = 0.5,
    ):
        self.port = port
        self.bind_address = bind_address
        self.receive_timeout = receive_timeout

        self.sock = sock
        self._owns_socket = sock is None
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stats = ResponderStats()
        self._stats_lock = threading.Lock()

    @property
    def listen_port(self) -> int:
        return self.port + 1

    def open(self) -> None:
        """Bind the listening socket if one was not supplied."""
        if self.sock is not None:
            return
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((self.bind_address, self.listen_port))
        except OSError:
            sock.close()
            raise
        self.sock = sock

    def start(self) -> None:
        """Serve in a background thread."""
        if self._running:
            return
        self.open()
        self._running = True
        self._stats = ResponderStats(start_time=time.time())
        self._thread = threading.Thread(
            target=self._serve_loop,
            daemon=True,
            name="echo-responder",
        )
        self._thread.start()

    def serve_forever(self) -> None:
        """Serve on the calling thread until stop() is called."""
        self.open()
        self._running = True
        self._stats = ResponderStats(start_time=time.time())
        self._serve_loop()

    def stop(self) -> None:
        self._running = False
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None
        if self._owns_socket and self.sock is not None:
            self.sock.close()
            self.sock = None

    def is_running(self) -> bool:
        return self._running

    def _serve_loop(self) -> None:
        self.sock.settimeout(self.receive_timeout)
        logger.info("Echo responder listening on %s:%d", self.bind_address, self.listen_port)

        while self._running:
            try:
                data, source = self.sock.recvfrom(65535)
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error("Responder socket failed: %s", e)
                break

            self.handle_datagram(data, source)

        self._running = False

    def handle_datagram(self, data: bytes, source) -> bool:
        """Reflect one probe. Returns True if a reply was sent."""
        with self._stats_lock:
            self._stats.probes_received += 1

        try:
            reply = reflect(data)
        except ValueError:
            with self._stats_lock:
                self._stats.malformed += 1
            logger.debug("Ignoring %d byte datagram from %s", len(data), source)
            return False

        destination = (source[0], self.port)
        try:
            self.sock.sendto(reply, destination)
        except OSError as e:
            with self._stats_lock:
                self._stats.send_errors += 1
            logger.warning("Reply to %s:%d failed: %s", destination[0], destination[1], e)
            return False

        with self._stats_lock:
            self._stats.replies_sent += 1
        return True

    def get_stats(self) -> ResponderStats:
        with self._stats_lock:
            return ResponderStats(
                probes_received=self._stats.probes_received,
                replies_sent=self._stats.replies_sent,
                malformed=self._stats.malformed,
                send_errors=self._stats.send_errors,
                start_time=self._stats.start_time,
            )
