import socket

import pytest

from udp_sweep.models.probe import reflect


class FakeClock:
    """Manually advanced microsecond clock."""

    def __init__(self, start: int = 1_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, us: int) -> None:
        self.now += us


class RecordingSocket:
    """Send socket that records datagrams and optionally fails some sends."""

    def __init__(self, fail=None):
        self.sent = []
        self.fail = fail or (lambda address: False)

    def sendto(self, data, address):
        if self.fail(address):
            raise OSError(101, "Network is unreachable")
        self.sent.append((bytes(data), address))
        return len(data)


class EchoSocket(RecordingSocket):
    """
    Send socket that plays the echo responder: every probe comes straight
    back, marker set, on the reply end of a socketpair.
    """

    def __init__(self, reply_end, drop=None):
        super().__init__()
        self.reply_end = reply_end
        self.drop = drop or (lambda target, seq: False)

    def sendto(self, data, address):
        sent = super().sendto(data, address)
        if not self.drop(data[0], data[1]):
            self.reply_end.send(reflect(data))
        return sent


class FailingSocket:
    """Reply socket whose receive always fails."""

    def settimeout(self, timeout):
        pass

    def recvfrom(self, size):
        raise OSError(9, "Bad file descriptor")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def reply_pair():
    """(listening end, injecting end) of a datagram socketpair."""
    if not hasattr(socket, "AF_UNIX"):
        pytest.skip("AF_UNIX datagram sockets not available")
    listen_end, inject_end = socket.socketpair(socket.AF_UNIX, socket.SOCK_DGRAM)
    yield listen_end, inject_end
    listen_end.close()
    inject_end.close()


def free_port_pair(host: str = "127.0.0.1", attempts: int = 50) -> int:
    """Find P such that both P and P + 1 can be bound on host."""
    for _ in range(attempts):
        first = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        second = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            first.bind((host, 0))
            port = first.getsockname()[1]
            if port >= 65535:
                continue
            try:
                second.bind((host, port + 1))
            except OSError:
                continue
            return port
        finally:
            first.close()
            second.close()
    pytest.skip("No free UDP port pair on loopback")
