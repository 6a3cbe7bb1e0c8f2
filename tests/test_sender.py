from ipaddress import IPv4Address

from udp_sweep.models.probe import ProbePacket
from udp_sweep.sweep.sender import ProbeSender
from udp_sweep.sweep.session import SweepSession

from conftest import RecordingSocket


TARGETS = [IPv4Address("10.0.0.1"), IPv4Address("10.0.0.2")]


def test_probes_sent_target_major(clock):
    """Every (target, seq) pair goes out once, targets outer, sequences inner."""
    session = SweepSession(TARGETS, 3, clock=clock)
    sock = RecordingSocket()
    stats = ProbeSender(session, sock, probe_port=65433).send_all()

    order = [(data[0], data[1]) for data, _ in sock.sent]
    assert order == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]
    assert stats.probes_sent == 6
    assert stats.send_errors == 0
    assert stats.bytes_sent == 6 * 32


def test_probes_addressed_to_probe_port(clock):
    session = SweepSession(TARGETS, 1, clock=clock)
    sock = RecordingSocket()
    ProbeSender(session, sock, probe_port=40001, packet_size=48).send_all()

    assert [address for _, address in sock.sent] == [("10.0.0.1", 40001), ("10.0.0.2", 40001)]
    assert all(len(data) == 48 for data, _ in sock.sent)
    assert all(not ProbePacket.decode(data).is_reply for data, _ in sock.sent)


def test_send_time_recorded(clock):
    session = SweepSession(TARGETS, 2, clock=clock)
    ProbeSender(session, RecordingSocket(), probe_port=1).send_all()

    assert session.matrix.send_times == [[clock.now] * 2, [clock.now] * 2]
    assert session.matrix.last_send_time == clock.now


def test_send_failure_is_absorbed(clock):
    """An unreachable target is logged and left unanswered, not raised."""
    session = SweepSession(TARGETS, 2, clock=clock)
    sock = RecordingSocket(fail=lambda address: address[0] == "10.0.0.2")
    sender = ProbeSender(session, sock, probe_port=1)

    stats = sender.send_all()

    assert stats.probes_sent == 2
    assert stats.send_errors == 2
    assert stats.probes_attempted == 4
    # the failed probes still have a send time so the timeout can fire
    assert session.matrix.last_send_time == clock.now
    assert session.matrix.replied_count == 0


def test_send_probe_reports_failure(clock):
    session = SweepSession(TARGETS[:1], 1, clock=clock)
    sender = ProbeSender(session, RecordingSocket(fail=lambda a: True), probe_port=1)
    assert sender.send_probe(0, 0, TARGETS[0]) is False
    assert sender.get_stats().send_errors == 1
