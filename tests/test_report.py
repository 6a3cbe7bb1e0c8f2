import json
from datetime import datetime
from ipaddress import IPv4Address

import pytest

from udp_sweep.analysis.latency_analyzer import LatencyAnalyzer
from udp_sweep.export.json_exporter import JSONExporter
from udp_sweep.export.report import ReportGenerator, summary_line
from udp_sweep.models.matrix import ProbeMatrix
from udp_sweep.sweep.controller import SweepResult
from udp_sweep.sweep.session import CompletionReason


MAX_TIME = 1_000_000


@pytest.fixture
def result():
    """Two targets, three probes: one target healthy, one mixed."""
    matrix = ProbeMatrix(2, 3)
    for t in range(2):
        for s in range(3):
            matrix.record_send(t, s, 0)
    matrix.record_reply(0, 0, 400)
    matrix.record_reply(0, 1, 600)
    matrix.record_reply(0, 2, 800)
    matrix.record_reply(1, 0, 2_000_000)  # late
    # (1, 1) lost
    matrix.record_reply(1, 2, 90_000)

    return SweepResult(
        targets=[IPv4Address("10.0.0.1"), IPv4Address("10.0.0.2")],
        matrix=matrix,
        max_time_us=MAX_TIME,
        packet_size=32,
        ttl=128,
        reason=CompletionReason.LAST_REPLY,
        started_at=datetime(2024, 3, 5, 14, 7),
        duration=0.5,
    )


def test_target_stats(result):
    stats = LatencyAnalyzer(MAX_TIME).analyze(result)

    healthy, mixed = stats
    assert (healthy.sent, healthy.replied, healthy.lost, healthy.timed_out) == (3, 3, 0, 0)
    assert healthy.min_us == 400
    assert healthy.max_us == 800
    assert healthy.avg_us == 600
    assert healthy.median_us == 600
    assert healthy.quality == "excellent"
    assert healthy.loss_percent == 0

    assert (mixed.replied, mixed.lost, mixed.timed_out) == (1, 1, 1)
    assert mixed.std_dev_us == 0.0
    assert mixed.quality == "good"
    assert mixed.loss_percent == pytest.approx(200 / 3)


def test_unreachable_target_quality():
    matrix = ProbeMatrix(1, 2)
    stats = LatencyAnalyzer(MAX_TIME).analyze_target(matrix, 0, "10.9.9.9")
    assert stats.lost == 2
    assert stats.quality == "unreachable"


def test_summary(result):
    summary = LatencyAnalyzer(MAX_TIME).summary(result)
    assert (summary.sent, summary.replied, summary.lost, summary.timed_out) == (6, 4, 1, 1)
    assert summary.outcome_counts == {"replied": 4, "no_reply": 1, "timeout": 1}
    assert summary_line(result) == "6 sent. 1 dropped. 1 timed out."


def test_render_text(result, tmp_path):
    text = ReportGenerator(str(tmp_path)).render_text(result)
    assert text.splitlines() == [
        "Ping Report 03-05-14:07",
        "Package size=32 bytes. TTL=128.",
        "-----3 pings to 10.0.0.1-----",
        "1. Roundtrip in 400us.",
        "2. Roundtrip in 600us.",
        "3. Roundtrip in 800us.",
        "-----3 pings to 10.0.0.2-----",
        "1. Timeout (2000000us).",
        "2. No reply.",
        "3. Roundtrip in 90000us.",
        "------------------------------",
        "6 sent. 1 dropped. 1 timed out.",
    ]


def test_generate_writes_requested_formats(result, tmp_path):
    report = ReportGenerator(str(tmp_path / "out"))
    paths = report.generate(result, formats=["text", "json"], base_filename="sweep")

    assert set(paths) == {"text", "json"}
    assert (tmp_path / "out" / "sweep.txt").read_text().startswith("Ping Report")
    assert report.existing_reports(["text", "json"], "sweep") == [paths["text"], paths["json"]]
    assert report.existing_reports(["text"], "other") == []


def test_json_export(result, tmp_path):
    path = JSONExporter(str(tmp_path)).export_result(result, filename="sweep.json")
    with open(path) as f:
        data = json.load(f)

    assert data["completion_reason"] == "last_reply"
    assert data["summary"]["sent"] == 6
    assert data["summary"]["lost"] == 1
    assert data["targets"][1]["address"] == "10.0.0.2"
    assert [p["outcome"] for p in data["targets"][1]["probes"]] == ["timeout", "no_reply", "replied"]
    assert data["targets"][0]["probes"][0] == {"sequence": 1, "outcome": "replied", "elapsed_us": 400}
