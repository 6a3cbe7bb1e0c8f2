import pytest

from udp_sweep.cli import main
from udp_sweep.responder.echo import EchoResponder

from conftest import free_port_pair


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


def test_expand_lists_hosts(capsys):
    assert main(["expand", "10.0.0.0/30"]) == 0
    out = capsys.readouterr().out
    assert "10.0.0.1" in out
    assert "10.0.0.2" in out
    assert "10.0.0.3" not in out


def test_expand_rejects_bad_block():
    assert main(["expand", "10.0.0.0/16"]) == 1


def test_sweep_rejects_bad_targets():
    assert main(["sweep", "-t", "10.0.0.1 nope", "--print"]) == 1


def test_sweep_rejects_bad_count():
    assert main(["sweep", "-s", "10.0.0.0/30", "-n", "0", "--print"]) == 1


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "udp-sweep" in capsys.readouterr().out


def test_sweep_against_local_responder(tmp_path):
    port = free_port_pair()
    responder = EchoResponder(port=port, bind_address="127.0.0.1", receive_timeout=0.05)
    responder.start()
    try:
        code = main([
            "sweep", "-t", "127.0.0.1", "-n", "2", "-p", str(port),
            "--timeout", "2", "-o", str(tmp_path / "reports"),
            "--format", "text,json", "--name", "run",
        ])
    finally:
        responder.stop()

    assert code == 0
    text = (tmp_path / "reports" / "run.txt").read_text()
    assert "-----2 pings to 127.0.0.1-----" in text
    assert text.count("Roundtrip in") == 2
    assert (tmp_path / "reports" / "run.json").exists()
