from ipaddress import IPv4Address

import pytest

from udp_sweep.targets.sources import (
    TargetError,
    expand_cidr,
    load_address_file,
    parse_address,
    parse_address_list,
    validate_targets,
)


def ips(*values):
    return [IPv4Address(v) for v in values]


def test_cidr_32_is_single_address():
    assert expand_cidr("10.1.2.3/32") == ips("10.1.2.3")


def test_cidr_31_keeps_both_addresses():
    assert expand_cidr("10.1.2.5/31") == ips("10.1.2.4", "10.1.2.5")


def test_cidr_30_excludes_network_and_broadcast():
    assert expand_cidr("192.168.1.6/30") == ips("192.168.1.5", "192.168.1.6")


def test_cidr_uses_block_containing_address():
    hosts = expand_cidr("192.168.1.20/28")
    assert hosts[0] == IPv4Address("192.168.1.17")
    assert hosts[-1] == IPv4Address("192.168.1.30")
    assert len(hosts) == 14


def test_cidr_24():
    hosts = expand_cidr(" 172.16.5.77/24 ")
    assert len(hosts) == 254
    assert hosts[0] == IPv4Address("172.16.5.1")
    assert hosts[-1] == IPv4Address("172.16.5.254")


@pytest.mark.parametrize("text", [
    "10.0.0.0/23",
    "10.0.0.0/33",
    "10.0.0/24",
    "300.0.0.1/24",
    "10.0.0.1",
    "10.0.0.1/",
    "host/24",
])
def test_invalid_cidr_rejected(text):
    with pytest.raises(TargetError):
        expand_cidr(text)


def test_parse_address():
    assert parse_address(" 8.8.8.8 ") == IPv4Address("8.8.8.8")
    with pytest.raises(TargetError):
        parse_address("8.8.8")


def test_manual_list_accepts_spaces_and_commas():
    assert parse_address_list("10.0.0.1 10.0.0.2,10.0.0.3") == ips("10.0.0.1", "10.0.0.2", "10.0.0.3")
    with pytest.raises(TargetError):
        parse_address_list("   ")
    with pytest.raises(TargetError):
        parse_address_list("10.0.0.1 nope")


def test_address_file(tmp_path):
    path = tmp_path / "hosts.txt"
    path.write_text("# lab hosts\n10.0.0.1\n\n10.0.0.2\n")
    assert load_address_file(str(path)) == ips("10.0.0.1", "10.0.0.2")


def test_address_file_bad_line_names_line_number(tmp_path):
    path = tmp_path / "hosts.txt"
    path.write_text("10.0.0.1\nnot-an-ip\n")
    with pytest.raises(TargetError, match=r"hosts.txt:2"):
        load_address_file(str(path))


def test_address_file_missing_or_empty(tmp_path):
    with pytest.raises(TargetError):
        load_address_file(str(tmp_path / "missing.txt"))

    empty = tmp_path / "empty.txt"
    empty.write_text("# nothing\n")
    with pytest.raises(TargetError):
        load_address_file(str(empty))


def test_validate_targets_enforces_limits():
    assert validate_targets(ips("10.0.0.1")) == ips("10.0.0.1")
    with pytest.raises(TargetError):
        validate_targets([])
    with pytest.raises(TargetError):
        validate_targets([IPv4Address("10.0.0.1")] * 257)
