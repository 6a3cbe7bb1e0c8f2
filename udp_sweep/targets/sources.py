"""Target address acquisition: manual entry, address files and CIDR blocks."""

import re
from ipaddress import IPv4Address, IPv4Network, AddressValueError
from pathlib import Path
from typing import Iterable, List

from ..models.matrix import MAX_TARGETS

MIN_PREFIX = 24
MAX_PREFIX = 32

_CIDR_RE = re.compile(r"^\s*(\d{1,3}(?:\.\d{1,3}){3})/(\d{1,2})\s*$")
_SEPARATORS = re.compile(r"[\s,]+")


class TargetError(ValueError):
    """Invalid target input."""


def parse_address(text: str) -> IPv4Address:
    """Parse a single dotted-quad IPv4 address."""
    try:
        return IPv4Address(text.strip())
    except AddressValueError as e:
        raise TargetError(f"Invalid IPv4 address '{text.strip()}': {e}") from e


def parse_address_list(text: str) -> List[IPv4Address]:
    """Parse whitespace or comma separated addresses, as typed by a user."""
    tokens = [t for t in _SEPARATORS.split(text.strip()) if t]
    if not tokens:
        raise TargetError("No addresses entered")
    return [parse_address(token) for token in tokens]


def load_address_file(path: str) -> List[IPv4Address]:
    """
    Read one address per line.

    Blank lines and lines starting with '#' are skipped. The first invalid
    line aborts the load.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise TargetError(f"File does not exist: {path}")

    addresses = []
    with open(file_path, 'r') as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                addresses.append(parse_address(line))
            except TargetError as e:
                raise TargetError(f"{path}:{lineno}: {e}") from e

    if not addresses:
        raise TargetError(f"No addresses found in {path}")
    return addresses


def expand_cidr(text: str) -> List[IPv4Address]:
    """
    Expand a.b.c.d/m (24 <= m <= 32) into the host addresses of its block.

    /32 yields the address itself and /31 yields both addresses of the
    point-to-point pair. Wider blocks exclude their network and broadcast
    addresses. Host bits in the given address are allowed and select the
    containing block.
    """
    match = _CIDR_RE.match(text)
    if not match:
        raise TargetError(f"Invalid CIDR '{text.strip()}'. Use the form x.x.x.x/m")

    address = parse_address(match.group(1))
    prefix = int(match.group(2))
    if not MIN_PREFIX <= prefix <= MAX_PREFIX:
        raise TargetError(
            f"Prefix /{prefix} not supported. Use {MIN_PREFIX} <= m <= {MAX_PREFIX}"
        )

    if prefix == 32:
        return [address]

    network = IPv4Network(f"{address}/{prefix}", strict=False)
    if prefix == 31:
        return list(network)
    return list(network.hosts())


def validate_targets(addresses: Iterable[IPv4Address]) -> List[IPv4Address]:
    """Check a target list fits in one sweep."""
    targets = list(addresses)
    if not targets:
        raise TargetError("No targets given")
    if len(targets) > MAX_TARGETS:
        raise TargetError(f"Too many targets: {len(targets)} (max {MAX_TARGETS} per sweep)")
    return targets
