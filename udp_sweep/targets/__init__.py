"""Target address sources."""

from .sources import (
    TargetError,
    parse_address,
    parse_address_list,
    load_address_file,
    expand_cidr,
    validate_targets,
)

__all__ = [
    "TargetError",
    "parse_address",
    "parse_address_list",
    "load_address_file",
    "expand_cidr",
    "validate_targets",
]
