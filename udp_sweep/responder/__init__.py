"""Echo responder for probed hosts."""

from .echo import EchoResponder, ResponderStats

__all__ = [
    "EchoResponder",
    "ResponderStats",
]
