"""Probe packet wire format."""

from dataclasses import dataclass, replace

DEFAULT_PORT = 65432  # reply port P; probes go to P + 1
DEFAULT_PACKET_SIZE = 32
DEFAULT_TTL = 128
DEFAULT_MAX_TIME_US = 4_000_000  # 4 seconds

HEADER_SIZE = 3
MAX_INDEX = 255
REPLY_MARKER = 255

TARGET_OFFSET = 0
SEQUENCE_OFFSET = 1
MARKER_OFFSET = 2


@dataclass(frozen=True)
class ProbePacket:
    """
    A single probe, identified by (target index, sequence index).

    Both indices must fit in one byte. The marker stays 0 on the way out
    and is set to REPLY_MARKER by the echo responder.
    """
    target_index: int
    sequence: int
    marker: int = 0

    def __post_init__(self):
        for name in ("target_index", "sequence", "marker"):
            value = getattr(self, name)
            if not 0 <= value <= MAX_INDEX:
                raise ValueError(f"{name} must be in 0..{MAX_INDEX}, got {value}")

    @property
    def is_reply(self) -> bool:
        return self.marker == REPLY_MARKER

    def as_reply(self) -> "ProbePacket":
        """Return a copy stamped with the reply marker."""
        return replace(self, marker=REPLY_MARKER)

    def encode(self, packet_size: int = DEFAULT_PACKET_SIZE) -> bytes:
        """Serialize into a zero-padded datagram of packet_size bytes."""
        if packet_size < HEADER_SIZE:
            raise ValueError(
                f"packet_size must be at least {HEADER_SIZE} bytes, got {packet_size}"
            )
        payload = bytearray(packet_size)
        payload[TARGET_OFFSET] = self.target_index
        payload[SEQUENCE_OFFSET] = self.sequence
        payload[MARKER_OFFSET] = self.marker
        return bytes(payload)

    @classmethod
    def decode(cls, data: bytes) -> "ProbePacket":
        """Parse the header of a received datagram. Padding is ignored."""
        if len(data) < HEADER_SIZE:
            raise ValueError(f"datagram too short: {len(data)} bytes")
        return cls(
            target_index=data[TARGET_OFFSET],
            sequence=data[SEQUENCE_OFFSET],
            marker=data[MARKER_OFFSET],
        )


def reflect(data: bytes) -> bytes:
    """Stamp the reply marker into a received probe, keeping its length."""
    if len(data) < HEADER_SIZE:
        raise ValueError(f"datagram too short: {len(data)} bytes")
    reply = bytearray(data)
    reply[MARKER_OFFSET] = REPLY_MARKER
    return bytes(reply)
