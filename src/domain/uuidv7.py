"""
Time-ordered identifiers (UUID version 7).

Layout (128 bits, big-endian):
- 48 bits: Unix time in milliseconds
- 4 bits:  version (0b0111)
- 2 bits:  variant (0b10)
- 74 bits: cryptographically random

Collisions are not checked; uniqueness relies on timestamp plus entropy.
"""

import secrets
import time
import uuid

_TIMESTAMP_BYTES = 6
_RANDOM_BYTES = 10
_MAX_TIMESTAMP = (1 << 48) - 1


def new_uuid7(unix_ms: int | None = None) -> str:
    """
    Generate a UUIDv7 rendered as canonical lowercase 8-4-4-4-12 hex.

    Args:
        unix_ms: Millisecond timestamp to embed (defaults to current time)

    Returns:
        Canonical UUID string

    Raises:
        ValueError: If the timestamp is negative or does not fit in 48 bits
        NotImplementedError: If no cryptographic random source is available
    """
    if unix_ms is None:
        unix_ms = time.time_ns() // 1_000_000
    if unix_ms < 0:
        raise ValueError("negative unix milli timestamp")
    if unix_ms > _MAX_TIMESTAMP:
        raise ValueError("unix milli timestamp exceeds 48 bits")

    buf = bytearray(unix_ms.to_bytes(_TIMESTAMP_BYTES, "big"))
    buf += secrets.token_bytes(_RANDOM_BYTES)
    buf[6] = (buf[6] & 0x0F) | 0x70
    buf[8] = (buf[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(buf)))


def timestamp_ms(value: str) -> int:
    """Extract the embedded millisecond timestamp from a UUIDv7 string."""
    return int.from_bytes(uuid.UUID(value).bytes[:_TIMESTAMP_BYTES], "big")
