"""
Run and event identifiers.

Both kinds are ``<prefix>-<ulid>``. The ULID half leads with a millisecond
timestamp, so run directories under the log dir sort oldest first and events
replayed from a bus sort in publish order.
"""

from __future__ import annotations

import secrets
import time
from collections.abc import Callable
from functools import reduce
from typing import Final

CROCKFORD_ALPHABET: Final[str] = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
ULID_LENGTH: Final[int] = 26
RUN_PREFIX: Final[str] = "run"
EVENT_PREFIX: Final[str] = "evt"

_ENTROPY_BYTES: Final[int] = 10
_TIMESTAMP_LIMIT: Final[int] = 1 << 48
_DIGITS: Final[dict[str, int]] = {char: value for value, char in enumerate(CROCKFORD_ALPHABET)}

EntropySource = Callable[[int], bytes]

__all__ = [
    "CROCKFORD_ALPHABET",
    "EVENT_PREFIX",
    "RUN_PREFIX",
    "ULID_LENGTH",
    "generate_event_id",
    "generate_run_id",
    "generate_ulid",
    "ulid_timestamp_ms",
    "validate_event_id",
    "validate_run_id",
    "validate_ulid",
]


def generate_ulid(
    *, timestamp_ms: int | None = None, randbytes: EntropySource | None = None
) -> str:
    """Return a new 26-character ULID.

    ``timestamp_ms`` and ``randbytes`` exist so tests can pin the output.
    """
    millis = time.time_ns() // 1_000_000 if timestamp_ms is None else timestamp_ms
    if not isinstance(millis, int) or not 0 <= millis < _TIMESTAMP_LIMIT:
        raise ValueError(f"timestamp_ms out of range [0, 2**48): {millis!r}")
    entropy = bytes((randbytes or secrets.token_bytes)(_ENTROPY_BYTES))
    if len(entropy) != _ENTROPY_BYTES:
        raise ValueError(f"randbytes must return exactly {_ENTROPY_BYTES} bytes")

    value = millis << 80 | int.from_bytes(entropy, "big")
    return "".join(CROCKFORD_ALPHABET[(value >> shift) & 0x1F] for shift in range(125, -5, -5))


def validate_ulid(value: str) -> None:
    _decode(value)


def ulid_timestamp_ms(value: str) -> int:
    """Millisecond timestamp embedded in ``value``."""
    return _decode(value) >> 80


def generate_run_id(
    *, timestamp_ms: int | None = None, randbytes: EntropySource | None = None
) -> str:
    return f"{RUN_PREFIX}-{generate_ulid(timestamp_ms=timestamp_ms, randbytes=randbytes)}"


def validate_run_id(value: str) -> None:
    _validate_prefixed(value, RUN_PREFIX)


def generate_event_id(
    *, timestamp_ms: int | None = None, randbytes: EntropySource | None = None
) -> str:
    return f"{EVENT_PREFIX}-{generate_ulid(timestamp_ms=timestamp_ms, randbytes=randbytes)}"


def validate_event_id(value: str) -> None:
    _validate_prefixed(value, EVENT_PREFIX)


def _validate_prefixed(value: str, prefix: str) -> None:
    if not isinstance(value, str):
        raise ValueError(f"{prefix} id must be a string, got {type(value).__name__}")
    head, separator, tail = value.partition("-")
    if head != prefix or not separator:
        raise ValueError(f"expected prefix '{prefix}-' in {value!r}")
    try:
        _decode(tail)
    except ValueError as exc:
        raise ValueError(f"invalid {prefix} id {value!r}: {exc}") from exc


def _decode(value: str) -> int:
    if not isinstance(value, str):
        raise ValueError(f"ulid must be a string, got {type(value).__name__}")
    if len(value) != ULID_LENGTH:
        raise ValueError(f"ulid length must be {ULID_LENGTH}, got {len(value)}")
    try:
        digits = [_DIGITS[char] for char in value.upper()]
    except KeyError as exc:
        raise ValueError(f"invalid ULID character {exc.args[0]!r}") from None
    # 26 base32 digits carry 130 bits; the top two must be zero.
    if digits[0] > 7:
        raise ValueError("ulid overflow: value exceeds 128 bits")
    return reduce(lambda acc, digit: acc << 5 | digit, digits, 0)
