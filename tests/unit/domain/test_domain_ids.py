"""Unit tests for run and event ID helpers."""

from __future__ import annotations

import pytest

from site_orchestrator.domain import ids


def _ff_bytes(size: int) -> bytes:
    return b"\xff" * size


def _zero_bytes(size: int) -> bytes:
    return b"\x00" * size


def test_generated_ulids_do_not_collide() -> None:
    generated = {ids.generate_ulid() for _ in range(5_000)}
    assert len(generated) == 5_000


def test_ulid_charset_length_and_invalid_chars() -> None:
    value = ids.generate_ulid(timestamp_ms=123_456, randbytes=_ff_bytes)
    assert len(value) == ids.ULID_LENGTH
    assert all(char in ids.CROCKFORD_ALPHABET for char in value)

    ids.validate_ulid(value.lower())

    with pytest.raises(ValueError, match="ulid length must be"):
        ids.validate_ulid("0" * 25)
    with pytest.raises(ValueError, match="invalid ULID character"):
        ids.validate_ulid("U" + "0" * 25)
    with pytest.raises(ValueError, match="overflow"):
        ids.validate_ulid("8" + "0" * 25)


def test_run_and_event_ids_carry_their_prefix() -> None:
    run_id = ids.generate_run_id(timestamp_ms=1, randbytes=_zero_bytes)
    event_id = ids.generate_event_id(timestamp_ms=1, randbytes=_zero_bytes)

    assert run_id.startswith("run-")
    ids.validate_run_id(run_id)
    ids.validate_event_id(event_id)
    with pytest.raises(ValueError, match="expected prefix"):
        ids.validate_event_id(run_id)


def test_timestamp_and_randbytes_are_checked() -> None:
    with pytest.raises(ValueError, match="out of range"):
        ids.generate_ulid(timestamp_ms=-1)
    with pytest.raises(ValueError, match="exactly"):
        ids.generate_ulid(randbytes=lambda size: b"\x00")


def test_deterministic_inputs_give_deterministic_ids() -> None:
    first = ids.generate_run_id(timestamp_ms=42, randbytes=_zero_bytes)
    second = ids.generate_run_id(timestamp_ms=42, randbytes=_zero_bytes)

    assert first == second


def test_run_ids_sort_by_creation_time() -> None:
    earlier = ids.generate_run_id(timestamp_ms=1_000, randbytes=_ff_bytes)
    later = ids.generate_run_id(timestamp_ms=1_001, randbytes=_zero_bytes)

    assert earlier < later
    assert ids.ulid_timestamp_ms(later.removeprefix("run-")) == 1_001
