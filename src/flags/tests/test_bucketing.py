"""Tests for deterministic rollout bucketing."""

import random

import pytest

from flags.bucketing import bucket, hash_string, in_rollout, serialize_context


@pytest.mark.parametrize(
    "value,expected",
    [
        ("", 0),
        ("a", 97),
        ("hello", 99162322),
        # wraps to the smallest signed 32-bit integer, whose absolute value is 2**31
        ("polygenelubricants", 2147483648),
    ],
)
def test_hash_string_known_values(value: str, expected: int) -> None:
    assert hash_string(value) == expected


def test_hash_string_uses_utf16_code_units() -> None:
    """Characters outside the BMP hash as two surrogate units."""
    high, low = 0xD83C, 0xDF89  # U+1F389
    assert hash_string("\U0001f389") == high * 31 + low


def test_hash_string_is_never_negative() -> None:
    rng = random.Random(7)
    for _ in range(1000):
        assert hash_string(f"{rng.getrandbits(128):x}") >= 0


def test_serialize_context_is_compact_and_ordered() -> None:
    assert serialize_context({"venue_id": "v1", "n": 1}) == '{"venue_id":"v1","n":1}'
    assert serialize_context({"n": 1, "venue_id": "v1"}) == '{"n":1,"venue_id":"v1"}'


def test_serialize_missing_context() -> None:
    assert serialize_context(None) == "{}"
    assert serialize_context({}) == "{}"


def test_serialize_context_with_non_string_keys() -> None:
    assert serialize_context({1: "x", "n": 2}) == '{"1":"x","n":2}'


def test_bucket_hashes_key_and_context() -> None:
    assert bucket("flag", {"a": 1}) == hash_string('flag:{"a":1}') % 100
    assert bucket("flag") == hash_string("flag:{}") % 100


def test_bucket_known_value() -> None:
    assert hash_string("polygenelubricants") % 100 == 48


def test_in_rollout_is_deterministic() -> None:
    context = {"user_id": "42"}
    first = in_rollout("new-checkout", context, 50)
    assert all(in_rollout("new-checkout", context, 50) is first for _ in range(100))


def test_in_rollout_bounds() -> None:
    context = {"user_id": "42"}
    assert not in_rollout("new-checkout", context, 0)
    assert in_rollout("new-checkout", context, 100)


def test_in_rollout_is_monotonic_in_percentage() -> None:
    """A context inside a rollout stays inside when the percentage grows."""
    rng = random.Random(3)
    for _ in range(200):
        context = {"user_id": f"{rng.getrandbits(64):016x}"}
        value = bucket("grow", context)
        assert not in_rollout("grow", context, value)
        assert in_rollout("grow", context, value + 1)


@pytest.mark.parametrize("percentage", [10, 30, 50, 90])
def test_rollout_accuracy(percentage: int) -> None:
    rng = random.Random(percentage)
    samples = 10_000
    contexts = [{"user_id": f"{rng.getrandbits(64):016x}"} for _ in range(samples)]

    inside = sum(in_rollout("accuracy-check", context, percentage) for context in contexts)

    assert abs(inside / samples - percentage / 100) < 0.02
