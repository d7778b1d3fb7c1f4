"""Deterministic rollout bucketing.

The hash must stay bit-for-bit compatible with the clients and replicas that
bucket the same (flag, context) pairs: a 32-bit polynomial rolling hash
(``h * 31 + unit``) over the UTF-16 code units of ``"<key>:<json context>"``,
wrapped to a signed 32-bit integer, then made non-negative.
"""

import typing as t

import orjson

_MASK_32 = 0xFFFFFFFF
_SIGN_BIT = 0x80000000


def serialize_context(context: t.Mapping[str, t.Any] | None) -> str:
    """Serialize a bucketing context as compact JSON, preserving key order. Non-string keys are stringified."""
    return orjson.dumps(dict(context) if context else {}, default=str, option=orjson.OPT_NON_STR_KEYS).decode()


def hash_string(value: str) -> int:
    """Return the non-negative 32-bit rolling hash of ``value``."""
    encoded = value.encode("utf-16-le")
    h = 0
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        h = ((h << 5) - h + unit) & _MASK_32
    if h & _SIGN_BIT:
        h -= 1 << 32
    return abs(h)


def bucket(key: str, context: t.Mapping[str, t.Any] | None = None) -> int:
    """Return the bucket (0-99) a context falls into for a flag."""
    return hash_string(f"{key}:{serialize_context(context)}") % 100


def in_rollout(key: str, context: t.Mapping[str, t.Any] | None, rollout_percentage: int) -> bool:
    """Whether the context is inside the first ``rollout_percentage`` buckets of the flag."""
    return bucket(key, context) < rollout_percentage
