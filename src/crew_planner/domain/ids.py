"""Run identifiers: ``run-<ULID>`` with a 26-character Crockford Base32 ULID."""

from __future__ import annotations

import re
import secrets
import time
from collections.abc import Callable
from typing import Final

CROCKFORD_BASE32_ALPHABET: Final[str] = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
ULID_LENGTH: Final[int] = 26
ULID_RANDOM_BYTES: Final[int] = 10
ULID_MAX_TIMESTAMP_MS: Final[int] = (1 << 48) - 1
RUN_ID_PREFIX: Final[str] = "run"

_RUN_ID_RE: Final[re.Pattern[str]] = re.compile(
    rf"^{RUN_ID_PREFIX}-[{CROCKFORD_BASE32_ALPHABET}]{{{ULID_LENGTH}}}$"
)

_RandBytes = Callable[[int], bytes]


def generate_ulid(
    *,
    timestamp_ms: int | None = None,
    randbytes: _RandBytes | None = None,
) -> str:
    """Generate a ULID as a 26-character uppercase Crockford Base32 string."""
    ts_ms = time.time_ns() // 1_000_000 if timestamp_ms is None else timestamp_ms
    if not 0 <= ts_ms <= ULID_MAX_TIMESTAMP_MS:
        raise ValueError(
            f"timestamp_ms out of range: expected 0..{ULID_MAX_TIMESTAMP_MS}, got {ts_ms}"
        )
    provider = secrets.token_bytes if randbytes is None else randbytes
    random_bytes = bytes(provider(ULID_RANDOM_BYTES))
    if len(random_bytes) != ULID_RANDOM_BYTES:
        raise ValueError(f"randbytes must return exactly {ULID_RANDOM_BYTES} bytes")

    value = (ts_ms << 80) | int.from_bytes(random_bytes, "big")
    chars = []
    for _ in range(ULID_LENGTH):
        value, index = divmod(value, 32)
        chars.append(CROCKFORD_BASE32_ALPHABET[index])
    return "".join(reversed(chars))


def generate_run_id(*, timestamp_ms: int | None = None, randbytes: _RandBytes | None = None) -> str:
    return f"{RUN_ID_PREFIX}-{generate_ulid(timestamp_ms=timestamp_ms, randbytes=randbytes)}"


def validate_run_id(id_str: str) -> None:
    if not isinstance(id_str, str) or _RUN_ID_RE.fullmatch(id_str) is None:
        raise ValueError(f"run id must match {RUN_ID_PREFIX}-<ULID> (got {id_str!r})")


__all__ = [
    "CROCKFORD_BASE32_ALPHABET",
    "RUN_ID_PREFIX",
    "ULID_LENGTH",
    "generate_run_id",
    "generate_ulid",
    "validate_run_id",
]
