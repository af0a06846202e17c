# MIT License © 2025 Motohiro Suzuki
"""
crypto/params.py

Falcon-512 shape constants and shared argument checks.

Both backends MUST honor these lengths so callers cannot tell them apart
by shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from falconkit.provider.errors import InvalidInput

MIN_SEED_LENGTH = 48
SEED_LENGTH = 48
PUBLIC_KEY_LENGTH = 897
SECRET_KEY_LENGTH = 1281
SIGNATURE_LENGTH = 666
MIN_SALT_LENGTH = 8

U32_MAX = 0xFFFFFFFF


@dataclass(frozen=True)
class FalconConstants:
    min_seed_length: int = MIN_SEED_LENGTH
    public_key_length: int = PUBLIC_KEY_LENGTH
    secret_key_length: int = SECRET_KEY_LENGTH
    signature_length: int = SIGNATURE_LENGTH


DEFAULT_CONSTANTS = FalconConstants()


def as_bytes(name: str, v: Any) -> bytes:
    if isinstance(v, bytes):
        return v
    if isinstance(v, (bytearray, memoryview)):
        return bytes(v)
    raise InvalidInput(f"{name} must be bytes, got {type(v).__name__}")


def require_seed(name: str, seed: Any) -> bytes:
    b = as_bytes(name, seed)
    if len(b) < MIN_SEED_LENGTH:
        raise InvalidInput(f"{name} must be at least {MIN_SEED_LENGTH} bytes (got {len(b)})")
    return b


def require_u32(name: str, x: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if not isinstance(x, int) or isinstance(x, bool):
        raise InvalidInput(f"{name} must be an int")
    if x < 0 or x > U32_MAX:
        raise InvalidInput(f"{name} out of u32 range: {x}")
    return x


def require_passphrase_args(passphrase: Any, salt: Any, iterations: Any) -> tuple[bytes, bytes, int]:
    p = as_bytes("passphrase", passphrase)
    s = as_bytes("salt", salt)
    if len(p) == 0:
        raise InvalidInput("passphrase cannot be empty")
    if len(s) < MIN_SALT_LENGTH:
        raise InvalidInput(f"salt must be at least {MIN_SALT_LENGTH} bytes (got {len(s)})")
    if not isinstance(iterations, int) or isinstance(iterations, bool):
        raise InvalidInput("iterations must be an int")
    if iterations <= 0:
        raise InvalidInput("iterations must be > 0")
    return p, s, iterations
