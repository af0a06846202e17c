# MIT License © 2025 Motohiro Suzuki
"""
crypto/mixer.py

Deterministic 32-byte byte mixer used by every fallback derivation step.

NOT a cryptographic hash:
- no preimage resistance
- no collision resistance
It only has to be stable across runs and platforms.

Algorithm:
  1) acc[k % 32] += data[k]   (mod 256) for every input byte
  2) one in-place pass i = 0..31:
       acc[i] = (acc[i] << 1 | acc[(i + 1) % 32] >> 7) & 0xFF
     (i = 31 reads the already-updated acc[0])
"""

from __future__ import annotations

DIGEST_SIZE = 32


def mix(data: bytes) -> bytes:
    acc = bytearray(DIGEST_SIZE)
    for k, b in enumerate(bytes(data)):
        acc[k % DIGEST_SIZE] = (acc[k % DIGEST_SIZE] + b) & 0xFF

    for i in range(DIGEST_SIZE):
        acc[i] = ((acc[i] << 1) | (acc[(i + 1) % DIGEST_SIZE] >> 7)) & 0xFF
    return bytes(acc)


def expand(digest: bytes, length: int) -> bytes:
    """Repeat `digest` cyclically to `length` bytes (out[i] = digest[i % len])."""
    if not digest:
        raise ValueError("digest must not be empty")
    n = len(digest)
    return bytes(digest[i % n] for i in range(length))
