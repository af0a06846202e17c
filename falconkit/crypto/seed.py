# MIT License © 2025 Motohiro Suzuki
"""
crypto/seed.py

Fallback seed derivation chain.

- generate_root_seed  : 48 bytes from the OS CSPRNG
- stretch_passphrase  : passphrase || salt, mixed min(iterations, 1000) times
- derive_child_seed   : mix(master || u32_be(index))

All outputs are 48 bytes, taken from the 32-byte mixer digest by cyclic
indexing (out[i] = digest[i % 32]).

The 1000-round stretch ceiling is part of the output contract:
iterations=5000 yields exactly the iterations=1000 seed.
"""

from __future__ import annotations

import logging
import os
import random

from falconkit.crypto import mixer
from falconkit.crypto.params import (
    SEED_LENGTH,
    require_passphrase_args,
    require_seed,
    require_u32,
)
from falconkit.crypto.zeroize import wipe_bytearray

logger = logging.getLogger(__name__)

MAX_STRETCH_ROUNDS = 1000


def _weak_random(n: int) -> bytes:
    # NOT unguessable. Only reached when the platform has no CSPRNG.
    rng = random.Random()
    return bytes(rng.getrandbits(8) for _ in range(n))


def generate_root_seed() -> bytes:
    """
    48 random bytes.

    os.urandom raises NotImplementedError when no secure source exists; in
    that case a pseudo-random fill is returned and a warning is logged. The
    return value itself does not tell the two paths apart.
    """
    try:
        return os.urandom(SEED_LENGTH)
    except NotImplementedError:
        logger.warning("no secure randomness source available; root seed uses a pseudo-random fill")
        return _weak_random(SEED_LENGTH)


def stretch_passphrase(passphrase: bytes, salt: bytes, iterations: int) -> bytes:
    p, s, n = require_passphrase_args(passphrase, salt, iterations)

    buf = bytearray(p + s)
    try:
        derived = bytes(buf)
        for _ in range(min(n, MAX_STRETCH_ROUNDS)):
            derived = mixer.mix(derived)
        return mixer.expand(derived, SEED_LENGTH)
    finally:
        wipe_bytearray(buf)


def derive_child_seed(master_seed: bytes, index: int) -> bytes:
    m = require_seed("master_seed", master_seed)
    i = require_u32("index", index)
    return mixer.expand(mixer.mix(m + i.to_bytes(4, "big")), SEED_LENGTH)
