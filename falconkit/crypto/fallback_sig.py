# MIT License © 2025 Motohiro Suzuki
"""
crypto/fallback_sig.py

Deterministic Falcon-512-shaped signature stand-in (NOT secure).

It models the shape boundary only:
- signatures are always SIGNATURE_LENGTH bytes
- sign(m, sk) verifies under the pk materialized from the same seed

    pattern = mixer digest of the originating seed (32 bytes)
    hash    = mix(message || pattern)
    sig[i]  = hash[i % 32] ^ (i & 0xFF)

Signer side: pattern is read back out of sk by undoing SECRET_KEY_OFFSET.
Verifier side: pattern is pk[0:32].
"""

from __future__ import annotations

import hmac

from falconkit.crypto import mixer
from falconkit.crypto.keys import SECRET_KEY_OFFSET
from falconkit.crypto.params import SIGNATURE_LENGTH, as_bytes
from falconkit.provider.errors import InvalidInput

_P = mixer.DIGEST_SIZE


def _pattern_from_secret_key(sk: bytes) -> bytes:
    # sk[i] = h[(i + OFFSET) % 32]  =>  h[j] = sk[(j - OFFSET) % 32]
    n = len(sk)
    return bytes(sk[((j - SECRET_KEY_OFFSET) % _P) % n] for j in range(_P))


def _pattern_from_public_key(pk: bytes) -> bytes:
    return pk[:_P]


def _expected(message: bytes, pattern: bytes) -> bytes:
    h = mixer.mix(message + pattern)
    return bytes(h[i % _P] ^ (i & 0xFF) for i in range(SIGNATURE_LENGTH))


def sign(message: bytes, secret_key: bytes) -> bytes:
    msg = as_bytes("message", message)
    sk = as_bytes("secret_key", secret_key)
    if len(sk) == 0:
        raise InvalidInput("secret_key must not be empty")
    return _expected(msg, _pattern_from_secret_key(sk))


def verify(message: bytes, signature: bytes, public_key: bytes) -> bool:
    """Total: malformed or mismatched input yields False, never an exception."""
    try:
        msg = as_bytes("message", message)
        sig = as_bytes("signature", signature)
        pk = as_bytes("public_key", public_key)
    except InvalidInput:
        return False

    if len(sig) == 0 or len(pk) == 0:
        return False
    if len(sig) != SIGNATURE_LENGTH:
        return False

    exp = _expected(msg, _pattern_from_public_key(pk))
    return hmac.compare_digest(exp, sig)
