# MIT License © 2025 Motohiro Suzuki
"""
provider/backends.py

One operation surface, two implementations:

- NativeBackend   : real Falcon-512 via ctypes (crypto/falcon_ctypes.py)
- FallbackBackend : deterministic stand-in built from crypto/seed.py,
                    crypto/keys.py and crypto/fallback_sig.py (NOT secure)

Heavy deps (ctypes library, cryptography KDFs) are touched lazily so this
module always imports, even on hosts without the native library.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from falconkit.crypto import fallback_sig, keys, seed
from falconkit.crypto.keys import KeyPair
from falconkit.crypto.params import (
    DEFAULT_CONSTANTS,
    SEED_LENGTH,
    SIGNATURE_LENGTH,
    FalconConstants,
    as_bytes,
    require_passphrase_args,
    require_seed,
    require_u32,
)
from falconkit.provider.config import ProviderConfig
from falconkit.provider.errors import InvalidInput
from falconkit.provider.state import BackendKind

# Capabilities an acquired backend must expose before it can be published.
REQUIRED_CAPABILITIES = ("generate_seed", "keypair_from_seed")

_HKDF_INFO_CHILD = b"falconkit/child-seed/v1"


class FalconBackend:
    name: str
    kind: BackendKind
    constants: FalconConstants = DEFAULT_CONSTANTS

    async def init(self) -> None:
        return None

    def init_sync(self) -> None:
        raise NotImplementedError("Synchronous init not supported. Use async init().")

    def generate_seed(self) -> bytes:
        raise NotImplementedError

    def keypair_from_seed(self, seed: bytes) -> KeyPair:
        raise NotImplementedError

    def seed_from_passphrase(self, passphrase: bytes, salt: bytes, iterations: int) -> bytes:
        raise NotImplementedError

    def derive_child_seed(self, master_seed: bytes, index: int) -> bytes:
        raise NotImplementedError

    def sign(self, message: bytes, secret_key: bytes) -> bytes:
        raise NotImplementedError

    def verify(self, message: bytes, signature: bytes, public_key: bytes) -> bool:
        raise NotImplementedError

    # compositions shared by every backend
    def keypair_from_passphrase(self, passphrase: bytes, salt: bytes, iterations: int) -> KeyPair:
        return self.keypair_from_seed(self.seed_from_passphrase(passphrase, salt, iterations))

    def keypair_from_index(self, master_seed: bytes, index: int) -> KeyPair:
        return self.keypair_from_seed(self.derive_child_seed(master_seed, index))

    def close(self) -> None:
        return None


class FallbackBackend(FalconBackend):
    """
    NOTE:
    Deterministic stand-in so the provider is usable without the native
    library. Same shapes and lengths as Falcon-512, none of its security.
    """

    def __init__(self) -> None:
        self.name = "falcon512_fallback"
        self.kind = BackendKind.FALLBACK

    def init_sync(self) -> None:
        return None

    def generate_seed(self) -> bytes:
        return seed.generate_root_seed()

    def keypair_from_seed(self, seed_bytes: bytes) -> KeyPair:
        return keys.keypair_from_seed(seed_bytes)

    def seed_from_passphrase(self, passphrase: bytes, salt: bytes, iterations: int) -> bytes:
        return seed.stretch_passphrase(passphrase, salt, iterations)

    def derive_child_seed(self, master_seed: bytes, index: int) -> bytes:
        return seed.derive_child_seed(master_seed, index)

    def sign(self, message: bytes, secret_key: bytes) -> bytes:
        return fallback_sig.sign(message, secret_key)

    def verify(self, message: bytes, signature: bytes, public_key: bytes) -> bool:
        return fallback_sig.verify(message, signature, public_key)


class NativeBackend(FalconBackend):
    """
    REAL Falcon-512 via the shared library.

    Derivations the library does not export are computed with real KDFs
    from `cryptography`:
      - seed_from_passphrase : PBKDF2-HMAC-SHA512(passphrase, salt, iterations)
      - derive_child_seed    : HKDF-SHA512(master, salt=u32_be(index))
    Input validation is identical to the fallback.
    """

    def __init__(self, pqc) -> None:
        self.name = "falcon512_native"
        self.kind = BackendKind.NATIVE
        self._pqc = pqc

    async def init(self) -> None:
        await asyncio.to_thread(self._pqc.init)

    def generate_seed(self) -> bytes:
        return self._pqc.generate_seed()

    def keypair_from_seed(self, seed_bytes: bytes) -> KeyPair:
        pk, sk = self._pqc.keypair_from_seed(require_seed("seed", seed_bytes))
        return KeyPair(public_key=pk, secret_key=sk)

    def seed_from_passphrase(self, passphrase: bytes, salt: bytes, iterations: int) -> bytes:
        p, s, n = require_passphrase_args(passphrase, salt, iterations)
        if self._pqc.has_passphrase_kdf:
            return self._pqc.seed_from_passphrase(p, s, n)

        from cryptography.hazmat.primitives import hashes
        from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

        kdf = PBKDF2HMAC(algorithm=hashes.SHA512(), length=SEED_LENGTH, salt=s, iterations=n)
        return kdf.derive(p)

    def derive_child_seed(self, master_seed: bytes, index: int) -> bytes:
        m = require_seed("master_seed", master_seed)
        i = require_u32("index", index)
        if self._pqc.has_child_derivation:
            return self._pqc.derive_child_seed(m, i)

        from cryptography.hazmat.primitives import hashes
        from cryptography.hazmat.primitives.kdf.hkdf import HKDF

        kdf = HKDF(algorithm=hashes.SHA512(), length=SEED_LENGTH, salt=i.to_bytes(4, "big"), info=_HKDF_INFO_CHILD)
        return kdf.derive(m)

    def sign(self, message: bytes, secret_key: bytes) -> bytes:
        msg = as_bytes("message", message)
        sk = as_bytes("secret_key", secret_key)
        if len(sk) == 0:
            raise InvalidInput("secret_key must not be empty")
        return self._pqc.sign(msg, sk)

    def verify(self, message: bytes, signature: bytes, public_key: bytes) -> bool:
        try:
            msg = as_bytes("message", message)
            sig = as_bytes("signature", signature)
            pk = as_bytes("public_key", public_key)
        except InvalidInput:
            return False
        if len(sig) != SIGNATURE_LENGTH or len(pk) == 0:
            return False
        return self._pqc.verify(msg, sig, pk)


async def acquire_native_backend(config: ProviderConfig) -> NativeBackend:
    """
    Default loader: locate + open the shared library (worker thread), bind
    symbols, then await init(). Raises BackendLoadFailure on any problem.
    """
    from falconkit.crypto.falcon_ctypes import FalconCTypes, candidate_lib_paths, load_cdll

    paths = candidate_lib_paths(config.library, config.search_dirs)
    lib = await asyncio.to_thread(load_cdll, paths)
    backend = NativeBackend(FalconCTypes(lib))
    await backend.init()
    return backend


def missing_capabilities(backend: object) -> list[str]:
    return [c for c in REQUIRED_CAPABILITIES if not callable(getattr(backend, c, None))]


def make_fallback_backend() -> FallbackBackend:
    return FallbackBackend()


def keypair_like(result: object) -> Optional[KeyPair]:
    """
    Normalize a keypair result coming from an arbitrary backend:
      - KeyPair
      - (pk, sk) tuple
      - object/dict with public_key / secret_key (bytes or zero-arg callables)
    """
    if isinstance(result, KeyPair):
        return result
    if isinstance(result, tuple) and len(result) == 2:
        return KeyPair(public_key=bytes(result[0]), secret_key=bytes(result[1]))

    def _field(name: str):
        v = result.get(name) if isinstance(result, dict) else getattr(result, name, None)
        return v() if callable(v) else v

    pk = _field("public_key")
    sk = _field("secret_key")
    if pk is None or sk is None:
        return None
    return KeyPair(public_key=bytes(pk), secret_key=bytes(sk))
