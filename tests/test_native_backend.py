# MIT License © 2025 Motohiro Suzuki
import asyncio
import hashlib

import pytest

from falconkit.crypto.keys import KeyPair
from falconkit.provider.backends import NativeBackend
from falconkit.provider.errors import InvalidInput
from falconkit.provider.state import BackendKind


class FakePQC:
    """Stands in for FalconCTypes without a shared library."""

    def __init__(self, passphrase_kdf=False, child_derivation=False):
        self.has_passphrase_kdf = passphrase_kdf
        self.has_child_derivation = child_derivation
        self.initialized = False
        self.calls = []

    def init(self):
        self.initialized = True

    def generate_seed(self):
        return bytes([3]) * 48

    def keypair_from_seed(self, seed):
        self.calls.append(("keypair_from_seed", seed))
        return bytes([1]) * 897, bytes([2]) * 1281

    def seed_from_passphrase(self, p, s, n):
        return b"P" * 48

    def derive_child_seed(self, m, i):
        return b"C" * 48

    def sign(self, msg, sk):
        return b"S" * 666

    def verify(self, msg, sig, pk):
        return sig == b"S" * 666


def test_init_runs_library_init():
    pqc = FakePQC()
    backend = NativeBackend(pqc)
    asyncio.run(backend.init())
    assert pqc.initialized is True
    assert backend.kind == BackendKind.NATIVE


def test_init_sync_is_unsupported():
    with pytest.raises(NotImplementedError):
        NativeBackend(FakePQC()).init_sync()


def test_keypair_is_wrapped_and_validated():
    pqc = FakePQC()
    backend = NativeBackend(pqc)
    assert backend.keypair_from_seed(bytes(48)) == KeyPair(bytes([1]) * 897, bytes([2]) * 1281)
    with pytest.raises(InvalidInput):
        backend.keypair_from_seed(bytes(47))
    assert len(pqc.calls) == 1


def test_passphrase_uses_pbkdf2_when_library_lacks_kdf():
    backend = NativeBackend(FakePQC())
    got = backend.seed_from_passphrase(b"pass", b"saltsalt", 10)
    assert got == hashlib.pbkdf2_hmac("sha512", b"pass", b"saltsalt", 10, 48)


def test_passphrase_uses_library_kdf_when_exported():
    backend = NativeBackend(FakePQC(passphrase_kdf=True))
    assert backend.seed_from_passphrase(b"pass", b"saltsalt", 10) == b"P" * 48


def test_passphrase_validation_matches_fallback():
    backend = NativeBackend(FakePQC(passphrase_kdf=True))
    with pytest.raises(InvalidInput):
        backend.seed_from_passphrase(b"", b"saltsalt", 10)
    with pytest.raises(InvalidInput):
        backend.seed_from_passphrase(b"pass", b"short", 10)
    with pytest.raises(InvalidInput):
        backend.seed_from_passphrase(b"pass", b"saltsalt", 0)


def test_child_seed_uses_hkdf_when_library_lacks_derivation():
    backend = NativeBackend(FakePQC())
    m = bytes(range(48))
    c1 = backend.derive_child_seed(m, 1)
    assert len(c1) == 48
    assert c1 == backend.derive_child_seed(m, 1)
    assert c1 != backend.derive_child_seed(m, 2)
    with pytest.raises(InvalidInput):
        backend.derive_child_seed(bytes(47), 1)


def test_child_seed_uses_library_when_exported():
    backend = NativeBackend(FakePQC(child_derivation=True))
    assert backend.derive_child_seed(bytes(48), 1) == b"C" * 48


def test_keypair_from_index_composes():
    pqc = FakePQC(child_derivation=True)
    backend = NativeBackend(pqc)
    backend.keypair_from_index(bytes(48), 4)
    assert pqc.calls == [("keypair_from_seed", b"C" * 48)]


def test_sign_and_verify_delegate():
    backend = NativeBackend(FakePQC())
    sig = backend.sign(b"m", bytes(1281))
    assert backend.verify(b"m", sig, bytes(897)) is True
    with pytest.raises(InvalidInput):
        backend.sign(b"m", b"")
    assert backend.verify(b"m", b"", bytes(897)) is False
    assert backend.verify(b"m", sig, b"") is False


@pytest.mark.parametrize("length", [665, 667])
def test_verify_rejects_wrong_signature_length(length):
    class CountingPQC(FakePQC):
        def verify(self, msg, sig, pk):
            self.calls.append(("verify", len(sig)))
            return True

    pqc = CountingPQC()
    backend = NativeBackend(pqc)
    assert backend.verify(b"m", bytes(length), bytes(897)) is False
    assert pqc.calls == []
