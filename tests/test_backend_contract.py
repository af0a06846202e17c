# MIT License © 2025 Motohiro Suzuki
"""
Shared contract: every published backend must satisfy these, whichever
implementation is behind the provider.
"""
import pytest

from falconkit.crypto.keys import KeyPair
from falconkit.provider.errors import InvalidInput

SALT8 = b"saltsalt"


def test_constants(provider):
    c = provider.constants
    assert (c.min_seed_length, c.public_key_length, c.secret_key_length, c.signature_length) == (48, 897, 1281, 666)


def test_generate_seed_shape(provider):
    s = provider.generate_seed()
    assert isinstance(s, bytes)
    assert len(s) == 48


def test_keypair_shape_and_determinism(provider):
    s = bytes(range(48))
    kp = provider.keypair_from_seed(s)
    assert isinstance(kp, KeyPair)
    assert isinstance(kp.public_key, bytes) and isinstance(kp.secret_key, bytes)
    assert (len(kp.public_key), len(kp.secret_key)) == (897, 1281)
    assert provider.keypair_from_seed(s) == kp


def test_seed_boundary(provider):
    with pytest.raises(InvalidInput):
        provider.keypair_from_seed(bytes(47))
    provider.keypair_from_seed(bytes(48))


def test_passphrase_rules(provider):
    with pytest.raises(InvalidInput):
        provider.seed_from_passphrase(b"", SALT8, 10)
    with pytest.raises(InvalidInput):
        provider.seed_from_passphrase(b"pass", b"1234567", 10)
    with pytest.raises(InvalidInput):
        provider.seed_from_passphrase(b"pass", SALT8, 0)
    s = provider.seed_from_passphrase(b"pass", SALT8, 10)
    assert isinstance(s, bytes) and len(s) == 48
    assert provider.stretch_passphrase(b"pass", SALT8, 10) == s
    assert provider.keypair_from_passphrase(b"pass", SALT8, 10) == provider.keypair_from_seed(s)


def test_child_derivation(provider):
    m = bytes(range(48))
    c = provider.derive_child_seed(m, 3)
    assert isinstance(c, bytes) and len(c) == 48
    assert provider.derive_child_seed(m, 3) == c
    assert len({provider.derive_child_seed(m, i) for i in range(5)}) > 1
    assert provider.keypair_from_index(m, 3) == provider.keypair_from_seed(c)
    with pytest.raises(InvalidInput):
        provider.derive_child_seed(bytes(47), 0)


def test_sign_verify(provider):
    kp = provider.keypair_from_seed(bytes(range(48)))
    other = provider.keypair_from_seed(bytes(range(100, 148)))
    sig = provider.sign(b"message", kp.secret_key)
    assert isinstance(sig, bytes) and len(sig) == 666
    assert provider.verify(b"message", sig, kp.public_key) is True
    assert provider.verify(b"message", sig, other.public_key) is False
    assert provider.verify(b"other", sig, kp.public_key) is False
    with pytest.raises(InvalidInput):
        provider.sign(b"message", b"")


@pytest.mark.parametrize("length", [0, 665, 667])
def test_verify_is_total(provider, length):
    kp = provider.keypair_from_seed(bytes(48))
    assert provider.verify(b"m", bytes(length), kp.public_key) is False
    assert provider.verify(b"m", bytes(666), b"") is False
