# MIT License © 2025 Motohiro Suzuki
import asyncio
from types import SimpleNamespace

import pytest

from falconkit.crypto import fallback_sig, keys, seed
from falconkit.provider.config import ProviderConfig
from falconkit.provider.selector import open_provider


def fake_falcon_lib(init_rc=0, **overrides):
    """
    Python stand-ins for the exported C functions. ctypes.byref(x)._obj is x,
    which lets the fakes fill the caller-owned buffers.
    """
    captured = {}

    def falcon_init():
        return init_rc

    def falcon_generate_seed(ref):
        captured["seed"] = ref._obj
        for i in range(48):
            ref._obj[i] = 7

    def falcon_keypair_from_seed(seed_ref, seedlen, pk_ref, sk_ref):
        captured["seed_in"] = seed_ref._obj
        captured["sk"] = sk_ref._obj
        for i in range(len(pk_ref._obj)):
            pk_ref._obj[i] = 1
        for i in range(len(sk_ref._obj)):
            sk_ref._obj[i] = 2
        return 0

    def falcon_sign(msg, mlen, sk_ref, sig_ref):
        for i in range(10):
            sig_ref._obj[i] = 9
        return 10

    def falcon_verify(msg, mlen, sig, siglen, pk):
        return 1

    fns = dict(
        falcon_init=falcon_init,
        falcon_generate_seed=falcon_generate_seed,
        falcon_keypair_from_seed=falcon_keypair_from_seed,
        falcon_sign=falcon_sign,
        falcon_verify=falcon_verify,
    )
    fns.update(overrides)
    fns = {k: v for k, v in fns.items() if v is not None}
    return SimpleNamespace(**fns), captured


class NativeLikeBackend:
    """
    Loader result shaped like a foreign module: keypairs come back as a dict
    of zero-arg callables returning int lists, seeds as lists.
    """

    name = "native_like"

    def __init__(self):
        self.closed = False

    def generate_seed(self):
        return list(seed.generate_root_seed())

    def keypair_from_seed(self, s):
        kp = keys.keypair_from_seed(s)
        return {
            "public_key": lambda: list(kp.public_key),
            "secret_key": lambda: list(kp.secret_key),
        }

    def seed_from_passphrase(self, p, salt, n):
        return list(seed.stretch_passphrase(p, salt, n))

    def derive_child_seed(self, m, i):
        return list(seed.derive_child_seed(m, i))

    def sign(self, msg, sk):
        return list(fallback_sig.sign(msg, sk))

    def verify(self, msg, sig, pk):
        return fallback_sig.verify(msg, sig, pk)

    def close(self):
        self.closed = True


async def native_like_loader(cfg):
    return NativeLikeBackend()


@pytest.fixture(params=["fallback", "native_like"])
def provider(request):
    if request.param == "fallback":
        p = asyncio.run(open_provider(ProviderConfig(backend="fallback")))
    else:
        p = asyncio.run(open_provider(ProviderConfig(), loader=native_like_loader))
    yield p
    p.close()
