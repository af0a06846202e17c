# MIT License © 2025 Motohiro Suzuki
"""
crypto/falcon_ctypes.py

Real Falcon-512 backend via ctypes.

Assumption:
- You have a shared library (liboqs-based wrapper) that exports the same
  function set the Emscripten build exports.

We intentionally FAIL-CLOSED here:
- If the library cannot be loaded or a required symbol is missing we raise
  BackendLoadFailure. Falling back is the provider's decision, not ours.

Required symbols:
- falcon_init()                                           -> int (0 success)
- falcon_generate_seed(seed_ptr)                          -> void (48 bytes)
- falcon_keypair_from_seed(seed_ptr, seedlen, pk, sk)     -> int (0 success)
- falcon_sign(msg_ptr, mlen, sk_ptr, sig_ptr)             -> int (siglen, <0 failure)
- falcon_verify(msg_ptr, mlen, sig_ptr, siglen, pk_ptr)   -> int (1 valid)

Optional symbols (derivation done by the library when present):
- falcon_seed_from_passphrase(pw, pwlen, salt, saltlen, iterations, out48) -> int
- falcon_derive_child_seed(master, masterlen, index, out48)                -> int

Ownership:
- Every buffer is a ctypes array allocated on the Python side. The library
  never allocates for us, so there is nothing to free across the boundary.
- Buffers that held seeds / secret keys are wiped after copy-out.

Shapes:
- Signatures shorter than SIGNATURE_LENGTH are zero-padded, so callers always
  see 666 bytes (the padded Falcon-512 format).
"""

from __future__ import annotations

import ctypes
import os
from typing import Iterable, Optional

from falconkit.crypto.params import (
    PUBLIC_KEY_LENGTH,
    SECRET_KEY_LENGTH,
    SEED_LENGTH,
    SIGNATURE_LENGTH,
)
from falconkit.crypto.zeroize import wipe_all
from falconkit.provider.errors import BackendLoadFailure, NativeCallFailed
from falconkit.provider.state import FallbackReason

# --------
# Symbol names (adjust here if your library exports different names)
# --------
_SYM_INIT = "falcon_init"
_SYM_GENERATE_SEED = "falcon_generate_seed"
_SYM_KEYPAIR_FROM_SEED = "falcon_keypair_from_seed"
_SYM_SIGN = "falcon_sign"
_SYM_VERIFY = "falcon_verify"
_SYM_SEED_FROM_PASSPHRASE = "falcon_seed_from_passphrase"
_SYM_DERIVE_CHILD_SEED = "falcon_derive_child_seed"

LIB_NAMES = (
    "libfalcon_wasm.so",
    "libfalcon_wasm.dylib",
    "libfalcon.so",
    "libfalcon.dylib",
    "falcon.dll",
)


def candidate_lib_paths(explicit: Optional[str], search_dirs: Iterable[str]) -> list[str]:
    """
    Search order:
    1) explicit path (config / env FALCONKIT_LIB)
    2) search_dirs x LIB_NAMES
    """
    out: list[str] = []
    if explicit:
        out.append(explicit)
    for b in search_dirs:
        for n in LIB_NAMES:
            out.append(os.path.join(b, n))

    # de-dup while preserving order
    seen = set()
    uniq: list[str] = []
    for p in out:
        if p and p not in seen:
            uniq.append(p)
            seen.add(p)
    return uniq


def load_cdll(paths: Iterable[str]) -> ctypes.CDLL:
    last_err: Exception | None = None
    for p in paths:
        try:
            if os.path.exists(p):
                return ctypes.CDLL(p)
        except OSError as e:
            last_err = e
            continue
    raise BackendLoadFailure(
        "Falcon library not found / not loadable. "
        "Set env FALCONKIT_LIB to the full path of your shared library."
        + (f" last_err={last_err!r}" if last_err else ""),
        reason=FallbackReason.LIBRARY_NOT_FOUND,
    )


class FalconCTypes:
    """
    Thin wrapper over the Falcon shared library.
    Call init() once before any other method.
    """

    def __init__(self, lib: ctypes.CDLL) -> None:
        self._lib = lib
        self._ready = False
        self._bind()

    # -------------------------
    # binding
    # -------------------------
    def _must(self, name: str):
        try:
            return getattr(self._lib, name)
        except AttributeError as e:
            raise BackendLoadFailure(
                f"Falcon library missing symbol: {name}",
                reason=FallbackReason.MISSING_CAPABILITY,
            ) from e

    def _maybe(self, name: str):
        return getattr(self._lib, name, None)

    def _bind(self) -> None:
        it = self._must(_SYM_INIT)
        gs = self._must(_SYM_GENERATE_SEED)
        kp = self._must(_SYM_KEYPAIR_FROM_SEED)
        sg = self._must(_SYM_SIGN)
        vf = self._must(_SYM_VERIFY)

        it.argtypes = []
        it.restype = ctypes.c_int

        # void generate_seed(uint8_t* out48)
        gs.argtypes = [ctypes.c_void_p]
        gs.restype = None

        # int keypair_from_seed(const uint8_t* seed, size_t seedlen, uint8_t* pk, uint8_t* sk)
        kp.argtypes = [ctypes.c_void_p, ctypes.c_size_t, ctypes.c_void_p, ctypes.c_void_p]
        kp.restype = ctypes.c_int

        # int sign(const uint8_t* msg, size_t mlen, const uint8_t* sk, uint8_t* sig)
        sg.argtypes = [ctypes.c_void_p, ctypes.c_size_t, ctypes.c_void_p, ctypes.c_void_p]
        sg.restype = ctypes.c_int

        # int verify(const uint8_t* msg, size_t mlen, const uint8_t* sig, size_t siglen, const uint8_t* pk)
        vf.argtypes = [ctypes.c_void_p, ctypes.c_size_t, ctypes.c_void_p, ctypes.c_size_t, ctypes.c_void_p]
        vf.restype = ctypes.c_int

        self._init_fn = it
        self._generate_seed_fn = gs
        self._keypair_fn = kp
        self._sign_fn = sg
        self._verify_fn = vf

        sp = self._maybe(_SYM_SEED_FROM_PASSPHRASE)
        if sp is not None:
            sp.argtypes = [
                ctypes.c_void_p, ctypes.c_size_t,
                ctypes.c_void_p, ctypes.c_size_t,
                ctypes.c_uint32, ctypes.c_void_p,
            ]
            sp.restype = ctypes.c_int
        self._seed_from_passphrase_fn = sp

        dc = self._maybe(_SYM_DERIVE_CHILD_SEED)
        if dc is not None:
            dc.argtypes = [ctypes.c_void_p, ctypes.c_size_t, ctypes.c_uint32, ctypes.c_void_p]
            dc.restype = ctypes.c_int
        self._derive_child_seed_fn = dc

    @property
    def has_passphrase_kdf(self) -> bool:
        return self._seed_from_passphrase_fn is not None

    @property
    def has_child_derivation(self) -> bool:
        return self._derive_child_seed_fn is not None

    # -------------------------
    # lifecycle
    # -------------------------
    def init(self) -> None:
        if self._ready:
            return
        rc = int(self._init_fn())
        if rc != 0:
            raise BackendLoadFailure(f"falcon_init failed rc={rc}", reason=FallbackReason.INIT_FAILED)
        self._ready = True

    def _check_ready(self) -> None:
        if not self._ready:
            raise NativeCallFailed("Falcon library not initialized. Call init() first.")

    # -------------------------
    # operations
    # -------------------------
    def generate_seed(self) -> bytes:
        self._check_ready()
        seed = (ctypes.c_ubyte * SEED_LENGTH)()
        try:
            self._generate_seed_fn(ctypes.byref(seed))
            return bytes(seed)
        finally:
            wipe_all(seed)

    def keypair_from_seed(self, seed: bytes) -> tuple[bytes, bytes]:
        self._check_ready()
        seed_buf = (ctypes.c_ubyte * len(seed)).from_buffer_copy(seed)
        pk = (ctypes.c_ubyte * PUBLIC_KEY_LENGTH)()
        sk = (ctypes.c_ubyte * SECRET_KEY_LENGTH)()
        try:
            rc = int(
                self._keypair_fn(
                    ctypes.byref(seed_buf),
                    ctypes.c_size_t(len(seed)),
                    ctypes.byref(pk),
                    ctypes.byref(sk),
                )
            )
            if rc != 0:
                raise NativeCallFailed(f"falcon_keypair_from_seed failed rc={rc}")
            return bytes(pk), bytes(sk)
        finally:
            wipe_all(seed_buf, sk)

    def sign(self, msg: bytes, sk: bytes) -> bytes:
        self._check_ready()
        msg_b = bytes(msg)
        sk_buf = (ctypes.c_ubyte * len(sk)).from_buffer_copy(sk)
        sig = (ctypes.c_ubyte * SIGNATURE_LENGTH)()
        try:
            n = int(
                self._sign_fn(
                    ctypes.c_char_p(msg_b),
                    ctypes.c_size_t(len(msg_b)),
                    ctypes.byref(sk_buf),
                    ctypes.byref(sig),
                )
            )
            if n < 0:
                raise NativeCallFailed(f"falcon_sign failed rc={n}")
            if n == 0 or n > len(sig):
                raise NativeCallFailed(f"falcon_sign returned invalid siglen={n}")
            # zero-padded to the fixed signature length
            return bytes(sig[:n]) + bytes(SIGNATURE_LENGTH - n)
        finally:
            wipe_all(sk_buf)

    def verify(self, msg: bytes, sig: bytes, pk: bytes) -> bool:
        self._check_ready()
        msg_b = bytes(msg)
        sig_b = bytes(sig)
        pk_b = bytes(pk)
        rc = int(
            self._verify_fn(
                ctypes.c_char_p(msg_b),
                ctypes.c_size_t(len(msg_b)),
                ctypes.c_char_p(sig_b),
                ctypes.c_size_t(len(sig_b)),
                ctypes.c_char_p(pk_b),
            )
        )
        return rc == 1

    def seed_from_passphrase(self, passphrase: bytes, salt: bytes, iterations: int) -> bytes:
        self._check_ready()
        if self._seed_from_passphrase_fn is None:
            raise NativeCallFailed(f"library does not export {_SYM_SEED_FROM_PASSPHRASE}")
        pw = (ctypes.c_ubyte * len(passphrase)).from_buffer_copy(passphrase)
        out = (ctypes.c_ubyte * SEED_LENGTH)()
        try:
            rc = int(
                self._seed_from_passphrase_fn(
                    ctypes.byref(pw),
                    ctypes.c_size_t(len(passphrase)),
                    ctypes.c_char_p(bytes(salt)),
                    ctypes.c_size_t(len(salt)),
                    ctypes.c_uint32(iterations),
                    ctypes.byref(out),
                )
            )
            if rc != 0:
                raise NativeCallFailed(f"falcon_seed_from_passphrase failed rc={rc}")
            return bytes(out)
        finally:
            wipe_all(pw, out)

    def derive_child_seed(self, master_seed: bytes, index: int) -> bytes:
        self._check_ready()
        if self._derive_child_seed_fn is None:
            raise NativeCallFailed(f"library does not export {_SYM_DERIVE_CHILD_SEED}")
        m = (ctypes.c_ubyte * len(master_seed)).from_buffer_copy(master_seed)
        out = (ctypes.c_ubyte * SEED_LENGTH)()
        try:
            rc = int(
                self._derive_child_seed_fn(
                    ctypes.byref(m),
                    ctypes.c_size_t(len(master_seed)),
                    ctypes.c_uint32(index),
                    ctypes.byref(out),
                )
            )
            if rc != 0:
                raise NativeCallFailed(f"falcon_derive_child_seed failed rc={rc}")
            return bytes(out)
        finally:
            wipe_all(m, out)
