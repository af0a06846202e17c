# MIT License © 2025 Motohiro Suzuki
"""
provider/selector.py

FalconProvider: owned handle around the backend-selection state machine.

    UNINITIALIZED -> LOADING -> READY(native | fallback)
                             -> FAILED (only if even the fallback cannot be built)

Fallback strategy:
- Any failure to acquire the native backend (exception, missing capability,
  timeout raised by the loader) is recovered HERE by publishing
  FallbackBackend. It is logged as a warning and recorded in `outcome`;
  it never propagates to callers.

Lifecycle:
    provider = FalconProvider(config)
    await provider.load()            # or: async with FalconProvider() as p:
    provider.sign(...)
    provider.close()

Rules:
- load() is the only suspension point; everything else is synchronous.
- One load in flight per provider (asyncio.Lock). A second load() waits,
  then runs a fresh cycle that may replace the READY backend. Calls already
  running against the old backend are not cancelled.
- Operations before READY raise NotReady immediately.
- Outputs have the same shape on every backend: a backend that returns a
  seed, key or signature of the wrong length raises NativeCallFailed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from falconkit.crypto.keys import KeyPair
from falconkit.crypto.params import DEFAULT_CONSTANTS, SEED_LENGTH, FalconConstants
from falconkit.provider.backends import (
    FalconBackend,
    acquire_native_backend,
    keypair_like,
    make_fallback_backend,
    missing_capabilities,
)
from falconkit.provider.config import ProviderConfig
from falconkit.provider.errors import BackendLoadFailure, NativeCallFailed, NotReady
from falconkit.provider.state import BackendKind, BackendState, FallbackReason, LoadOutcome

logger = logging.getLogger(__name__)

Loader = Callable[[ProviderConfig], Awaitable[Any]]


def _reason_for(e: BaseException) -> FallbackReason:
    if isinstance(e, BackendLoadFailure) and e.reason is not None:
        return e.reason
    if isinstance(e, (asyncio.TimeoutError, TimeoutError)):
        return FallbackReason.TIMEOUT
    return FallbackReason.LOADER_ERROR


class FalconProvider:
    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        *,
        loader: Optional[Loader] = None,
        fallback_factory: Callable[[], FalconBackend] = make_fallback_backend,
    ) -> None:
        self.config = config if config is not None else ProviderConfig.from_env()
        self._loader: Loader = loader if loader is not None else acquire_native_backend
        self._fallback_factory = fallback_factory

        self._state = BackendState.UNINITIALIZED
        self._backend: Any = None
        self._error: Optional[BaseException] = None
        self._outcome: Optional[LoadOutcome] = None
        self._filler: Optional[FalconBackend] = None
        self._lock = asyncio.Lock()

    # -------------------------
    # state
    # -------------------------
    @property
    def state(self) -> BackendState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == BackendState.READY

    @property
    def error(self) -> Optional[BaseException]:
        """Set only in FAILED. A recovered native failure is NOT an error."""
        return self._error

    @property
    def outcome(self) -> Optional[LoadOutcome]:
        return self._outcome

    @property
    def is_fallback(self) -> bool:
        return self._outcome is not None and self._outcome.is_fallback

    @property
    def fallback_reason(self) -> Optional[FallbackReason]:
        return None if self._outcome is None else self._outcome.reason

    @property
    def backend_name(self) -> Optional[str]:
        if self._backend is None:
            return None
        return getattr(self._backend, "name", type(self._backend).__name__)

    # -------------------------
    # lifecycle
    # -------------------------
    async def load(self, config: Optional[ProviderConfig] = None) -> "FalconProvider":
        async with self._lock:
            if config is not None:
                self.config = config
            self._state = BackendState.LOADING
            self._error = None

            try:
                backend, outcome = await self._acquire()
            except Exception as e:
                self._error = e
                self._state = BackendState.FAILED
                logger.error("Falcon provider failed to build any backend: %r", e)
                return self

            old = self._backend
            self._backend = backend
            self._outcome = outcome
            self._state = BackendState.READY
            if old is not None and old is not backend:
                self._dispose(old)
            return self

    async def _acquire(self) -> tuple[Any, LoadOutcome]:
        if not self.config.native_enabled:
            logger.info("Falcon native backend disabled by config; using fallback")
            return self._fallback_factory(), LoadOutcome(BackendKind.FALLBACK, FallbackReason.DISABLED)

        try:
            backend = await self._loader(self.config)
            missing = missing_capabilities(backend)
            if missing:
                raise BackendLoadFailure(
                    f"native backend missing expected functions: {', '.join(missing)}",
                    reason=FallbackReason.MISSING_CAPABILITY,
                )
        except Exception as e:
            reason = _reason_for(e)
            logger.warning("Failed to load native Falcon backend (%s), using fallback: %s", reason.value, e)
            return self._fallback_factory(), LoadOutcome(BackendKind.FALLBACK, reason, str(e))

        logger.info("Loaded native Falcon-512 backend: %s", getattr(backend, "name", type(backend).__name__))
        return backend, LoadOutcome(BackendKind.NATIVE)

    def close(self) -> None:
        if self._backend is not None:
            self._dispose(self._backend)
        self._backend = None
        self._outcome = None
        self._filler = None
        self._error = None
        self._state = BackendState.UNINITIALIZED

    @staticmethod
    def _dispose(backend: Any) -> None:
        closer = getattr(backend, "close", None)
        if callable(closer):
            closer()

    async def __aenter__(self) -> "FalconProvider":
        return await self.load()

    async def __aexit__(self, *exc) -> None:
        self.close()

    def _ready_backend(self) -> Any:
        if self._state != BackendState.READY or self._backend is None:
            raise NotReady(f"Falcon backend is not ready (state={self._state.value})")
        return self._backend

    # -------------------------
    # published surface
    # -------------------------
    @property
    def constants(self) -> FalconConstants:
        b = self._ready_backend()
        c = getattr(b, "constants", None)
        return c if isinstance(c, FalconConstants) else DEFAULT_CONSTANTS

    def _op(self, name: str) -> Callable[..., Any]:
        """
        Operation lookup on the READY backend. A native backend only has to
        provide REQUIRED_CAPABILITIES; any other operation it lacks is served
        by the fallback implementation.
        """
        b = self._ready_backend()
        fn = getattr(b, name, None)
        if callable(fn):
            return fn
        if self._filler is None:
            self._filler = self._fallback_factory()
        logger.debug("backend %s lacks %s; serving it from the fallback", self.backend_name, name)
        return getattr(self._filler, name)

    def generate_seed(self) -> bytes:
        return self._shaped("generate_seed", self._op("generate_seed")(), SEED_LENGTH)

    def keypair_from_seed(self, seed: bytes) -> KeyPair:
        return self._keypair(self._op("keypair_from_seed")(seed))

    def seed_from_passphrase(self, passphrase: bytes, salt: bytes, iterations: int) -> bytes:
        out = self._op("seed_from_passphrase")(passphrase, salt, iterations)
        return self._shaped("seed_from_passphrase", out, SEED_LENGTH)

    stretch_passphrase = seed_from_passphrase

    def keypair_from_passphrase(self, passphrase: bytes, salt: bytes, iterations: int) -> KeyPair:
        return self.keypair_from_seed(self.seed_from_passphrase(passphrase, salt, iterations))

    def derive_child_seed(self, master_seed: bytes, index: int) -> bytes:
        out = self._op("derive_child_seed")(master_seed, index)
        return self._shaped("derive_child_seed", out, SEED_LENGTH)

    def keypair_from_index(self, master_seed: bytes, index: int) -> KeyPair:
        return self.keypair_from_seed(self.derive_child_seed(master_seed, index))

    def sign(self, message: bytes, secret_key: bytes) -> bytes:
        out = self._op("sign")(message, secret_key)
        return self._shaped("sign", out, self.constants.signature_length)

    def verify(self, message: bytes, signature: bytes, public_key: bytes) -> bool:
        fn = self._op("verify")
        try:
            return bool(fn(message, signature, public_key))
        except Exception as e:
            logger.debug("verify raised inside backend %s; treating as invalid: %r", self.backend_name, e)
            return False

    def _keypair(self, result: Any) -> KeyPair:
        kp = keypair_like(result)
        if kp is None:
            raise NativeCallFailed(f"backend returned an unrecognized keypair: {type(result).__name__}")
        c = self.constants
        self._shaped("keypair_from_seed public_key", kp.public_key, c.public_key_length)
        self._shaped("keypair_from_seed secret_key", kp.secret_key, c.secret_key_length)
        return kp

    @staticmethod
    def _shaped(what: str, data: Any, length: int) -> bytes:
        out = bytes(data)
        if len(out) != length:
            raise NativeCallFailed(f"{what} returned {len(out)} bytes, expected {length}")
        return out


async def open_provider(config: Optional[ProviderConfig] = None, **kw: Any) -> FalconProvider:
    """Create a provider and await readiness in one step."""
    return await FalconProvider(config, **kw).load()
