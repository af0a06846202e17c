# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from falconkit.provider.errors import InvalidInput

ENV_LIB = "FALCONKIT_LIB"
ENV_BACKEND = "FALCONKIT_BACKEND"

BACKEND_AUTO = "auto"
BACKEND_FALLBACK = "fallback"
_BACKEND_MODES = (BACKEND_AUTO, BACKEND_FALLBACK)


def _default_search_dirs() -> tuple[str, ...]:
    cwd = os.getcwd()
    return (
        cwd,
        os.path.join(cwd, "lib"),
        os.path.join(cwd, "build"),
        os.path.join(cwd, "wasm"),
    )


@dataclass(frozen=True)
class ProviderConfig:
    """
    backend:
      - "auto"     : try the native library, fall back on any failure
      - "fallback" : skip the native library entirely
    library:
      explicit shared-library path; searched before search_dirs
    """
    backend: str = BACKEND_AUTO
    library: Optional[str] = None
    search_dirs: tuple[str, ...] = field(default_factory=_default_search_dirs)

    def __post_init__(self) -> None:
        mode = str(self.backend).strip().lower()
        if mode not in _BACKEND_MODES:
            raise InvalidInput(f"unknown backend mode: {self.backend!r} (expected one of {_BACKEND_MODES})")
        object.__setattr__(self, "backend", mode)

        lib = self.library
        if isinstance(lib, str):
            lib = lib.strip() or None
        object.__setattr__(self, "library", lib)

    @property
    def native_enabled(self) -> bool:
        return self.backend == BACKEND_AUTO

    @classmethod
    def from_env(cls, **overrides) -> "ProviderConfig":
        kw = {
            "backend": os.getenv(ENV_BACKEND, "").strip() or BACKEND_AUTO,
            "library": os.getenv(ENV_LIB, "").strip() or None,
        }
        kw.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kw)
