# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class BackendState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    LOADING = "LOADING"
    READY = "READY"
    FAILED = "FAILED"


class BackendKind(str, Enum):
    NATIVE = "NATIVE"
    FALLBACK = "FALLBACK"


class FallbackReason(str, Enum):
    DISABLED = "DISABLED"
    LIBRARY_NOT_FOUND = "LIBRARY_NOT_FOUND"
    INIT_FAILED = "INIT_FAILED"
    MISSING_CAPABILITY = "MISSING_CAPABILITY"
    TIMEOUT = "TIMEOUT"
    LOADER_ERROR = "LOADER_ERROR"


@dataclass(frozen=True)
class LoadOutcome:
    """
    Result of one load cycle.

    kind   : which backend ended up published
    reason : why the fallback strategy was applied (None for NATIVE)
    detail : LOCAL-ONLY description of the underlying failure
    """
    kind: BackendKind
    reason: Optional[FallbackReason] = None
    detail: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.kind == BackendKind.FALLBACK
