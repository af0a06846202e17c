# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from falconkit.provider.state import FallbackReason


class FalconError(Exception):
    pass


class InvalidInput(FalconError, ValueError):
    """Malformed seed / passphrase / salt / iterations / key argument."""
    pass


class NotReady(FalconError):
    """Operation invoked before the provider reached READY."""
    pass


class BackendLoadFailure(FalconError):
    """
    Real backend could not be acquired.
    Raised by loaders, recovered by the provider (never reaches callers).
    """

    def __init__(self, message: str, reason: Optional["FallbackReason"] = None) -> None:
        super().__init__(message)
        self.reason = reason


class NativeCallFailed(FalconError):
    """Native library returned an error code."""
    pass

