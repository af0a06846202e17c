# MIT License © 2025 Motohiro Suzuki
"""
crypto/zeroize.py

Best-effort wiping of scratch buffers that held seed / key material.

Reality check (Python):
- 'bytes' is immutable; the original object cannot be wiped.
- 'bytearray' and ctypes arrays CAN be wiped in place.

Used around the native call boundary: every ctypes buffer we allocate for
seeds / secret keys is wiped right after its content was copied out.
"""

from __future__ import annotations

import ctypes
from typing import Any


def wipe_bytearray(b: bytearray) -> None:
    """In-place wipe for mutable buffer."""
    for i in range(len(b)):
        b[i] = 0


def wipe_ctypes_buffer(buf: Any) -> None:
    """In-place wipe for a ctypes array (c_ubyte * n)."""
    ctypes.memset(ctypes.addressof(buf), 0, ctypes.sizeof(buf))


def wipe_all(*bufs: Any) -> None:
    """
    Wipe every wipeable buffer given. Never raises: wiping runs in finally
    blocks and must not mask the original exception.
    """
    for b in bufs:
        try:
            if b is None:
                continue
            if isinstance(b, bytearray):
                wipe_bytearray(b)
            elif isinstance(b, ctypes.Array):
                wipe_ctypes_buffer(b)
        except Exception:
            continue
