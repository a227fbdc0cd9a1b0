"""Helpers for writing engine output into caller-owned buffers."""

from __future__ import annotations

from typing import TypeAlias

import numpy as np

# Anything exposing a writable buffer: bytearray, memoryview, numpy.ndarray.
WritableBuffer: TypeAlias = bytearray | memoryview | np.ndarray

BYTES_PER_PIXEL = 4


def pixel_buffer_size(width: int, height: int) -> int:
    """Return the byte count of a ``width`` x ``height`` 32-bit pixel block."""
    return max(0, width) * max(0, height) * BYTES_PER_PIXEL


def copy_into(dest: WritableBuffer, data: bytes) -> None:
    """Copy ``data`` into the start of ``dest``.

    Raises:
        ValueError: If ``dest`` is read-only or smaller than ``data``.
    """
    view = memoryview(dest).cast("B")
    if view.readonly:
        raise ValueError("Destination buffer is read-only")
    if view.nbytes < len(data):
        raise ValueError(
            f"Destination buffer holds {view.nbytes} bytes, need {len(data)} bytes"
        )
    view[: len(data)] = data
