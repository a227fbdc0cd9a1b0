"""Decoding engine boundary for slidekit.

The slide layer talks to pixel decoding and vendor parsing only through the
protocols defined here, so it can run against OpenSlide or an in-memory fake.

Key Components:
    - SlideEngine / EngineHandle: Protocols consumed by the slide layer
    - OpenSlideEngine: Implementation over ``openslide.lowlevel``
    - copy_into / pixel_buffer_size: Caller-owned buffer helpers
"""

from slidekit.engine.buffers import (
    BYTES_PER_PIXEL,
    WritableBuffer,
    copy_into,
    pixel_buffer_size,
)
from slidekit.engine.openslide_engine import OpenSlideEngine, OpenSlideHandle
from slidekit.engine.protocol import EngineHandle, SlideEngine

__all__ = [
    "BYTES_PER_PIXEL",
    "EngineHandle",
    "OpenSlideEngine",
    "OpenSlideHandle",
    "SlideEngine",
    "WritableBuffer",
    "copy_into",
    "pixel_buffer_size",
]
