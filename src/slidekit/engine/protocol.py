"""Protocols describing the decoding engine consumed by the slide layer.

The engine follows a latched-error convention: calls never raise for slide
problems. A failing call records a message on the handle, returns a neutral
value, and every later call on that handle keeps reporting the same message
through ``get_error``.
"""

from __future__ import annotations

from typing import Protocol

from slidekit.engine.buffers import WritableBuffer


class EngineHandle(Protocol):
    """One slide opened inside the decoding engine."""

    def get_error(self) -> str | None:
        """Return the latched error message, or None while healthy."""
        ...

    def close(self) -> None:
        """Release the engine resources held for this slide."""
        ...

    def set_cache(self, cache: object) -> None:
        """Route this slide's tile reads through an engine cache."""
        ...

    def get_level_count(self) -> int: ...

    def get_level_dimensions(self, level: int) -> tuple[int, int]: ...

    def get_level0_dimensions(self) -> tuple[int, int]: ...

    def get_level_downsample(self, level: int) -> float: ...

    def get_best_level_for_downsample(self, downsample: float) -> int: ...

    def read_region(
        self,
        dest: WritableBuffer,
        x: int,
        y: int,
        level: int,
        width: int,
        height: int,
    ) -> None:
        """Decode ``width*height`` 4-byte pixels into ``dest``.

        Pixels are RGBA with straight alpha, not pre-multiplied.

        Args:
            dest: Caller-owned buffer of at least ``width*height*4`` bytes.
            x: Left edge in level-0 pixel coordinates.
            y: Top edge in level-0 pixel coordinates.
            level: Pyramid level to decode from.
            width: Region width in the level's own pixels.
            height: Region height in the level's own pixels.
        """
        ...

    def get_property_names(self) -> list[str]: ...

    def get_property_value(self, name: str) -> str | None: ...

    def get_associated_image_names(self) -> list[str]: ...

    def get_associated_image_dimensions(self, name: str) -> tuple[int, int]: ...

    def read_associated_image(self, name: str, dest: WritableBuffer) -> None: ...

    def get_icc_profile_size(self) -> int: ...

    def read_icc_profile(self, dest: WritableBuffer) -> None: ...

    def get_associated_image_icc_profile_size(self, name: str) -> int: ...

    def read_associated_image_icc_profile(
        self, name: str, dest: WritableBuffer
    ) -> None: ...


class SlideEngine(Protocol):
    """Factory side of the decoding engine.

    This protocol allows for dependency injection and testing with
    in-memory implementations.
    """

    def detect_vendor(self, path: str) -> str | None:
        """Return the vendor name recognized for ``path``, or None."""
        ...

    def open(self, path: str) -> EngineHandle:
        """Open ``path``; failures are latched on the returned handle."""
        ...

    def create_cache(self, capacity: int) -> object | None:
        """Allocate a tile cache of ``capacity`` bytes, or None on failure."""
        ...

    def get_version(self) -> str:
        """Return the engine version string."""
        ...
