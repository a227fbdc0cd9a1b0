"""Decoding engine implementation wrapping OpenSlide.

This module adapts ``openslide.lowlevel`` to the latched-error convention of
:mod:`slidekit.engine.protocol`. The Python bindings raise ``OpenSlideError``
whenever the C library records an error; the adapter catches those, keeps the
message on the handle and returns a neutral value instead. Sentinel results
the C library hands back without recording an error (``-1`` dimensions for a
bad level, ``-1`` sizes for an unknown associated image) are latched here too.
"""

from __future__ import annotations

import ctypes
from collections.abc import Callable
from typing import TypeVar

from openslide import OpenSlideError, lowlevel
from PIL import Image

from slidekit.engine.buffers import WritableBuffer, copy_into
from slidekit.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Failures raised by the bindings for arguments the C library cannot accept.
_BINDING_ERRORS: tuple[type[Exception], ...] = (
    OpenSlideError,
    ctypes.ArgumentError,
    OverflowError,
)


class OpenSlideHandle:
    """One slide opened through ``openslide.lowlevel``.

    A handle always exists after ``OpenSlideEngine.open``, even when the open
    failed; in that case it holds no live slide and ``get_error`` reports the
    open failure for the rest of its lifetime.
    """

    __slots__ = ("_error", "_osr", "_path")

    def __init__(
        self,
        path: str,
        osr: object | None,
        error: str | None = None,
    ) -> None:
        self._path = path
        self._osr = osr
        self._error = error

    def __repr__(self) -> str:
        """Return string representation."""
        return f"OpenSlideHandle(path={self._path!r})"

    def _latch(self, message: str) -> None:
        if self._error is None:
            logger.debug("Engine error latched", slide=self._path, error=message)
            self._error = message

    def get_error(self) -> str | None:
        """Return the library error if set, else the adapter's latched error."""
        if self._osr is not None:
            error = lowlevel.get_error(self._osr)
            if error:
                return error
        return self._error

    def _call(self, default: T, func: Callable[..., T], *args: object) -> T:
        """Invoke a binding, latching any error and returning ``default``."""
        if self._osr is None or self.get_error():
            return default
        try:
            return func(self._osr, *args)
        except _BINDING_ERRORS as e:
            self._latch(str(e) or type(e).__name__)
            return default

    def close(self) -> None:
        """Close the slide; repeated calls are no-ops."""
        osr, self._osr = self._osr, None
        if osr is not None:
            lowlevel.close(osr)

    def set_cache(self, cache: object) -> None:
        self._call(None, lowlevel.set_cache, cache)

    def get_level_count(self) -> int:
        return self._call(-1, lowlevel.get_level_count)

    def get_level_dimensions(self, level: int) -> tuple[int, int]:
        dimensions = self._call((-1, -1), lowlevel.get_level_dimensions, level)
        if dimensions == (-1, -1):
            self._latch(f"Invalid level {level}")
        return dimensions

    def get_level0_dimensions(self) -> tuple[int, int]:
        return self._call((-1, -1), lowlevel.get_level0_dimensions)

    def get_level_downsample(self, level: int) -> float:
        downsample = self._call(-1.0, lowlevel.get_level_downsample, level)
        if downsample < 0:
            self._latch(f"Invalid level {level}")
        return downsample

    def get_best_level_for_downsample(self, downsample: float) -> int:
        return self._call(-1, lowlevel.get_best_level_for_downsample, downsample)

    def read_region(
        self,
        dest: WritableBuffer,
        x: int,
        y: int,
        level: int,
        width: int,
        height: int,
    ) -> None:
        level_count = self.get_level_count()
        if level_count >= 0 and not 0 <= level < level_count:
            self._latch(f"Invalid level {level}")
            return
        image = self._call(
            None, lowlevel.read_region, x, y, level, width, height
        )
        if image is not None:
            copy_into(dest, _rgba_bytes(image))

    def get_property_names(self) -> list[str]:
        return self._call([], lowlevel.get_property_names)

    def get_property_value(self, name: str) -> str | None:
        return self._call(None, lowlevel.get_property_value, name)

    def get_associated_image_names(self) -> list[str]:
        return self._call([], lowlevel.get_associated_image_names)

    def get_associated_image_dimensions(self, name: str) -> tuple[int, int]:
        dimensions = self._call(
            (-1, -1), lowlevel.get_associated_image_dimensions, name
        )
        if dimensions[0] < 0 or dimensions[1] < 0:
            self._latch(f"Unknown associated image {name!r}")
        return dimensions

    def read_associated_image(self, name: str, dest: WritableBuffer) -> None:
        if self.get_associated_image_dimensions(name)[0] < 0:
            return
        image = self._call(None, lowlevel.read_associated_image, name)
        if image is not None:
            copy_into(dest, _rgba_bytes(image))

    def get_icc_profile_size(self) -> int:
        return self._call(-1, lowlevel.get_icc_profile_size)

    def read_icc_profile(self, dest: WritableBuffer) -> None:
        if self.get_icc_profile_size() <= 0:
            return
        profile = self._call(None, lowlevel.read_icc_profile)
        if profile:
            copy_into(dest, profile)

    def get_associated_image_icc_profile_size(self, name: str) -> int:
        size = self._call(-1, lowlevel.get_associated_image_icc_profile_size, name)
        if size < 0:
            self._latch(f"Unknown associated image {name!r}")
        return size

    def read_associated_image_icc_profile(
        self, name: str, dest: WritableBuffer
    ) -> None:
        if self.get_associated_image_icc_profile_size(name) <= 0:
            return
        profile = self._call(
            None, lowlevel.read_associated_image_icc_profile, name
        )
        if profile:
            copy_into(dest, profile)


def _rgba_bytes(image: Image.Image) -> bytes:
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    return image.tobytes()


class OpenSlideEngine:
    """SlideEngine backed by the OpenSlide C library."""

    def detect_vendor(self, path: str) -> str | None:
        try:
            return lowlevel.detect_vendor(path)
        except _BINDING_ERRORS as e:
            logger.debug("Vendor detection failed", slide=path, error=str(e))
            return None

    def open(self, path: str) -> OpenSlideHandle:
        """Open ``path``, latching any failure on the returned handle."""
        try:
            osr = lowlevel.open(path)
        except _BINDING_ERRORS as e:
            return OpenSlideHandle(path, None, str(e) or f"Failed to open {path}")
        return OpenSlideHandle(path, osr)

    def create_cache(self, capacity: int) -> object | None:
        try:
            return lowlevel.cache_create(capacity)
        except _BINDING_ERRORS as e:
            logger.warning(
                "Engine refused cache allocation", capacity=capacity, error=str(e)
            )
            return None

    def get_version(self) -> str:
        return lowlevel.get_version() or ""
