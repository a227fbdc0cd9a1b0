"""Slide handle over a decoding engine.

This module provides the Slide class, which owns one engine handle, keeps a
sticky error state for it and exposes pyramid geometry, pixel/ICC reads and
the property catalog.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

import numpy as np
from PIL import Image

from slidekit.config import settings
from slidekit.engine.buffers import BYTES_PER_PIXEL, WritableBuffer, pixel_buffer_size
from slidekit.engine.protocol import EngineHandle, SlideEngine
from slidekit.slide.cache import SlideCache
from slidekit.slide.engines import default_engine
from slidekit.slide.exceptions import (
    SlideEngineError,
    SlideError,
    SlideOpenError,
    SlideUninitializedError,
)
from slidekit.slide.properties import engine_property_view, synthesize_catalog
from slidekit.slide.types import Dimensions, SlideState
from slidekit.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

logger = get_logger(__name__)


class Slide:
    """An opened whole-slide image.

    Slides are created with :meth:`open`, which never raises for slide
    problems: a missing file, an unrecognized format or an engine failure
    leaves the slide in an errored state instead. Errors are sticky. Once a
    slide has reported one, every query and read raises the same
    :class:`SlideError` until the slide is closed, and ``has_error`` /
    ``error_message`` report it without raising.

    The coordinate system follows the engine's conventions:
    - Level 0 is the highest resolution (full magnification)
    - Region locations are in level-0 pixel coordinates
    - Region sizes are in the target level's pixel coordinates

    A Slide is not safe for concurrent use from several threads; open one
    Slide per thread (optionally sharing a :class:`SlideCache`) or serialize
    access externally.

    Usage:
        with Slide.open("/path/to/slide.svs") as slide:
            slide.check_error()
            width, height = slide.level0_dimensions()
            region = slide.read_region_array(1000, 2000, 0, 512, 512)

    Attributes:
        path: Path the slide was opened from.
    """

    __slots__ = (
        "_cache",
        "_catalog",
        "_closed",
        "_error",
        "_error_type",
        "_handle",
        "_path",
        "_vendor",
    )

    def __init__(
        self,
        path: str | Path = "",
        handle: EngineHandle | None = None,
        *,
        error: str = "",
        cache: SlideCache | None = None,
        vendor: str = "",
    ) -> None:
        """Wrap an engine handle. Prefer :meth:`open`.

        Args:
            path: Path of the slide file.
            handle: Engine handle to take ownership of.
            error: Error already known to have occurred while opening.
            cache: Cache the handle is bound to, kept alive by this slide.
            vendor: Vendor detected for the file.
        """
        self._path = os.fspath(path)
        self._handle = handle
        self._cache = cache
        self._vendor = vendor
        self._catalog: dict[str, str] | None = None
        self._closed = False
        self._error = ""
        self._error_type: type[SlideError] = SlideOpenError
        if error:
            self._latch(error, SlideOpenError)

    @classmethod
    def open(
        cls,
        path: str | Path,
        cache: SlideCache | None = None,
        *,
        engine: SlideEngine | None = None,
        eager_properties: bool | None = None,
    ) -> Slide:
        """Open a slide file.

        Args:
            path: Path to the slide file.
            cache: Tile cache to share with other slides. Without one the
                engine uses a private cache per slide.
            engine: Decoding engine. Defaults to the cache's engine, then
                to OpenSlide.
            eager_properties: Build the full property catalog now.
                Defaults to ``settings.EAGER_PROPERTIES``.

        Returns:
            A Slide, which is errored if the file could not be opened.
        """
        path = os.fspath(path)
        if engine is None:
            engine = cache.engine if cache is not None else default_engine()
        if eager_properties is None:
            eager_properties = settings.EAGER_PROPERTIES

        if not _is_readable_file(path):
            return cls(path, error=f"File does not exist or cannot be accessed: {path}")

        vendor = engine.detect_vendor(path) or ""
        if not vendor:
            return cls(path, error=f"Unrecognized file format: {path}")

        slide = cls(path, engine.open(path), vendor=vendor)
        slide._observe_engine_error(SlideOpenError)
        if not slide._error:
            slide._bind(cache, eager_properties)

        if not slide._error:
            logger.debug("Slide opened", slide=path, vendor=vendor)
        return slide

    def _bind(self, cache: SlideCache | None, eager_properties: bool) -> None:
        handle = self._handle
        if handle is None:
            return
        if cache is not None:
            handle.set_cache(cache.engine_cache)
            self._cache = cache
        if eager_properties:
            catalog = synthesize_catalog(handle, self._vendor)
            self._observe_engine_error(SlideOpenError)
            if not self._error:
                self._catalog = catalog

    @staticmethod
    def detect_vendor(path: str | Path, engine: SlideEngine | None = None) -> str:
        """Return the vendor recognized for ``path``, or "" if none is."""
        engine = engine or default_engine()
        return engine.detect_vendor(os.fspath(path)) or ""

    @staticmethod
    def engine_version(engine: SlideEngine | None = None) -> str:
        """Return the decoding engine's version string."""
        return (engine or default_engine()).get_version()

    @property
    def path(self) -> str:
        """Return the path the slide was opened from."""
        return self._path

    @property
    def vendor(self) -> str:
        """Return the vendor detected at open time, or "" if none was."""
        return self._vendor

    @property
    def cache(self) -> SlideCache | None:
        """Return the shared cache this slide reads through, if any."""
        return self._cache

    # Error state

    def _latch(self, message: str, error_type: type[SlideError]) -> None:
        if self._error:
            return
        self._error = message
        self._error_type = error_type
        logger.warning("Slide error latched", slide=self._path, error=message)

    def _observe_engine_error(self, error_type: type[SlideError]) -> None:
        """Merge a newly latched engine error into the sticky error."""
        if self._error or self._handle is None:
            return
        message = self._handle.get_error()
        if message:
            self._latch(message, error_type)

    def _checked_handle(self) -> EngineHandle:
        self._observe_engine_error(SlideEngineError)
        if self._error:
            raise self._error_type(self._error, path=self._path or None)
        if self._handle is None:
            message = "Slide is closed" if self._closed else "Slide not initialized"
            raise SlideUninitializedError(message, path=self._path or None)
        return self._handle

    def check_error(self) -> None:
        """Raise the slide's sticky error, if it has one.

        The engine is consulted first, so errors that only surface after the
        operation causing them (such as a decode failure) are picked up.

        Raises:
            SlideOpenError: If opening or cataloging the slide failed.
            SlideEngineError: If the engine latched an error afterwards.
            SlideUninitializedError: If the slide owns no engine handle.
        """
        self._checked_handle()

    @property
    def has_error(self) -> bool:
        """Return True if the slide is errored. Never raises."""
        self._observe_engine_error(SlideEngineError)
        return bool(self._error)

    @property
    def error_message(self) -> str:
        """Return the sticky error message, or "" while healthy. Never raises."""
        self._observe_engine_error(SlideEngineError)
        return self._error

    @property
    def state(self) -> SlideState:
        """Return the slide's lifecycle state."""
        if self.has_error:
            return SlideState.ERRORED
        if self._handle is not None:
            return SlideState.HEALTHY
        return SlideState.CLOSED if self._closed else SlideState.UNINITIALIZED

    # Pyramid geometry

    def level_count(self) -> int:
        """Return the number of pyramid levels."""
        count = self._checked_handle().get_level_count()
        self.check_error()
        return count

    def level_dimensions(self, level: int) -> Dimensions:
        """Return the (width, height) of a pyramid level.

        Raises:
            SlideEngineError: If the engine rejects ``level``.
        """
        dimensions = self._checked_handle().get_level_dimensions(level)
        self.check_error()
        return Dimensions(*dimensions)

    def level0_dimensions(self) -> Dimensions:
        """Return the (width, height) of the full-resolution level."""
        dimensions = self._checked_handle().get_level0_dimensions()
        self.check_error()
        return Dimensions(*dimensions)

    def level_downsample(self, level: int) -> float:
        """Return the downsample factor of a level relative to level 0."""
        downsample = self._checked_handle().get_level_downsample(level)
        self.check_error()
        return downsample

    def best_level_for_downsample(self, downsample: float) -> int:
        """Return the engine's preferred level for a downsample factor.

        This is the coarsest level whose downsample does not exceed
        ``downsample``, or level 0 when none qualifies.
        """
        level = self._checked_handle().get_best_level_for_downsample(downsample)
        self.check_error()
        return level

    # Pixel reads

    def read_region(
        self,
        dest: WritableBuffer,
        x: int,
        y: int,
        level: int,
        width: int,
        height: int,
    ) -> None:
        """Decode a region into a caller-owned buffer.

        Args:
            dest: Writable buffer of at least ``width*height*4`` bytes.
                Pixels are written row-major, 4 bytes each, as RGBA with
                straight alpha (openslide-python un-premultiplies the
                engine output).
            x: Left edge in LEVEL-0 coordinates.
            y: Top edge in LEVEL-0 coordinates.
            level: Pyramid level to read from (0 = highest resolution).
            width: Region width in the level's own pixels.
            height: Region height in the level's own pixels.

        Raises:
            SlideEngineError: If the engine rejects the geometry or fails
                to decode. The slide stays errored afterwards.
            ValueError: If ``dest`` is read-only or too small.
        """
        self._checked_handle().read_region(dest, x, y, level, width, height)
        self.check_error()

    def read_region_array(
        self, x: int, y: int, level: int, width: int, height: int
    ) -> np.ndarray:
        """Read a region into a new ``(height, width, 4)`` uint8 array."""
        dest = np.zeros((max(height, 0), max(width, 0), BYTES_PER_PIXEL), np.uint8)
        self.read_region(dest, x, y, level, width, height)
        return dest

    def read_region_image(
        self, x: int, y: int, level: int, width: int, height: int
    ) -> Image.Image:
        """Read a region as an RGBA PIL Image."""
        pixels = self.read_region_array(x, y, level, width, height)
        height, width = pixels.shape[:2]
        return Image.frombytes("RGBA", (width, height), pixels.tobytes())

    # Properties

    def property_names(self) -> list[str]:
        """Return the property names reported by the engine."""
        names = self._checked_handle().get_property_names()
        self.check_error()
        return names

    def property_value(self, name: str) -> str | None:
        """Return an engine-reported property value, or None if absent."""
        value = self._checked_handle().get_property_value(name)
        self.check_error()
        return value

    @property
    def properties(self) -> Mapping[str, str]:
        """Return the property catalog as a read-only mapping.

        The catalog is built once. Slides opened with ``eager_properties``
        disabled build it here on first access from the engine's reported
        properties, which already carry the engine's geometry keys.
        """
        handle = self._checked_handle()
        if self._catalog is None:
            catalog = engine_property_view(handle, self._vendor)
            self.check_error()
            self._catalog = catalog
        return MappingProxyType(self._catalog)

    @property
    def catalog_populated(self) -> bool:
        """Return True once the property catalog has been built. Never raises."""
        return self._catalog is not None

    # Associated images

    def associated_image_names(self) -> list[str]:
        """Return the names of the embedded associated images."""
        names = self._checked_handle().get_associated_image_names()
        self.check_error()
        return names

    def associated_image_dimensions(self, name: str) -> Dimensions:
        """Return the (width, height) of an associated image."""
        dimensions = self._checked_handle().get_associated_image_dimensions(name)
        self.check_error()
        return Dimensions(*dimensions)

    def read_associated_image(self, name: str, dest: WritableBuffer) -> None:
        """Decode an associated image into a caller-owned buffer.

        ``dest`` must hold ``width*height*4`` bytes, sized from
        :meth:`associated_image_dimensions`.
        """
        self._checked_handle().read_associated_image(name, dest)
        self.check_error()

    def associated_image(self, name: str) -> Image.Image:
        """Read an associated image as an RGBA PIL Image."""
        dimensions = self.associated_image_dimensions(name)
        dest = bytearray(pixel_buffer_size(*dimensions))
        self.read_associated_image(name, dest)
        return Image.frombytes("RGBA", dimensions, bytes(dest))

    # ICC profiles

    def icc_profile_size(self) -> int:
        """Return the slide's ICC profile size in bytes (0 if none)."""
        size = self._checked_handle().get_icc_profile_size()
        self.check_error()
        return size

    def read_icc_profile(self, dest: WritableBuffer) -> None:
        """Copy the slide's ICC profile into a buffer of ``icc_profile_size()`` bytes."""
        self._checked_handle().read_icc_profile(dest)
        self.check_error()

    def icc_profile(self) -> bytes | None:
        """Return the slide's ICC profile, or None if none is embedded."""
        size = self.icc_profile_size()
        if size <= 0:
            return None
        dest = bytearray(size)
        self.read_icc_profile(dest)
        return bytes(dest)

    def associated_image_icc_profile_size(self, name: str) -> int:
        """Return an associated image's ICC profile size in bytes (0 if none)."""
        size = self._checked_handle().get_associated_image_icc_profile_size(name)
        self.check_error()
        return size

    def read_associated_image_icc_profile(
        self, name: str, dest: WritableBuffer
    ) -> None:
        """Copy an associated image's ICC profile into a caller-owned buffer."""
        self._checked_handle().read_associated_image_icc_profile(name, dest)
        self.check_error()

    def associated_image_icc_profile(self, name: str) -> bytes | None:
        """Return an associated image's ICC profile, or None if none is embedded."""
        size = self.associated_image_icc_profile_size(name)
        if size <= 0:
            return None
        dest = bytearray(size)
        self.read_associated_image_icc_profile(name, dest)
        return bytes(dest)

    # Ownership

    def detach(self) -> Slide:
        """Move the engine handle into a new Slide.

        The new slide takes over the handle, catalog and cache. This slide
        keeps its path and sticky error but no longer owns a handle, so it
        can never release it.
        """
        moved = Slide(self._path, self._handle, cache=self._cache, vendor=self._vendor)
        moved._error = self._error
        moved._error_type = self._error_type
        moved._catalog = self._catalog
        self._handle = None
        self._cache = None
        self._catalog = None
        return moved

    def close(self) -> None:
        """Release the engine handle.

        After calling close(), queries raise SlideUninitializedError unless
        the slide was already errored. Repeated calls are no-ops.
        """
        handle, self._handle = self._handle, None
        if handle is None:
            return
        handle.close()
        self._closed = True
        self._cache = None
        logger.debug("Slide closed", slide=self._path)

    def __enter__(self) -> Slide:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager and close the slide."""
        self.close()

    def __repr__(self) -> str:
        """Return string representation."""
        return f"Slide(path={self._path!r}, state={self.state.value!r})"


def _is_readable_file(path: str) -> bool:
    return Path(path).is_file() and os.access(path, os.R_OK)
