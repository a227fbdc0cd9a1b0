"""Slide layer for slidekit.

This package provides the handle abstraction over a whole-slide decoding
engine: opening slides, keeping their sticky error state, building the
property catalog and forwarding geometry, pixel and ICC profile reads.

Key Components:
    - Slide: Handle owning one opened engine slide
    - SlideCache: Tile cache shared between slides
    - SlideError and subclasses: Failures raised by slide operations
    - properties: Catalog key builders and synthesis

Example:
    from slidekit.slide import Slide, SlideCache

    cache = SlideCache.create(64 * 1024 * 1024)
    with Slide.open("slide.svs", cache) as slide:
        if slide.has_error:
            print(slide.error_message)
        else:
            print(slide.properties["slidekit.level-count"])
            tile = slide.read_region_array(0, 0, 0, 256, 256)
"""

from slidekit.slide.cache import SlideCache
from slidekit.slide.exceptions import (
    AllocationError,
    SlideEngineError,
    SlideError,
    SlideOpenError,
    SlideUninitializedError,
)
from slidekit.slide.handle import Slide
from slidekit.slide.types import Dimensions, SlideState

__all__ = [
    "AllocationError",
    "Dimensions",
    "Slide",
    "SlideCache",
    "SlideEngineError",
    "SlideError",
    "SlideOpenError",
    "SlideState",
    "SlideUninitializedError",
]
