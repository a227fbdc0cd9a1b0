"""Process-wide default decoding engine."""

from functools import cache

from slidekit.engine.openslide_engine import OpenSlideEngine
from slidekit.engine.protocol import SlideEngine


@cache
def default_engine() -> SlideEngine:
    """Return the shared OpenSlide engine used when none is given."""
    return OpenSlideEngine()
