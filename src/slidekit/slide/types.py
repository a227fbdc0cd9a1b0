"""Type definitions for the slide layer."""

from enum import Enum
from typing import NamedTuple


class Dimensions(NamedTuple):
    """Pixel extent of a level or associated image.

    Attributes:
        width: Width in pixels.
        height: Height in pixels.
    """

    width: int
    height: int


class SlideState(str, Enum):
    """Lifecycle state of a Slide.

    ERRORED is absorbing: once a slide reports it, it never reports
    anything else.
    """

    UNINITIALIZED = "uninitialized"
    HEALTHY = "healthy"
    ERRORED = "errored"
    CLOSED = "closed"
