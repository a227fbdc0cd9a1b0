"""slidekit: structured access to pyramidal whole-slide images."""

from slidekit.slide import (
    AllocationError,
    Dimensions,
    Slide,
    SlideCache,
    SlideEngineError,
    SlideError,
    SlideOpenError,
    SlideState,
    SlideUninitializedError,
)

__version__ = "0.1.0"

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
    "__version__",
]
