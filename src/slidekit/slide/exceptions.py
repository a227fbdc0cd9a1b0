"""Custom exceptions for slide operations.

Every failure surfaced by a Slide carries the sticky error text verbatim in
``message``, so callers can compare it against ``Slide.error_message``.
"""

from pathlib import Path


class SlideError(Exception):
    """Base exception for all slide-related errors."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        """Initialize slide error with optional path context.

        Args:
            message: Human-readable error description.
            path: Path to the slide file that caused the error.
        """
        self.path = Path(path) if path else None
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with path context if available."""
        if self.path:
            return f"{self.message} (path: {self.path})"
        return self.message


class SlideOpenError(SlideError):
    """Raised by a slide whose open failed.

    The error is latched when:
    - The file does not exist or cannot be read
    - No vendor format recognizes the file
    - The engine reported an error while opening or cataloging the slide
    """

    pass


class SlideEngineError(SlideError):
    """Raised by a slide after the engine latched an error during a query or read.

    Typical causes are an invalid level, an unknown associated image name,
    or a decode failure midway through a region read.
    """

    pass


class SlideUninitializedError(SlideError):
    """Raised when a slide owns no engine handle and recorded no error.

    This happens on a slide that was closed, whose handle was detached, or
    that was constructed without going through ``Slide.open``.
    """

    pass


class AllocationError(SlideError):
    """Raised when the engine cannot allocate a tile cache."""

    def __init__(self, message: str, capacity: int | None = None) -> None:
        """Initialize allocation error.

        Args:
            message: Human-readable error description.
            capacity: Requested cache capacity in bytes.
        """
        self.capacity = capacity
        super().__init__(message)

    def _format_message(self) -> str:
        if self.capacity is not None:
            return f"{self.message} (capacity={self.capacity})"
        return self.message
