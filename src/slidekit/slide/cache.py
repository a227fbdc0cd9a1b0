"""Shared engine tile cache."""

from __future__ import annotations

from slidekit.config import settings
from slidekit.engine.protocol import SlideEngine
from slidekit.slide.engines import default_engine
from slidekit.slide.exceptions import AllocationError
from slidekit.utils.logging import get_logger

logger = get_logger(__name__)


class SlideCache:
    """A tile cache that any number of slides may share.

    The cache exposes its capacity and nothing else; eviction is left to the
    engine. Ownership is shared through ordinary Python references: the
    engine cache lives as long as the last Slide (or caller) holding this
    object.

    Usage:
        cache = SlideCache.create(256 * 1024 * 1024)
        with Slide.open("a.svs", cache) as a, Slide.open("b.svs", cache) as b:
            ...
    """

    __slots__ = ("_capacity", "_engine", "_engine_cache")

    def __init__(self, capacity: int, engine_cache: object, engine: SlideEngine) -> None:
        self._capacity = capacity
        self._engine_cache = engine_cache
        self._engine = engine

    @classmethod
    def create(cls, capacity: int, engine: SlideEngine | None = None) -> SlideCache:
        """Allocate a cache of ``capacity`` bytes.

        Args:
            capacity: Cache size in bytes.
            engine: Engine to allocate from. Defaults to OpenSlide.

        Raises:
            AllocationError: If the engine cannot allocate the cache.
        """
        engine = engine or default_engine()
        engine_cache = engine.create_cache(capacity)
        if engine_cache is None:
            raise AllocationError("Failed to create slide cache", capacity=capacity)
        logger.debug("Slide cache created", capacity=capacity)
        return cls(capacity, engine_cache, engine)

    @classmethod
    def default(cls, engine: SlideEngine | None = None) -> SlideCache:
        """Allocate a cache sized by ``settings.CACHE_CAPACITY``."""
        return cls.create(settings.CACHE_CAPACITY, engine)

    def size(self) -> int:
        """Return the capacity in bytes given at construction."""
        return self._capacity

    @property
    def engine(self) -> SlideEngine:
        """Return the engine that allocated this cache."""
        return self._engine

    @property
    def engine_cache(self) -> object:
        """Return the engine's cache object, for binding to engine handles."""
        return self._engine_cache

    def __repr__(self) -> str:
        """Return string representation."""
        return f"SlideCache(capacity={self._capacity})"
