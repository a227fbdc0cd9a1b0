"""Shared pytest fixtures and configuration.

Most tests drive the slide layer through ``FakeEngine``, an in-memory decoding
engine that follows the same latched-error convention as the OpenSlide
adapter: failing calls record a message on the handle and return a neutral
value instead of raising.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from slidekit.config import Settings
from slidekit.engine.buffers import WritableBuffer, copy_into
from slidekit.slide import Slide
from slidekit.utils.logging import clear_slide_context, configure_logging


@dataclass
class FakeSlideData:
    """Contents of one slide known to the fake engine."""

    level_dimensions: list[tuple[int, int]] = field(
        default_factory=lambda: [(256, 256)]
    )
    level_downsamples: list[float] = field(default_factory=lambda: [1.0])
    vendor: str = "generic-tiff"
    vendor_properties: dict[str, str] = field(default_factory=dict)
    associated_images: dict[str, tuple[int, int]] = field(default_factory=dict)
    associated_icc_profiles: dict[str, bytes] = field(default_factory=dict)
    icc_profile: bytes = b""
    pixel: bytes = b"\x10\x20\x30\xff"
    open_error: str | None = None
    read_error: str | None = None
    icc_error: str | None = None

    def engine_properties(self) -> dict[str, str]:
        """Return properties with OpenSlide's key names and number format.

        OpenSlide publishes associated-image geometry as
        ``openslide.associated.<name>.<field>`` and formats doubles with
        ``%.17g``, so a downsample of 1.0 reads as ``"1"``. Entries in
        ``vendor_properties`` override the generated ones.
        """
        props = {"openslide.vendor": self.vendor}
        props["openslide.level-count"] = str(len(self.level_dimensions))
        for i, ((width, height), downsample) in enumerate(
            zip(self.level_dimensions, self.level_downsamples, strict=True)
        ):
            props[f"openslide.level[{i}].width"] = str(width)
            props[f"openslide.level[{i}].height"] = str(height)
            props[f"openslide.level[{i}].downsample"] = format(downsample, ".17g")
        for name, (width, height) in self.associated_images.items():
            props[f"openslide.associated.{name}.width"] = str(width)
            props[f"openslide.associated.{name}.height"] = str(height)
            icc = self.associated_icc_profiles.get(name, b"")
            if icc:
                props[f"openslide.associated.{name}.icc-size"] = str(len(icc))
        if self.icc_profile:
            props["openslide.icc-size"] = str(len(self.icc_profile))
        props.update(self.vendor_properties)
        return props


class FakeHandle:
    """EngineHandle over a FakeSlideData."""

    def __init__(self, data: FakeSlideData) -> None:
        self.data = data
        self.error: str | None = data.open_error
        self.cache: object | None = None
        self.close_calls = 0
        self.calls: list[str] = []

    def _fail(self, message: str) -> None:
        if self.error is None:
            self.error = message

    def _level_ok(self, level: int) -> bool:
        if 0 <= level < len(self.data.level_dimensions):
            return True
        self._fail(f"Invalid level {level}")
        return False

    def _image_ok(self, name: str) -> bool:
        if name in self.data.associated_images:
            return True
        self._fail(f"Unknown associated image {name!r}")
        return False

    def get_error(self) -> str | None:
        return self.error

    def close(self) -> None:
        self.close_calls += 1

    def set_cache(self, cache: object) -> None:
        self.cache = cache

    def get_level_count(self) -> int:
        self.calls.append("get_level_count")
        if self.error:
            return -1
        return len(self.data.level_dimensions)

    def get_level_dimensions(self, level: int) -> tuple[int, int]:
        if self.error or not self._level_ok(level):
            return (-1, -1)
        return self.data.level_dimensions[level]

    def get_level0_dimensions(self) -> tuple[int, int]:
        if self.error:
            return (-1, -1)
        return self.data.level_dimensions[0]

    def get_level_downsample(self, level: int) -> float:
        if self.error or not self._level_ok(level):
            return -1.0
        return self.data.level_downsamples[level]

    def get_best_level_for_downsample(self, downsample: float) -> int:
        if self.error:
            return -1
        downsamples = self.data.level_downsamples
        if downsample < downsamples[0]:
            return 0
        for i in range(1, len(downsamples)):
            if downsample < downsamples[i]:
                return i - 1
        return len(downsamples) - 1

    def read_region(
        self,
        dest: WritableBuffer,
        x: int,
        y: int,
        level: int,
        width: int,
        height: int,
    ) -> None:
        self.calls.append("read_region")
        if self.error or not self._level_ok(level):
            return
        if width < 0 or height < 0:
            self._fail(f"Negative width ({width}) or height ({height})")
            return
        if self.data.read_error:
            self._fail(self.data.read_error)
            return
        copy_into(dest, self.data.pixel * (width * height))

    def get_property_names(self) -> list[str]:
        if self.error:
            return []
        return list(self.data.engine_properties())

    def get_property_value(self, name: str) -> str | None:
        if self.error:
            return None
        return self.data.engine_properties().get(name)

    def get_associated_image_names(self) -> list[str]:
        if self.error:
            return []
        return list(self.data.associated_images)

    def get_associated_image_dimensions(self, name: str) -> tuple[int, int]:
        if self.error or not self._image_ok(name):
            return (-1, -1)
        return self.data.associated_images[name]

    def read_associated_image(self, name: str, dest: WritableBuffer) -> None:
        if self.error or not self._image_ok(name):
            return
        width, height = self.data.associated_images[name]
        copy_into(dest, self.data.pixel * (width * height))

    def get_icc_profile_size(self) -> int:
        if self.data.icc_error:
            self._fail(self.data.icc_error)
        if self.error:
            return -1
        return len(self.data.icc_profile)

    def read_icc_profile(self, dest: WritableBuffer) -> None:
        if self.error or not self.data.icc_profile:
            return
        copy_into(dest, self.data.icc_profile)

    def get_associated_image_icc_profile_size(self, name: str) -> int:
        if self.error or not self._image_ok(name):
            return -1
        return len(self.data.associated_icc_profiles.get(name, b""))

    def read_associated_image_icc_profile(
        self, name: str, dest: WritableBuffer
    ) -> None:
        if self.error or not self._image_ok(name):
            return
        profile = self.data.associated_icc_profiles.get(name, b"")
        if profile:
            copy_into(dest, profile)


@dataclass(frozen=True)
class FakeCache:
    capacity: int


class FakeEngine:
    """SlideEngine serving FakeSlideData registered by path."""

    def __init__(self) -> None:
        self.slides: dict[str, FakeSlideData] = {}
        self.handles: list[FakeHandle] = []

    def register(self, path: Path, data: FakeSlideData) -> Path:
        path.write_bytes(b"fake slide")
        self.slides[str(path)] = data
        return path

    def detect_vendor(self, path: str) -> str | None:
        data = self.slides.get(path)
        return data.vendor if data is not None else None

    def open(self, path: str) -> FakeHandle:
        data = self.slides.get(path) or FakeSlideData(
            open_error=f"Unsupported format: {path}"
        )
        handle = FakeHandle(data)
        self.handles.append(handle)
        return handle

    def create_cache(self, capacity: int) -> FakeCache | None:
        if capacity <= 0:
            return None
        return FakeCache(capacity)

    def get_version(self) -> str:
        return "4.0.0-fake"


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset slide correlation context between tests."""
    clear_slide_context()
    yield
    clear_slide_context()


@pytest.fixture
def test_settings() -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
    )


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield


@pytest.fixture
def fake_engine() -> FakeEngine:
    """Provide an empty in-memory decoding engine."""
    return FakeEngine()


@pytest.fixture
def make_slide_file(
    tmp_path: Path, fake_engine: FakeEngine
) -> Callable[..., Path]:
    """Factory registering a fake slide file with the fake engine.

    Keyword arguments are FakeSlideData fields.

    Usage:
        def test_something(make_slide_file: Callable[..., Path]) -> None:
            path = make_slide_file(level_dimensions=[(512, 512), (256, 256)],
                                   level_downsamples=[1.0, 2.0])
    """

    def _make(name: str = "slide.svs", **fields: Any) -> Path:
        return fake_engine.register(tmp_path / name, FakeSlideData(**fields))

    return _make


@pytest.fixture
def open_slide(
    make_slide_file: Callable[..., Path], fake_engine: FakeEngine
) -> Iterator[Callable[..., Slide]]:
    """Factory opening a fake slide; all slides are closed at teardown.

    Keyword arguments are FakeSlideData fields, plus ``eager_properties``.
    """
    opened: list[Slide] = []

    def _open(eager_properties: bool = True, **fields: Any) -> Slide:
        path = make_slide_file(**fields)
        slide = Slide.open(path, engine=fake_engine, eager_properties=eager_properties)
        opened.append(slide)
        return slide

    yield _open
    for slide in opened:
        slide.close()
