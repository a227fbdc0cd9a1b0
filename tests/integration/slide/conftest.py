"""Fixtures for slide integration tests.

These tests decode real whole-slide images through OpenSlide. They are skipped
if no test file is available.

Test files can be provided via:
1. WSI_TEST_FILE environment variable pointing to a local slide file
2. A slide placed in the ``data`` directory next to this file

The CMU-1-Small-Region.svs file (~2MB) is recommended for CI:
    https://openslide.cs.cmu.edu/download/openslide-testdata/Aperio/CMU-1-Small-Region.svs
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from slidekit.slide import Slide, SlideCache

pytestmark = pytest.mark.integration

SLIDE_SUFFIXES = {".svs", ".ndpi", ".tiff", ".tif", ".mrxs", ".scn", ".vms"}


def get_test_slide_path() -> Path | None:
    """Get the path to a real slide file.

    Returns:
        Path to the slide file if available, None otherwise.
    """
    env_path = os.environ.get("WSI_TEST_FILE")
    if env_path:
        path = Path(env_path)
        if path.exists() and path.suffix.lower() in SLIDE_SUFFIXES:
            return path

    test_data_dir = Path(__file__).parent / "data"
    if test_data_dir.exists():
        for candidate in sorted(test_data_dir.iterdir()):
            if candidate.suffix.lower() in SLIDE_SUFFIXES:
                return candidate

    return None


@pytest.fixture(scope="session")
def slide_file() -> Path:
    """Provide path to a real slide file, skipping if none is available."""
    path = get_test_slide_path()
    if path is None:
        pytest.skip(
            "No slide test file available. "
            "Set WSI_TEST_FILE environment variable or download test data. "
            "Example: curl -LO https://openslide.cs.cmu.edu/download/"
            "openslide-testdata/Aperio/CMU-1-Small-Region.svs"
        )
    return path


@pytest.fixture
def real_slide(slide_file: Path) -> Iterator[Slide]:
    """Open the real slide file through OpenSlide."""
    with Slide.open(slide_file) as slide:
        yield slide


@pytest.fixture
def shared_cache() -> SlideCache:
    """Create a small engine cache shared by several slides."""
    return SlideCache.create(4 * 1024 * 1024)
