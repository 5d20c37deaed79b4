"""Shared test fixtures and helpers.

Provides image helpers and a configurable stub differ used across the
test modules. Each test module can still define its own specialised
fixtures when needed.
"""

import threading
from collections.abc import Sequence
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from visualdiff.differ import DiffResult, ImageDiffer
from visualdiff.records import DiffData, DiffRecord, DiffRecordStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def create_test_image(
    path: Path,
    size: tuple[int, int] = (16, 16),
    mode: str = "RGB",
    color: tuple[int, ...] = (128, 128, 128),
) -> Path:
    """Create a small test image and return its path."""
    img = Image.new(mode, size, color=color)
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path)
    return path


def rgba(size: tuple[int, int] = (4, 4), color: tuple[int, ...] = (0, 0, 0, 255)) -> np.ndarray:
    """Build an RGBA pixel buffer of the given (width, height) filled with *color*."""
    width, height = size
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[...] = color
    return arr


class StubDiffer(ImageDiffer):
    """Differ returning canned results and counting how it was used."""

    def __init__(
        self,
        name: str,
        result: float = 0.5,
        points: Sequence[tuple[int, int]] = (),
        wants_mask: bool = False,
        applicable: bool = True,
    ) -> None:
        self._name = name
        self.result = result
        self.points = list(points)
        self.wants_mask = wants_mask
        self.applicable = applicable
        self.mask_requests = 0
        self.calls = 0
        self.masks_rendered = 0
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def enable_poi_alpha_mask(self) -> bool:
        with self._lock:
            self.mask_requests += 1
        return self.wants_mask

    def queue_diff(
        self,
        baseline: np.ndarray,
        test: np.ndarray,
        alpha_mask: bool = False,
    ) -> DiffResult | None:
        with self._lock:
            self.calls += 1
        if not self.applicable:
            return None

        mask = None
        if alpha_mask:
            height, width = baseline.shape[:2]
            mask = Image.new("LA", (width, height), (0, 255))
            with self._lock:
                self.masks_rendered += 1
        return DiffResult(self.result, list(self.points), alpha_mask=mask)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def image_pair(tmp_path: Path) -> tuple[Path, Path]:
    """Two same-sized images that differ in colour."""
    baseline = create_test_image(tmp_path / "baseline" / "page_v1.png", color=(10, 20, 30))
    test = create_test_image(tmp_path / "test" / "page_v2.png", color=(200, 20, 30))
    return baseline, test


@pytest.fixture
def sample_store() -> DiffRecordStore:
    """Store with two records: ``one.png`` (added first) and ``two.png``."""
    store = DiffRecordStore()
    store.append(
        DiffRecord(
            baseline_path="base/one.png",
            test_path="test/one.png",
            common_name="one.png",
            diffs=[DiffData("alpha", 0.5, [(1, 2)])],
        )
    )
    store.append(
        DiffRecord(
            baseline_path="base/two.png",
            test_path="test/two.png",
            common_name="two.png",
            difference_path="diffs/two.png",
            diffs=[DiffData("alpha", 1.0), DiffData("beta", 0.25, [(0, 0), (3, 4)])],
        )
    )
    return store
