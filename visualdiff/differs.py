"""Built-in differs and the differ catalogue.

Two simple pixel-level algorithms ship with the package:

- ``different_pixels``: exact RGBA comparison; the score is the fraction of
  identical pixels. It can render the alpha-mask difference artifact.
- ``luminance``: compares Rec. 601 luma with a small tolerance so that
  invisible channel noise does not count as a difference.

Both decline (return None) when the two images have different dimensions.
"""

from collections.abc import Callable, Iterable

import numpy as np
from PIL import Image

from visualdiff.differ import RESULT_CORRECT, DiffResult, ImageDiffer

# Rec. 601 luma coefficients (R, G, B)
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


def _same_shape(baseline: np.ndarray, test: np.ndarray) -> bool:
    return baseline.shape[:2] == test.shape[:2]


def _points_from_mask(mask: np.ndarray) -> np.ndarray:
    """Convert a boolean ``(H, W)`` mask into an ``(N, 2)`` array of (x, y)."""
    ys, xs = np.nonzero(mask)
    return np.column_stack((xs, ys))


def render_alpha_mask(mask: np.ndarray) -> Image.Image:
    """Render a boolean difference mask as a grayscale-alpha image.

    Differing pixels are opaque black, everything else fully transparent,
    so the artifact can be laid over either source image.
    """
    h, w = mask.shape
    la = np.zeros((h, w, 2), dtype=np.uint8)
    la[..., 1] = np.where(mask, 255, 0)
    return Image.fromarray(la)


class DifferentPixelsDiffer(ImageDiffer):
    """Flags every pixel whose RGBA value is not exactly identical."""

    @property
    def name(self) -> str:
        return "different_pixels"

    def enable_poi_alpha_mask(self) -> bool:
        return True

    def queue_diff(
        self,
        baseline: np.ndarray,
        test: np.ndarray,
        alpha_mask: bool = False,
    ) -> DiffResult | None:
        if not _same_shape(baseline, test):
            return None

        diff_mask = np.any(baseline != test, axis=-1)
        total = diff_mask.size
        different = int(np.count_nonzero(diff_mask))
        score = RESULT_CORRECT if different == 0 else 1.0 - different / total

        return DiffResult(
            result=score,
            points_of_interest=_points_from_mask(diff_mask),
            alpha_mask=(lambda: render_alpha_mask(diff_mask)) if alpha_mask else None,
        )


class LuminanceDiffer(ImageDiffer):
    """Flags pixels whose luma differs by more than a tolerance."""

    def __init__(self, tolerance: float = 3.0) -> None:
        """Initialize the luminance differ.

        Args:
            tolerance: Largest luma difference (0-255 scale) still treated
                as identical
        """
        self.tolerance = tolerance

    @property
    def name(self) -> str:
        return "luminance"

    def queue_diff(
        self,
        baseline: np.ndarray,
        test: np.ndarray,
        alpha_mask: bool = False,
    ) -> DiffResult | None:
        if not _same_shape(baseline, test):
            return None

        luma_baseline = baseline[..., :3].astype(np.float64) @ LUMA_WEIGHTS
        luma_test = test[..., :3].astype(np.float64) @ LUMA_WEIGHTS
        diff_mask = np.abs(luma_baseline - luma_test) > self.tolerance
        different = int(np.count_nonzero(diff_mask))
        score = RESULT_CORRECT if different == 0 else 1.0 - different / diff_mask.size

        return DiffResult(result=score, points_of_interest=_points_from_mask(diff_mask))


DIFFERS: dict[str, Callable[[], ImageDiffer]] = {
    "different_pixels": DifferentPixelsDiffer,
    "luminance": LuminanceDiffer,
}


def available_differs() -> list[str]:
    """Return the names of all built-in differs, sorted."""
    return sorted(DIFFERS)


def create_differs(names: Iterable[str]) -> list[ImageDiffer]:
    """Instantiate built-in differs by name, preserving the given order.

    Args:
        names: Differ names (see :func:`available_differs`)

    Returns:
        One new differ instance per name

    Raises:
        ValueError: If a name is not a known differ
    """
    differs: list[ImageDiffer] = []
    for name in names:
        factory = DIFFERS.get(name)
        if factory is None:
            msg = f"Unknown differ: {name!r}. Available: {', '.join(available_differs())}"
            raise ValueError(msg)
        differs.append(factory())
    return differs
