"""Differ capability contract.

A differ is a pluggable algorithm that compares two decoded images and
reports a scalar score plus the pixel coordinates it considers different
("points of interest"). The orchestration in :mod:`visualdiff.context`
only talks to differs through :class:`ImageDiffer` and :class:`DiffResult`.

Each comparison returns its own :class:`DiffResult`, so a single differ
instance can serve several worker threads at once. Results are used as
context managers; leaving the ``with`` block releases whatever buffers the
differ attached to the result.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

import numpy as np
from PIL import Image

# Score reported by a differ when the two images are pixel-identical.
RESULT_CORRECT: float = 1.0


class DiffResult:
    """Outcome of one differ run on one image pair.

    Attributes:
        result: Score computed by the differ. ``RESULT_CORRECT`` means the
            images are identical; other values are differ-specific.
        points_of_interest: Ordered ``(x, y)`` coordinates flagged as
            different. May be empty.
    """

    def __init__(
        self,
        result: float,
        points_of_interest: Sequence[tuple[int, int]] | np.ndarray = (),
        alpha_mask: Callable[[], Image.Image] | Image.Image | None = None,
    ) -> None:
        self.result = float(result)
        self.points_of_interest = points_of_interest
        self._alpha_mask = alpha_mask
        self.closed = False

    @property
    def poi_count(self) -> int:
        return len(self.points_of_interest)

    def alpha_mask(self) -> Image.Image | None:
        """Return the image highlighting differing pixels, if one was requested.

        A differ may hand over a callable instead of a ready image so the mask
        is only rendered when an artifact is actually written.

        Raises:
            ValueError: If the result has already been closed
        """
        if self.closed:
            msg = "Alpha mask requested from a closed diff result"
            raise ValueError(msg)
        if callable(self._alpha_mask):
            self._alpha_mask = self._alpha_mask()
        return self._alpha_mask

    def iter_points(self) -> list[tuple[int, int]]:
        """Return the points of interest as plain ``(x, y)`` integer tuples."""
        return [(int(x), int(y)) for x, y in self.points_of_interest]

    def close(self) -> None:
        """Release the buffers held by this result."""
        self._alpha_mask = None
        self.points_of_interest = ()
        self.closed = True

    def __enter__(self) -> "DiffResult":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ImageDiffer(ABC):
    """Base class for image comparison algorithms."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable identifier used in reports."""

    def enable_poi_alpha_mask(self) -> bool:
        """Whether this differ can supply the difference artifact for a pair.

        Returns:
            True if :meth:`queue_diff` honours ``alpha_mask=True``
        """
        return False

    @abstractmethod
    def queue_diff(
        self,
        baseline: np.ndarray,
        test: np.ndarray,
        alpha_mask: bool = False,
    ) -> DiffResult | None:
        """Compare two RGBA pixel buffers.

        Args:
            baseline: Baseline image, shape ``(H, W, 4)``
            test: Test image, shape ``(H, W, 4)``
            alpha_mask: If True, the returned result must provide
                :meth:`DiffResult.alpha_mask`

        Returns:
            A :class:`DiffResult`, or None if this differ cannot compare
            the pair (for example, mismatched dimensions)
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
