"""Diff context: pair resolution, concurrent comparison and reporting.

:class:`DiffContext` is the entry point of the package. It accepts an
explicit image pair, two directories, or two glob patterns, runs every
configured differ over each resolved pair and collects the results in a
:class:`~visualdiff.records.DiffRecordStore`.

Architecture:
- Each pair is one task; a task loads both images, runs the differs
  sequentially (so a record's results follow differ order) and appends a
  single finished record to the shared store.
- Batch calls fan tasks out over a thread pool and block until every task
  has finished. Tasks share nothing but the store, whose append is locked.
- Per-pair failures (unreadable images, missing counterparts) are logged
  and skipped; they never abort the rest of the batch.

At most one differ per pair renders the alpha-mask difference artifact:
the first differ, in configuration order, that accepts the role when asked.
"""

import glob
import logging
import os
import threading
from collections.abc import Iterable
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from pathlib import Path
from typing import TextIO

from tqdm import tqdm

from visualdiff.differ import RESULT_CORRECT, DiffResult, ImageDiffer
from visualdiff.image import ImageLoadError, load_image, save_png
from visualdiff.records import DiffData, DiffRecord, DiffRecordStore, common_name
from visualdiff.report import write_csv, write_json

logger = logging.getLogger(__name__)

# Thread count sentinel: one worker per available CPU core.
THREAD_PER_CORE: int = -1


class DiffContext:
    """Runs differs over image pairs and accumulates the results.

    Configuration methods (``set_*``) must not be called while a batch
    (:meth:`diff_directories` / :meth:`diff_patterns`) is running.
    """

    def __init__(
        self,
        differs: Iterable[ImageDiffer] = (),
        thread_count: int = THREAD_PER_CORE,
        difference_dir: str | Path | None = None,
        show_progress: bool = False,
    ) -> None:
        """Initialize the diff context.

        Args:
            differs: Differs to run on every pair, in report order
            thread_count: Worker threads for batch calls
                (``THREAD_PER_CORE`` for one per core)
            difference_dir: Directory for alpha-mask artifacts; None disables them
            show_progress: Display a progress bar during batch calls
        """
        self._config_lock = threading.Lock()
        self._records = DiffRecordStore()
        self._differs: tuple[ImageDiffer, ...] = ()
        self._thread_count = THREAD_PER_CORE
        self._difference_dir: Path | None = None
        self.show_progress = show_progress

        self.set_differs(differs)
        self.set_thread_count(thread_count)
        if difference_dir is not None:
            self.set_difference_dir(difference_dir)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def records(self) -> DiffRecordStore:
        return self._records

    @property
    def differs(self) -> tuple[ImageDiffer, ...]:
        with self._config_lock:
            return self._differs

    @property
    def difference_dir(self) -> Path | None:
        with self._config_lock:
            return self._difference_dir

    @property
    def thread_count(self) -> int:
        """Resolved worker count for the next batch (always >= 1)."""
        with self._config_lock:
            count = self._thread_count
        if count < 1:
            return os.cpu_count() or 1
        return count

    def set_difference_dir(self, path: str | Path | None) -> None:
        """Set the directory where alpha-mask artifacts are written.

        The directory is created if needed. If *path* is empty or cannot be
        created, artifact output is disabled and comparisons run as usual.
        """
        difference_dir: Path | None = None
        if path:
            try:
                Path(path).mkdir(parents=True, exist_ok=True)
                difference_dir = Path(path)
            except OSError as e:
                logger.debug("Difference directory %s unavailable: %s", path, e)

        with self._config_lock:
            self._difference_dir = difference_dir

    def set_differs(self, differs: Iterable[ImageDiffer]) -> None:
        """Replace the differs run on every pair."""
        new_differs = tuple(differs)
        with self._config_lock:
            self._differs = new_differs

    def set_thread_count(self, count: int) -> None:
        """Set the worker count; ``THREAD_PER_CORE`` or < 1 means one per core."""
        with self._config_lock:
            self._thread_count = count

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def add_diff(self, baseline_path: str | Path, test_path: str | Path) -> DiffRecord | None:
        """Compare one image pair with every configured differ.

        Args:
            baseline_path: Path to the baseline image
            test_path: Path to the test image

        Returns:
            The stored record, or None if either image could not be loaded
        """
        baseline_path = str(baseline_path)
        test_path = str(test_path)

        try:
            baseline = load_image(baseline_path)
            test = load_image(test_path)
        except ImageLoadError as e:
            logger.warning("Failed to load image: %s", e)
            return None

        record = DiffRecord(
            baseline_path=baseline_path,
            test_path=test_path,
            common_name=common_name(
                os.path.basename(baseline_path), os.path.basename(test_path)
            ),
        )

        with self._config_lock:
            differs = self._differs
            difference_dir = self._difference_dir

        mask_pending = False
        mask_claimed = False
        for differ in differs:
            # Keep asking until one differ has actually produced a result
            # while holding the alpha-mask role.
            if not mask_claimed and difference_dir is not None:
                mask_pending = differ.enable_poi_alpha_mask()

            result = differ.queue_diff(baseline, test, alpha_mask=mask_pending)
            if result is None:
                continue

            with result:
                data = DiffData(
                    differ_name=differ.name,
                    result=result.result,
                    points_of_interest=result.iter_points(),
                )
                record.diffs.append(data)

                if (
                    mask_pending
                    and data.result != RESULT_CORRECT
                    and record.difference_path is None
                    and difference_dir is not None
                ):
                    self._write_difference(record, result, difference_dir)

            if mask_pending:
                mask_pending = False
                mask_claimed = True

        self._records.append(record)
        logger.debug(
            "Compared %s and %s with %d differ(s)", baseline_path, test_path, len(record.diffs)
        )
        return record

    @staticmethod
    def _write_difference(record: DiffRecord, result: DiffResult, difference_dir: Path) -> None:
        """Render the alpha mask of *result* into the difference directory."""
        mask = result.alpha_mask()
        if mask is None:
            logger.warning("Differ returned no alpha mask for %s", record.baseline_path)
            return

        name = record.common_name
        if name in ("", ".", ".."):
            name = os.path.basename(record.baseline_path)
        output_path = difference_dir / name

        try:
            save_png(mask, output_path)
        except OSError as e:
            logger.warning("Failed to write difference image %s: %s", output_path, e)
            return
        record.difference_path = str(output_path)

    def diff_directories(self, baseline_dir: str | Path, test_dir: str | Path) -> None:
        """Compare every file in *baseline_dir* with the same name in *test_dir*.

        Baseline files without a regular-file counterpart are skipped with a
        warning. Blocks until every comparison has finished.
        """
        baseline_root = Path(baseline_dir)
        test_root = Path(test_dir)

        try:
            entries = sorted(p for p in baseline_root.iterdir() if p.is_file())
        except OSError:
            logger.warning('Unable to open path "%s"', baseline_dir)
            return

        pairs: list[tuple[str, str]] = []
        for baseline_file in entries:
            test_file = test_root / baseline_file.name
            if test_file.is_file():
                pairs.append((str(baseline_file), str(test_file)))
            else:
                logger.warning(
                    'Baseline file "%s" has no corresponding test file', baseline_file
                )

        self._run_pairs(pairs)

    def diff_patterns(self, baseline_pattern: str, test_pattern: str) -> None:
        """Compare the files matched by two glob patterns, paired by sort order.

        Both patterns must match the same number of files; otherwise nothing
        is compared. Blocks until every comparison has finished.
        """
        baseline_entries = sorted(glob.glob(baseline_pattern))
        if not baseline_entries:
            logger.warning('Unable to get pattern "%s"', baseline_pattern)
            return

        test_entries = sorted(glob.glob(test_pattern))
        if not test_entries:
            logger.warning('Unable to get pattern "%s"', test_pattern)
            return

        if len(baseline_entries) != len(test_entries):
            logger.warning(
                "Baseline and test patterns do not yield corresponding number of files "
                "(%d vs %d)",
                len(baseline_entries),
                len(test_entries),
            )
            return

        self._run_pairs(list(zip(baseline_entries, test_entries, strict=True)))

    def _run_pairs(self, pairs: list[tuple[str, str]]) -> None:
        """Run :meth:`add_diff` for every pair on the worker pool and wait."""
        if not pairs:
            return

        num_workers = self.thread_count
        logger.info("Comparing %d image pair(s) with %d worker(s)", len(pairs), num_workers)

        with ThreadPoolExecutor(max_workers=num_workers) as executor:
            futures = [executor.submit(self.add_diff, baseline, test) for baseline, test in pairs]

            pending = set(futures)
            with tqdm(
                total=len(futures),
                desc="Comparing",
                unit="pair",
                disable=not self.show_progress,
            ) as pbar:
                while pending:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    pbar.update(len(done))

        # Surface the first failure, if any, now that every task has finished
        for future in futures:
            future.result()

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def output_records(self, stream: TextIO, use_jsonp: bool = False) -> None:
        """Write all records as JSON (or JSONP) to *stream*."""
        write_json(self._records, stream, use_jsonp=use_jsonp)

    def output_csv(self, stream: TextIO) -> None:
        """Write all records as CSV to *stream*."""
        write_csv(self._records, stream)
