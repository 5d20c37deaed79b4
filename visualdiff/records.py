"""Diff records and the thread-safe record store.

One :class:`DiffRecord` is produced per compared image pair. It holds one
:class:`DiffData` entry per differ that produced a result for the pair, in
the order the differs were configured.

Records are appended by worker threads and read back newest first, which
is the order reports are written in.
"""

import os
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field

import numpy as np
import pandas as pd


@dataclass
class DiffData:
    """Result of one differ on one image pair."""

    differ_name: str
    result: float
    points_of_interest: list[tuple[int, int]] = field(default_factory=list)


@dataclass
class DiffRecord:
    """All differ results for one baseline/test image pair.

    Attributes:
        baseline_path: Path of the baseline image as given by the caller.
        test_path: Path of the test image as given by the caller.
        common_name: Display name derived from both file names
            (see :func:`common_name`).
        difference_path: Path of the rendered alpha-mask artifact, or None
            if no artifact was written for this pair.
        diffs: Per-differ results in differ configuration order.
    """

    baseline_path: str
    test_path: str
    common_name: str
    difference_path: str | None = None
    diffs: list[DiffData] = field(default_factory=list)

    @property
    def key(self) -> str:
        """Final path segment of the baseline path (CSV row key)."""
        return os.path.basename(self.baseline_path)


def common_name(a: str, b: str) -> str:
    """Longest common prefix of two file names.

    When one name is a prefix of the other (no mismatch within the shorter
    length) the shorter name is returned as a whole.

    Examples:
        >>> common_name("image_v1.png", "image_v2.png")
        'image_v'
        >>> common_name("cat.png", "category.png")
        'cat'
        >>> common_name("a.png", "a.png")
        'a.png'
    """
    for i, (char_a, char_b) in enumerate(zip(a, b, strict=False)):
        if char_a != char_b:
            return a[:i]
    return b if len(a) > len(b) else a


class DiffRecordStore:
    """Append-only collection of diff records shared by worker threads.

    ``append`` is the only mutating operation used during a batch and is
    serialized by a lock. Readers get a snapshot, newest record first.
    """

    def __init__(self) -> None:
        self._records: list[DiffRecord] = []
        self._lock = threading.Lock()

    def append(self, record: DiffRecord) -> None:
        """Add a fully populated record to the store.

        Raises:
            ValueError: If the record has an empty baseline or test path
        """
        if not record.baseline_path or not record.test_path:
            msg = "Diff records need both a baseline and a test path"
            raise ValueError(msg)
        with self._lock:
            self._records.append(record)

    def snapshot(self) -> list[DiffRecord]:
        """Return the stored records, most recently added first."""
        with self._lock:
            return self._records[::-1]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def differ_names(self, records: list[DiffRecord] | None = None) -> list[str]:
        """Return every differ name seen in the records, in first-seen order.

        Args:
            records: Records to scan; defaults to a fresh :meth:`snapshot`
        """
        if records is None:
            records = self.snapshot()
        names: dict[str, None] = {}
        for record in records:
            for data in record.diffs:
                names.setdefault(data.differ_name, None)
        return list(names)

    def to_dataframe(self) -> pd.DataFrame:
        """Build a DataFrame with one row per record and one column per differ.

        Rows are indexed by the baseline file name (index name ``key``).
        Differ columns follow first-seen order; a differ that produced no
        result for a record leaves ``NaN`` in that cell.

        Returns:
            DataFrame ordered like :meth:`snapshot`
        """
        records = self.snapshot()
        columns = self.differ_names(records)
        keys = [record.key for record in records]
        results = [{data.differ_name: data.result for data in record.diffs} for record in records]
        data = {name: [row.get(name, np.nan) for row in results] for name in columns}

        return pd.DataFrame(
            data, index=pd.Index(keys, name="key"), columns=columns, dtype="float64"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[DiffRecord]:
        return iter(self.snapshot())

    def __bool__(self) -> bool:
        return len(self) > 0
