"""Run configuration module.

This module loads diff-run configurations from JSON files and turns them
into a ready-to-use :class:`~visualdiff.context.DiffContext`.

Example configuration::

    {
      "differs": ["different_pixels", "luminance"],
      "threads": 4,
      "alpha_dir": "out/diffs",
      "inputs": {"folders": ["screenshots/baseline", "screenshots/test"]},
      "output": "out/report.json",
      "jsonp": false,
      "csv": "out/report.csv"
    }

``inputs`` holds either ``folders`` (two directories matched by file name)
or ``patterns`` (two glob patterns matched by sort order).
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from visualdiff.context import THREAD_PER_CORE, DiffContext
from visualdiff.differs import create_differs


@dataclass
class DiffConfig:
    """Configuration for a complete diff run."""

    differs: list[str]
    threads: int = THREAD_PER_CORE
    alpha_dir: str | None = None
    folders: tuple[str, str] | None = None
    patterns: tuple[str, str] | None = None
    output: str | None = None
    jsonp: bool = False
    csv: str | None = None

    @classmethod
    def from_file(cls, config_path: Path) -> "DiffConfig":
        """Load a run configuration from a JSON file.

        Args:
            config_path: Path to the configuration JSON file

        Returns:
            DiffConfig instance

        Raises:
            FileNotFoundError: If config file does not exist
            ValueError: If config file has invalid content
        """
        if not config_path.exists():
            msg = f"Diff config not found: {config_path}"
            raise FileNotFoundError(msg)

        try:
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            msg = f"Invalid JSON in {config_path}: {e}"
            raise ValueError(msg) from e

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiffConfig":
        """Create DiffConfig from a dictionary.

        Args:
            data: Dictionary matching the configuration JSON schema

        Returns:
            DiffConfig instance

        Raises:
            ValueError: If required fields are missing or malformed
        """
        if not isinstance(data, dict) or "differs" not in data:
            msg = "Diff config must have a 'differs' field"
            raise ValueError(msg)

        differs = data["differs"]
        if isinstance(differs, str):
            differs = [differs]
        if not isinstance(differs, list) or not all(isinstance(d, str) for d in differs):
            msg = f"Invalid differs specification: {differs}"
            raise ValueError(msg)

        inputs = data.get("inputs") or {}
        if not isinstance(inputs, dict):
            msg = f"Invalid inputs specification: {inputs}"
            raise ValueError(msg)
        folders = _parse_pair(inputs.get("folders"), "folders")
        patterns = _parse_pair(inputs.get("patterns"), "patterns")
        if folders is not None and patterns is not None:
            msg = "Diff config inputs must have either 'folders' or 'patterns', not both"
            raise ValueError(msg)

        threads = data.get("threads", THREAD_PER_CORE)
        if isinstance(threads, bool) or not isinstance(threads, int):
            msg = f"Invalid thread count: {threads}"
            raise ValueError(msg)

        return cls(
            differs=differs,
            threads=threads,
            alpha_dir=data.get("alpha_dir"),
            folders=folders,
            patterns=patterns,
            output=data.get("output"),
            jsonp=bool(data.get("jsonp", False)),
            csv=data.get("csv"),
        )

    def build_context(self, show_progress: bool = False) -> DiffContext:
        """Create a DiffContext configured from this run configuration.

        Raises:
            ValueError: If a differ name is unknown
        """
        return DiffContext(
            differs=create_differs(self.differs),
            thread_count=self.threads,
            difference_dir=self.alpha_dir,
            show_progress=show_progress,
        )

    def run(self, context: DiffContext) -> None:
        """Run the configured input mode (folders or patterns) on *context*."""
        if self.folders is not None:
            context.diff_directories(*self.folders)
        elif self.patterns is not None:
            context.diff_patterns(*self.patterns)


def _parse_pair(value: Any, field_name: str) -> tuple[str, str] | None:
    """Parse a ``[baseline, test]`` pair from the configuration."""
    if value is None:
        return None
    if not isinstance(value, list | tuple) or len(value) != 2:
        msg = f"'{field_name}' must be a list of two entries: [baseline, test]"
        raise ValueError(msg)
    return str(value[0]), str(value[1])
