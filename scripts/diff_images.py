#!/usr/bin/env python3
"""Compare baseline and test images with one or more differs.

This script resolves image pairs from two directories (matched by file
name) or two glob patterns (matched by sort order), runs the selected
differs over every pair and writes a JSON/JSONP and/or CSV report.

Usage:
    # Compare two screenshot directories, write a JSON report
    python3 scripts/diff_images.py --folders baseline/ test/ --output report.json

    # Glob patterns, alpha-mask artifacts and a CSV summary
    python3 scripts/diff_images.py --patterns "base/*.png" "test/*.png" \\
        --alpha-dir diffs --csv report.csv

    # Everything from a configuration file
    python3 scripts/diff_images.py --config diff-config.json

    # List available differs
    python3 scripts/diff_images.py --list
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path for local imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from visualdiff.config import DiffConfig  # noqa: E402
from visualdiff.context import DiffContext  # noqa: E402
from visualdiff.differs import available_differs  # noqa: E402


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def list_differs() -> None:
    """Print the available differs."""
    print("Available differs:")
    for name in available_differs():
        print(f"  {name}")


def _build_config(args: argparse.Namespace) -> DiffConfig:
    """Merge the optional config file with command-line overrides."""
    if args.config is not None:
        config = DiffConfig.from_file(args.config)
    else:
        config = DiffConfig(differs=available_differs())

    if args.differs:
        config.differs = args.differs
    if args.threads is not None:
        config.threads = args.threads
    if args.alpha_dir is not None:
        config.alpha_dir = args.alpha_dir
    if args.folders is not None:
        config.folders = (args.folders[0], args.folders[1])
        config.patterns = None
    if args.patterns is not None:
        config.patterns = (args.patterns[0], args.patterns[1])
        config.folders = None
    if args.output is not None:
        config.output = str(args.output)
    if args.jsonp:
        config.jsonp = True
    if args.csv is not None:
        config.csv = str(args.csv)
    return config


def write_reports(context: DiffContext, config: DiffConfig) -> None:
    """Write the JSON/JSONP and CSV reports requested by *config*."""
    if config.output is not None:
        output_path = Path(config.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            context.output_records(f, use_jsonp=config.jsonp)
        print(f"  Report: {output_path}")

    if config.csv is not None:
        csv_path = Path(config.csv)
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        with open(csv_path, "w", encoding="utf-8") as f:
            context.output_csv(f)
        print(f"  CSV: {csv_path}")


def print_summary(context: DiffContext) -> None:
    """Print per-differ score statistics for the compared pairs."""
    df = context.records.to_dataframe()
    print("\nDiff complete.")
    print(f"  Pairs compared: {len(df)}")
    if difference_dir := context.difference_dir:
        artifacts = sum(1 for r in context.records if r.difference_path)
        print(f"  Difference images: {artifacts} in {difference_dir}")

    for column in df.columns:
        values = df[column].dropna()
        if values.empty:
            continue
        print(
            f"  {column}: min={values.min():.4f}, "
            f"max={values.max():.4f}, "
            f"avg={values.mean():.4f}"
        )


def main() -> int:
    """Main entry point for the image diff script.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(
        description="Compare baseline and test images and report the differences.",
    )
    parser.add_argument(
        "--differs",
        nargs="+",
        metavar="NAME",
        help="Differs to run, in report order (default: all available)",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List available differs and exit",
    )
    parser.add_argument(
        "--threads",
        type=int,
        help="Number of worker threads (default: one per core)",
    )
    inputs = parser.add_mutually_exclusive_group()
    inputs.add_argument(
        "--folders",
        nargs=2,
        metavar=("BASELINE", "TEST"),
        help="Compare files with the same name in two directories",
    )
    inputs.add_argument(
        "--patterns",
        nargs=2,
        metavar=("BASELINE", "TEST"),
        help="Compare files matched by two glob patterns, paired by sort order",
    )
    parser.add_argument(
        "--alpha-dir",
        help="Directory where alpha-mask difference images are written",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Path of the JSON report",
    )
    parser.add_argument(
        "--jsonp",
        action="store_true",
        help="Write the JSON report as a JSONP assignment",
    )
    parser.add_argument(
        "--csv",
        type=Path,
        help="Path of the CSV report",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="JSON run configuration (command-line options take precedence)",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar while comparing",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()
    _setup_logging(args.verbose)

    if args.list:
        list_differs()
        return 0

    try:
        config = _build_config(args)
        context = config.build_context(show_progress=args.progress)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    if config.folders is None and config.patterns is None:
        print("Error: specify --folders or --patterns (or inputs in --config)")
        return 1

    if config.alpha_dir is not None and context.difference_dir is None:
        print(f"Warning: cannot create {config.alpha_dir}, difference images disabled")

    print(f"Differs: {', '.join(d.name for d in context.differs)}")
    print(f"Workers: {context.thread_count}")

    config.run(context)

    print_summary(context)
    write_reports(context, config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
