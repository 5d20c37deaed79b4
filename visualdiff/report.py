"""Report serialization module.

Writes the contents of a :class:`~visualdiff.records.DiffRecordStore` as
JSON (optionally wrapped as a JSONP assignment for static dashboards) or
as a flat CSV table with one column per differ.

Both writers are read-only with respect to the store: writing the same
store twice produces identical output.
"""

import json
import math
import os
from typing import Any, TextIO

from visualdiff.records import DiffRecord, DiffRecordStore

# Points of interest written per differ result; keeps reports loadable in a browser.
MAX_POI: int = 100

# Variable name used for JSONP output
JSONP_VARIABLE: str = "VisualDiffRecords"

# Value written to the CSV for a differ that produced no result for a record
CSV_MISSING: float = -1.0


def _absolute(path: str | None) -> str:
    """Absolute form of *path*, or ``""`` for an unset path."""
    if not path:
        return ""
    return os.path.abspath(path)


def _score(value: float) -> float | None:
    """JSON form of a differ score; non-finite scores become ``null``."""
    return value if math.isfinite(value) else None


def record_to_dict(record: DiffRecord) -> dict[str, Any]:
    """Convert a record into its JSON report representation."""
    return {
        "commonName": record.common_name,
        "differencePath": _absolute(record.difference_path),
        "baselinePath": _absolute(record.baseline_path),
        "testPath": _absolute(record.test_path),
        "diffs": [
            {
                "differName": data.differ_name,
                "result": _score(data.result),
                "pointsOfInterest": [[x, y] for x, y in data.points_of_interest[:MAX_POI]],
            }
            for data in record.diffs
        ],
    }


def write_json(
    store: DiffRecordStore,
    stream: TextIO,
    use_jsonp: bool = False,
    variable: str = JSONP_VARIABLE,
) -> None:
    """Write all records as a JSON document.

    Args:
        store: Records to serialize (written newest first)
        stream: Text stream to write to
        use_jsonp: If True, wrap the document as ``var <variable> = {...};``
        variable: JSONP variable name
    """
    data = {"records": [record_to_dict(record) for record in store.snapshot()]}
    document = json.dumps(data, indent=2, allow_nan=False)

    if use_jsonp:
        stream.write(f"var {variable} = {document};\n")
    else:
        stream.write(f"{document}\n")


def write_csv(store: DiffRecordStore, stream: TextIO) -> None:
    """Write one row per record with one score column per differ.

    The header is ``key, <differ>, ...`` with differs in first-seen order.
    Rows start with the baseline file name; a differ without a result for
    that record is written as ``-1.000000``.

    Args:
        store: Records to serialize (written newest first)
        stream: Text stream to write to
    """
    df = store.to_dataframe().fillna(CSV_MISSING)

    stream.write("key")
    for column in df.columns:
        stream.write(f", {column}")
    stream.write("\n")

    for key, row in zip(df.index, df.to_numpy(), strict=True):
        stream.write(str(key))
        for value in row:
            stream.write(f", {value:f}")
        stream.write("\n")
