"""
Input boundary for the data-quality engine.

Turns files and decoded JSON documents into ``(rows, headers)`` and provides
the row-level helpers the pipeline uses to stay bounded on large inputs:
ignored columns, sampling, chunked iteration and a rough memory estimate.
"""

import json
import logging
import sys
from itertools import islice
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .error_handler import DataQualityError, ErrorCategory

logger = logging.getLogger(__name__)

RECORD_CONTAINER_KEYS = ("data", "rows", "records", "items", "results", "values")
MAX_UNWRAP_DEPTH = 5
DEFAULT_CHUNK_SIZE = 10_000

Row = Dict[str, Any]


def derive_headers(rows: Iterable[Row]) -> List[str]:
    """Column names in order of first appearance across all rows."""
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            if key not in seen:
                seen[key] = None
    return list(seen)


def normalize_records(document: Any, max_depth: int = MAX_UNWRAP_DEPTH) -> Tuple[List[Row], List[str]]:
    """
    Normalize a decoded JSON document into rows and headers.

    Accepts a list of objects, or an object wrapping such a list under a
    key like ``data`` or ``records``, possibly nested a few levels deep.
    A list of scalars becomes a single ``value`` column.

    Raises:
        DataQualityError: If no list of records is found within ``max_depth`` levels
    """
    current = document
    depth = 0
    while isinstance(current, dict):
        if depth >= max_depth:
            raise DataQualityError(
                f"No record list found within {max_depth} levels of nesting",
                ErrorCategory.PARSING, code="RECORDS_TOO_DEEP",
            )
        current = _unwrap_container(current)
        depth += 1

    if not isinstance(current, list):
        raise DataQualityError(
            f"Expected a list of records, found {type(current).__name__}",
            ErrorCategory.PARSING, code="NOT_A_RECORD_LIST",
        )

    rows: List[Row] = []
    for item in current:
        if isinstance(item, dict):
            rows.append(item)
        else:
            rows.append({"value": item})

    return rows, derive_headers(rows)


def _unwrap_container(container: Dict[str, Any]) -> Any:
    for key in RECORD_CONTAINER_KEYS:
        if key in container:
            return container[key]

    list_values = [value for value in container.values() if isinstance(value, (list, dict))]
    if len(list_values) == 1:
        return list_values[0]

    # A flat object is a single record
    return [container]


def apply_ignored_columns(rows: Sequence[Row], headers: Sequence[str],
                          ignored: Iterable[str]) -> Tuple[List[Row], List[str]]:
    """Drop ignored columns, returning new rows and headers."""
    ignored_set = set(ignored or [])
    if not ignored_set:
        return list(rows), list(headers)

    kept_headers = [header for header in headers if header not in ignored_set]
    kept_rows = [
        {key: value for key, value in row.items() if key not in ignored_set}
        for row in rows
    ]
    logger.debug(f"Ignoring {len(headers) - len(kept_headers)} columns")
    return kept_rows, kept_headers


def limit_rows(rows: Iterable[Row], limit: int) -> List[Row]:
    """Take the first ``limit`` rows; a limit of 0 keeps every row."""
    if limit and limit > 0:
        return list(islice(rows, limit))
    return list(rows)


def iter_chunks(rows: Sequence[Row], chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[Tuple[int, Sequence[Row]]]:
    """Yield ``(offset, chunk)`` pairs covering ``rows`` in order."""
    for offset in range(0, len(rows), chunk_size):
        yield offset, rows[offset:offset + chunk_size]


def process_in_chunks(rows: Sequence[Row], processor: Callable[[Sequence[Row], int], Optional[bool]],
                      chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """
    Feed rows to ``processor`` chunk by chunk.

    The processor receives each chunk and its offset; returning ``False``
    stops processing early.

    Returns:
        Number of rows handed to the processor
    """
    processed = 0
    for offset, chunk in iter_chunks(rows, chunk_size):
        processed += len(chunk)
        if processor(chunk, offset) is False:
            logger.debug(f"Chunk processing stopped after {processed} rows")
            break
    return processed


def estimate_memory_usage(rows: Sequence[Row], sample_size: int = 100) -> int:
    """Rough estimate in bytes of the memory held by ``rows``."""
    if not rows:
        return 0
    sample = rows[:sample_size]
    sampled_bytes = 0
    for row in sample:
        sampled_bytes += sys.getsizeof(row)
        for key, value in row.items():
            sampled_bytes += sys.getsizeof(key) + sys.getsizeof(value)
    return int(sampled_bytes / len(sample) * len(rows))


def _frame_to_rows(frame: pd.DataFrame) -> Tuple[List[Row], List[str]]:
    headers = [str(column) for column in frame.columns]
    frame.columns = headers
    cleaned = frame.astype(object).where(pd.notna(frame), None)

    rows = []
    for record in cleaned.to_dict(orient="records"):
        rows.append({
            key: value.item() if isinstance(value, np.generic) else value
            for key, value in record.items()
        })
    return rows, headers


def read_data_file(path: Path, sheet_name: Optional[str] = None) -> Tuple[List[Row], List[str]]:
    """
    Load a data file into rows and headers.

    Delimited text keeps every cell as text so type inference sees the raw
    values; spreadsheets and Parquet keep their native cell types.

    Raises:
        DataQualityError: If the file cannot be read or its format is unsupported
    """
    path = Path(path)
    suffix = path.suffix.lower()
    logger.info(f"Reading {path}")

    try:
        if suffix in (".csv", ".tsv", ".txt"):
            separator = "\t" if suffix == ".tsv" else None
            frame = pd.read_csv(path, sep=separator, engine="python", dtype=str,
                                keep_default_na=False)
        elif suffix == ".json":
            with open(path, "r", encoding="utf-8") as f:
                return normalize_records(json.load(f))
        elif suffix in (".xlsx", ".xlsm"):
            frame = pd.read_excel(path, sheet_name=sheet_name or 0, engine="openpyxl")
        elif suffix == ".parquet":
            frame = pd.read_parquet(path)
        else:
            raise DataQualityError(
                f"Unsupported file format: {suffix or path.name}",
                ErrorCategory.INPUT, code="UNSUPPORTED_FORMAT",
                suggestion="Use a CSV, TSV, JSON, XLSX or Parquet file",
            )
    except DataQualityError:
        raise
    except FileNotFoundError as e:
        raise DataQualityError(f"File not found: {path}", ErrorCategory.INPUT,
                               code="FILE_NOT_FOUND") from e
    except (ValueError, OSError, ImportError) as e:
        raise DataQualityError(f"Could not parse {path.name}: {e}", ErrorCategory.PARSING,
                               code="PARSE_FAILED") from e

    rows, headers = _frame_to_rows(frame)
    logger.info(f"Loaded {len(rows)} rows and {len(headers)} columns from {path.name}")
    return rows, headers


def write_data_file(rows: List[Row], headers: List[str], path: Path) -> None:
    """Write rows as CSV, or as JSON records for a ``.json`` path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".json":
        with open(path, "w", encoding="utf-8") as f:
            json.dump(rows, f, indent=2, default=str)
    else:
        pd.DataFrame(rows, columns=headers).to_csv(path, index=False)
    logger.info(f"Wrote {len(rows)} rows to {path}")
