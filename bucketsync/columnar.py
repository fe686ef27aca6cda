"""Parquet archive file access and lossless merging.

Archive files hold one month of records for a dataset and are named
``{dataset}_{year:04}_{month:02}.parquet``.
"""

import logging
from pathlib import Path

import pandas as pd

from .exceptions import MergeFailure

logger = logging.getLogger(__name__)

PARQUET_EXTENSION = "parquet"


def archive_filename(
    dataset: str, year: int, month: int, ext: str = PARQUET_EXTENSION
) -> str:
    """Build the file name of a monthly archive file.

    Examples:
        >>> archive_filename("weather_data", 2024, 3)
        'weather_data_2024_03.parquet'
    """
    return f"{dataset}_{year:04}_{month:02}.{ext}"


def read(path: Path) -> pd.DataFrame:
    """Read a parquet file into a DataFrame."""
    return pd.read_parquet(path)


def write(path: Path, table: pd.DataFrame) -> None:
    """Write a DataFrame to a parquet file (without the index)."""
    table.to_parquet(path, index=False)


def concat_unique(first: pd.DataFrame, second: pd.DataFrame) -> pd.DataFrame:
    """Stack two tables and drop duplicate rows.

    When a row appears in both tables the occurrence from ``first`` is kept,
    and rows keep their original order.

    Args:
        first: Table whose rows win on duplicates
        second: Table appended after ``first``

    Returns:
        New DataFrame with a fresh RangeIndex
    """
    combined = pd.concat([first, second], ignore_index=True)
    return combined.drop_duplicates(keep="first", ignore_index=True)


def row_count(table: pd.DataFrame) -> int:
    """Return the number of rows of a table."""
    return len(table.index)


def shape(table: pd.DataFrame) -> tuple[int, int]:
    """Return ``(rows, columns)`` of a table."""
    rows, cols = table.shape
    return rows, cols


def merge_files(new_path: Path, existing_path: Path) -> tuple[int, int]:
    """Merge the rows of ``new_path`` into ``existing_path``.

    Rows already present in the existing file take precedence; rows only
    present in the new file are appended. The result is written back to
    ``existing_path``, so the destination never loses a unique row of
    either side.

    Args:
        new_path: Freshly downloaded file
        existing_path: File currently at the destination (rewritten in place)

    Returns:
        Shape of the merged table

    Raises:
        MergeFailure: If either file cannot be read or the result cannot be written
    """
    try:
        existing = read(existing_path)
        incoming = read(new_path)
        merged = concat_unique(existing, incoming)
        write(existing_path, merged)
    except (OSError, ValueError, TypeError) as e:
        raise MergeFailure(
            f"Failed to merge {new_path.name} into {existing_path}: {e}"
        ) from e

    logger.debug(
        f"Merged {existing_path.name}: {shape(existing)} + {shape(incoming)} "
        f"-> {shape(merged)}"
    )
    return shape(merged)
