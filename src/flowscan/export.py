"""Tabular export of result rows via pandas."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Sequence

import pandas as pd
from pydantic import BaseModel

from flowscan.exceptions import FlowscanError


def _cell(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (frozenset, set)):
        return ",".join(sorted(_cell(v) for v in value))
    if isinstance(value, tuple):
        return ",".join(str(_cell(v)) for v in value)
    return value


def to_frame(rows: Sequence[BaseModel], exclude: set[str] | None = None) -> pd.DataFrame:
    """Convert models to a DataFrame, one column per field.

    Computed fields (such as an enriched bar's ``signal``) are included.
    Enum values are written by value and collections are comma-joined.
    ``None`` becomes an empty cell, keeping "no data" distinct from zero.

    :param rows: Models of a single type.
    :param exclude: Field names to leave out.
    :returns: DataFrame with object columns for nullable fields.
    """
    records = [
        {key: _cell(value) for key, value in row.model_dump(exclude=exclude).items()}
        for row in rows
    ]
    return pd.DataFrame.from_records(records)


def write_csv(
    rows: Sequence[BaseModel],
    path: str | Path,
    exclude: set[str] | None = None,
) -> Path:
    """Write models to a UTF-8 CSV file (with BOM, for spreadsheet apps).

    :param rows: Models to write.
    :param path: Destination file; parent directories are created.
    :param exclude: Field names to leave out.
    :returns: The written path.
    :raises FlowscanError: If the file cannot be written.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        to_frame(rows, exclude).to_csv(path, index=False, encoding="utf-8-sig")
    except OSError as e:
        raise FlowscanError(f"Failed to write {path}: {e}") from e
    return path


__all__ = ["to_frame", "write_csv"]
