# src/PrecipFillPy/io.py
# SPDX-License-Identifier: MIT
"""
Thin readers and writers around the core.

Nothing in here computes anything: the readers hand plain DataFrames to
:class:`~PrecipFillPy.data.StationData` (which does the validation) and the
writers persist whatever the pipeline produced.

Supported table formats are ``.csv`` and ``.parquet`` (the latter needs
``pyarrow``).
"""

from __future__ import annotations

import json
import os
from typing import Iterable, Optional

import pandas as pd

from .exceptions import InvalidInputError


def _ensure_parent_dir(path: Optional[str]) -> None:
    """Create the parent directory for *path* if needed (no-op on None)."""
    if not path:
        return
    d = os.path.dirname(str(path)) or "."
    os.makedirs(d, exist_ok=True)


def _read_any(path: str, **csv_kwargs) -> pd.DataFrame:
    ext = os.path.splitext(str(path))[1].lower()
    if ext == ".csv":
        return pd.read_csv(path, **csv_kwargs)
    if ext == ".parquet":
        return pd.read_parquet(path)
    raise ValueError(f"Unsupported extension: {ext}")


def read_station_table(
    path: str,
    *,
    date_col: str = "date",
    na_values: Optional[Iterable] = None,
) -> pd.DataFrame:
    """
    Read a wide station table ``date | station_1 | station_2 | ...``.

    Station names are read as strings. *na_values* lets a file that marks
    gaps with a numeric code (e.g. ``-99``) be read with explicit missing
    values instead.
    """
    kwargs = {}
    if na_values is not None:
        kwargs["na_values"] = list(na_values)
    df = _read_any(path, **kwargs)
    if date_col not in df.columns:
        raise InvalidInputError(f"{path}: no date column {date_col!r}.")
    df.columns = [c if c == date_col else str(c) for c in df.columns]
    return df


def read_coordinates(
    path: str,
    *,
    station_col: str = "station",
    x_col: str = "x",
    y_col: str = "y",
) -> pd.DataFrame:
    """
    Read a station coordinate table and return it indexed by station name
    (as string) with columns ``x`` and ``y``.
    """
    df = _read_any(path)
    missing = [c for c in (station_col, x_col, y_col) if c not in df.columns]
    if missing:
        raise InvalidInputError(f"{path}: coordinate table is missing columns {missing}.")
    out = df[[station_col, x_col, y_col]].rename(columns={x_col: "x", y_col: "y"})
    out[station_col] = out[station_col].astype(str)
    return out.set_index(station_col)


def save_table(
    df: pd.DataFrame,
    path: Optional[str],
    *,
    parquet_compression: str = "snappy",
) -> Optional[str]:
    """Save *df* as CSV or Parquet depending on the extension of *path*."""
    if path is None:
        return None
    _ensure_parent_dir(path)
    ext = os.path.splitext(path)[1].lower()
    if ext == ".csv":
        df.to_csv(path, index=False)
    elif ext == ".parquet":
        df.to_parquet(path, index=False, compression=parquet_compression)
    else:
        raise ValueError(f"Unsupported extension: {ext}")
    return path


def save_json(obj: dict, path: Optional[str]) -> Optional[str]:
    """Persist a dictionary as a UTF-8 JSON file with indentation."""
    if path is None:
        return None
    _ensure_parent_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)
    return path


__all__ = ["read_station_table", "read_coordinates", "save_table", "save_json"]
