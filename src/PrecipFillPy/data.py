# src/PrecipFillPy/data.py
# SPDX-License-Identifier: MIT
"""
Validated station-network container.

:class:`StationData` holds the daily values of every station on one shared
date axis together with the planar coordinates of each station. All
structural checks happen here, before any matrix is computed, and raise
:class:`~PrecipFillPy.exceptions.InvalidInputError`:

- the date column must exist, parse, be strictly increasing and have no
  time-of-day component (daily resolution);
- every station column must be numeric;
- every station must have two finite planar coordinates;
- the analysis window ``[start, end]`` (inclusive) must contain data.

Missing values are stored as ``NaN`` in float columns. Code downstream never
does arithmetic on the raw values without first taking the presence mask
(:attr:`StationData.presence`).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Hashable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from pandas.api.types import DatetimeTZDtype

from .exceptions import InvalidInputError

CoordinatesLike = Union[pd.DataFrame, Mapping[Hashable, Sequence[float]]]


# ---------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------


def _validate_dates(dates: pd.Series) -> pd.DatetimeIndex:
    """Parse *dates* and check they form a strictly increasing daily axis."""
    parsed = pd.to_datetime(dates, errors="coerce")
    if isinstance(parsed.dtype, DatetimeTZDtype):
        parsed = parsed.dt.tz_localize(None)
    if parsed.isna().any():
        bad = dates[parsed.isna()].head(5).tolist()
        raise InvalidInputError(f"Unparseable or missing dates: {bad}")

    idx = pd.DatetimeIndex(parsed)
    if idx.has_duplicates:
        dup = idx[idx.duplicated()].unique()[:5].strftime("%Y-%m-%d").tolist()
        raise InvalidInputError(f"Duplicated dates in the station table: {dup}")
    if not idx.is_monotonic_increasing:
        raise InvalidInputError("Dates must be monotonically increasing.")
    if (idx != idx.normalize()).any():
        raise InvalidInputError(
            "Dates must have daily resolution (no time-of-day component)."
        )
    return idx


def _validate_values(raw: pd.DataFrame) -> pd.DataFrame:
    """Coerce station columns to float, rejecting non-numeric entries."""
    present_raw = raw.notna()
    values = raw.apply(lambda s: pd.to_numeric(s, errors="coerce")).astype(float)

    bad = present_raw & values.isna()
    if bad.any().any():
        cols = bad.columns[bad.any()].tolist()
        raise InvalidInputError(f"Non-numeric values in station columns: {cols}")

    arr = values.to_numpy()
    if np.isinf(arr).any():
        cols = values.columns[np.isinf(arr).any(axis=0)].tolist()
        raise InvalidInputError(f"Infinite values in station columns: {cols}")
    return values


def _parse_bound(value, which: str) -> pd.Timestamp:
    try:
        return pd.Timestamp(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Unparseable analysis {which}: {value!r}.") from exc


def _coerce_coordinates(
    coordinates: CoordinatesLike,
    *,
    x_col: str = "x",
    y_col: str = "y",
) -> pd.DataFrame:
    """
    Normalise a coordinate table to a DataFrame indexed by station with
    float columns ``x`` and ``y``.

    Accepts either a DataFrame (indexed by station, with *x_col* and
    *y_col*) or a mapping ``station -> (x, y)``.
    """
    if isinstance(coordinates, pd.DataFrame):
        missing = [c for c in (x_col, y_col) if c not in coordinates.columns]
        if missing:
            raise InvalidInputError(f"Coordinate table is missing columns: {missing}")
        coords = coordinates[[x_col, y_col]].rename(columns={x_col: "x", y_col: "y"})
    elif isinstance(coordinates, Mapping):
        rows: Dict[Hashable, Tuple[object, object]] = {}
        for name, xy in coordinates.items():
            try:
                x, y = xy
            except (TypeError, ValueError) as e:
                raise InvalidInputError(
                    f"Coordinates for station {name!r} must be an (x, y) pair."
                ) from e
            rows[name] = (x, y)
        coords = pd.DataFrame.from_dict(rows, orient="index", columns=["x", "y"])
    else:
        raise InvalidInputError(
            "Coordinates must be a DataFrame or a mapping station -> (x, y)."
        )

    if coords.index.has_duplicates:
        dup = coords.index[coords.index.duplicated()].unique().tolist()
        raise InvalidInputError(f"Duplicated stations in coordinate table: {dup}")

    num = coords.apply(lambda s: pd.to_numeric(s, errors="coerce")).astype(float)
    bad = ~np.isfinite(num.to_numpy()).all(axis=1)
    if bad.any():
        raise InvalidInputError(
            f"Malformed coordinates for stations: {num.index[bad].tolist()}"
        )
    return num


# ---------------------------------------------------------------------
# Container
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class StationData:
    """Daily station values on a shared date axis plus planar coordinates.

    Attributes
    ----------
    values :
        Float DataFrame indexed by a daily :class:`~pandas.DatetimeIndex`
        (named *date_col*), one column per station, ``NaN`` = missing.
    coordinates :
        DataFrame indexed by station (same order as ``values.columns``)
        with float columns ``x`` and ``y``.
    date_col :
        Name of the date column used when converting back to a flat table.
    """

    values: pd.DataFrame
    coordinates: pd.DataFrame
    date_col: str = "date"

    @classmethod
    def from_frames(
        cls,
        table: pd.DataFrame,
        coordinates: CoordinatesLike,
        *,
        date_col: str = "date",
        x_col: str = "x",
        y_col: str = "y",
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> "StationData":
        """
        Build from a wide table (one date column + one column per station)
        and a coordinate table.

        Parameters
        ----------
        table : DataFrame
            ``date | station_1 | station_2 | ...``.
        coordinates : DataFrame or mapping
            Station -> planar (x, y). Stations present here but absent from
            *table* are ignored.
        start, end : str, optional
            Inclusive analysis window.
        """
        if date_col not in table.columns:
            raise InvalidInputError(f"Station table has no date column {date_col!r}.")

        stations = [c for c in table.columns if c != date_col]
        if len(stations) < 2:
            raise InvalidInputError(
                "At least two station columns are required to borrow information."
            )

        idx = _validate_dates(table[date_col].reset_index(drop=True))
        values = _validate_values(table[stations].reset_index(drop=True))
        values.index = idx.rename(date_col)
        values.columns.name = None

        coords = _coerce_coordinates(coordinates, x_col=x_col, y_col=y_col)
        lookup = {str(k): k for k in coords.index}
        missing = [s for s in stations if s not in coords.index and str(s) not in lookup]
        if missing:
            raise InvalidInputError(f"No coordinates for stations: {missing}")
        keys = [s if s in coords.index else lookup[str(s)] for s in stations]
        coords = coords.loc[keys]
        coords.index = pd.Index(stations, name="station")

        data = cls(values=values, coordinates=coords, date_col=date_col)
        return data.window(start, end)

    @classmethod
    def from_long(
        cls,
        data: pd.DataFrame,
        *,
        id_col: str = "station",
        date_col: str = "date",
        x_col: str = "x",
        y_col: str = "y",
        value_col: str = "prec",
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> "StationData":
        """
        Build from a long table ``station | date | x | y | prec``.

        Coordinates are taken as the per-station median, so repeated
        coordinate values on every row are fine.
        """
        needed = [id_col, date_col, x_col, y_col, value_col]
        missing = [c for c in needed if c not in data.columns]
        if missing:
            raise InvalidInputError(f"Input table is missing columns: {missing}")

        df = data[needed].copy()
        df[date_col] = pd.to_datetime(df[date_col], errors="coerce")
        if df[date_col].isna().any():
            raise InvalidInputError("Unparseable or missing dates in long table.")
        if df.duplicated(subset=[id_col, date_col]).any():
            raise InvalidInputError("Duplicated (station, date) rows in long table.")

        coords = df.groupby(id_col, sort=False)[[x_col, y_col]].median()
        wide = df.pivot(index=date_col, columns=id_col, values=value_col).sort_index()
        wide.columns.name = None
        return cls.from_frames(
            wide.reset_index(),
            coords,
            date_col=date_col,
            x_col=x_col,
            y_col=y_col,
            start=start,
            end=end,
        )

    # ------------------------------------------------------------------

    @property
    def stations(self) -> List[Hashable]:
        return list(self.values.columns)

    @property
    def dates(self) -> pd.DatetimeIndex:
        return self.values.index

    @property
    def presence(self) -> pd.DataFrame:
        """Boolean mask: True where a station has an observation."""
        return self.values.notna()

    def window(self, start: Optional[str] = None, end: Optional[str] = None) -> "StationData":
        """
        Restrict to the inclusive analysis period from *start* to *end*. A
        ``None`` bound keeps the table bound.
        """
        idx = self.values.index
        if start is not None or end is not None:
            lo = _parse_bound(start, "start") if start is not None else idx.min()
            hi = _parse_bound(end, "end") if end is not None else idx.max()
            if lo > hi:
                raise InvalidInputError(f"Analysis start {lo.date()} is after end {hi.date()}.")
            data = replace(self, values=self.values.loc[(idx >= lo) & (idx <= hi)])
        else:
            data = self
        if data.values.empty:
            raise InvalidInputError("No rows in the requested analysis period.")
        return data

    def missing_counts(self) -> pd.Series:
        """Number of missing days per station in the analysis period."""
        return (~self.presence).sum(axis=0).astype(int)

    def to_frame(self, values: Optional[pd.DataFrame] = None) -> pd.DataFrame:
        """Return *values* (default: the observations) as a flat table."""
        out = self.values if values is None else values
        return out.reset_index().rename(columns={"index": self.date_col})


__all__ = ["StationData"]
