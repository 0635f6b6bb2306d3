# src/PrecipFillPy/matrices.py
# SPDX-License-Identifier: MIT
"""
Pairwise station relationships.

Three square matrices are computed once per run and then passed
explicitly to the weight selector and the imputer:

- :func:`distance_matrix`: planar Euclidean distance (zero diagonal).
- :func:`overlap_matrix`: number of days both stations are observed.
- :func:`correlation_matrix`: Pearson correlation on the mutually
  observed days of each pair (pairwise-complete), ``NaN`` when undefined
  and always ``NaN`` on the diagonal.

All three are :class:`pandas.DataFrame` objects indexed (rows and columns)
by the station names in table order.

Single-pair variants (:func:`pairwise_distance`, :func:`overlap_count`,
:func:`correlation`) follow the same definitions and are mainly useful for
checks and diagnostics.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import pairwise_distances

from .exceptions import InvalidInputError

# Fewer mutually observed days than this and the correlation is undefined.
MIN_CORRELATION_OVERLAP = 2


# ---------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------


def _as_point(p: Sequence[float]) -> np.ndarray:
    arr = np.asarray(p, dtype=float)
    if arr.shape != (2,) or not np.isfinite(arr).all():
        raise InvalidInputError(f"Malformed planar coordinate: {p!r}")
    return arr


def pairwise_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two planar points ``(x, y)``."""
    pa, pb = _as_point(a), _as_point(b)
    return float(np.hypot(*(pa - pb)))


def distance_matrix(coordinates: pd.DataFrame) -> pd.DataFrame:
    """
    Distance between every ordered pair of stations.

    Parameters
    ----------
    coordinates : DataFrame
        Indexed by station with float columns ``x`` and ``y`` (see
        :attr:`StationData.coordinates`).

    Returns
    -------
    DataFrame
        Symmetric, non-negative, zero on the diagonal.
    """
    xy = coordinates[["x", "y"]].to_numpy(dtype=float)
    if not np.isfinite(xy).all():
        raise InvalidInputError("Coordinates must be finite numbers.")
    dist = pairwise_distances(xy, metric="euclidean")
    # pairwise_distances can leave tiny asymmetries from float rounding
    dist = (dist + dist.T) / 2.0
    np.fill_diagonal(dist, 0.0)
    return pd.DataFrame(dist, index=coordinates.index, columns=coordinates.index)


# ---------------------------------------------------------------------
# Overlap
# ---------------------------------------------------------------------


def overlap_count(a: Iterable[float], b: Iterable[float]) -> int:
    """Number of timesteps where both *a* and *b* are present."""
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape:
        raise InvalidInputError(
            f"Series are not aligned: {va.shape} vs {vb.shape}."
        )
    return int(np.sum(~np.isnan(va) & ~np.isnan(vb)))


def overlap_matrix(values: pd.DataFrame) -> pd.DataFrame:
    """
    Mutually observed day counts for every station pair.

    The diagonal holds each station's own observed count; it is never
    used as a selection criterion.
    """
    present = values.notna().to_numpy(dtype=np.int64)
    counts = present.T @ present
    return pd.DataFrame(counts, index=values.columns, columns=values.columns)


# ---------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------


def correlation(a: Iterable[float], b: Iterable[float]) -> float:
    """
    Pearson correlation over the timesteps where both series are present.

    Returns ``NaN`` when fewer than two timesteps overlap or when either
    series is constant over the overlap.
    """
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape:
        raise InvalidInputError(
            f"Series are not aligned: {va.shape} vs {vb.shape}."
        )
    both = ~np.isnan(va) & ~np.isnan(vb)
    if both.sum() < MIN_CORRELATION_OVERLAP:
        return np.nan
    xa, xb = va[both], vb[both]
    if np.std(xa) == 0 or np.std(xb) == 0:
        return np.nan
    r = float(np.corrcoef(xa, xb)[0, 1])
    if not np.isfinite(r):
        return np.nan
    return float(np.clip(r, -1.0, 1.0))


def correlation_matrix(values: pd.DataFrame) -> pd.DataFrame:
    """
    Pairwise-complete Pearson correlation for every station pair.

    Each pair uses exactly its own mutually observed days, so a day missing
    at station ``c`` does not affect ``corr(a, b)``. Undefined pairs (too
    little overlap, zero variance) are ``NaN``; the diagonal is ``NaN``.
    """
    corr = values.corr(method="pearson", min_periods=MIN_CORRELATION_OVERLAP)
    arr = np.clip(corr.to_numpy(dtype=float, copy=True), -1.0, 1.0)
    np.fill_diagonal(arr, np.nan)
    return pd.DataFrame(arr, index=values.columns, columns=values.columns)


# ---------------------------------------------------------------------
# Long-format view (for diagnostics / plots)
# ---------------------------------------------------------------------


def relationship_table(
    distance: pd.DataFrame,
    overlap: pd.DataFrame,
    correlation: pd.DataFrame,
) -> pd.DataFrame:
    """
    One row per unordered station pair with distance, overlap and
    correlation, sorted by distance.

    Columns: ``station_a, station_b, distance, overlap, correlation``.
    """
    stations = list(distance.index)
    if list(overlap.index) != stations or list(correlation.index) != stations:
        raise InvalidInputError("Matrices are not indexed by the same stations.")

    iu, ju = np.triu_indices(len(stations), k=1)
    out = pd.DataFrame(
        {
            "station_a": [stations[i] for i in iu],
            "station_b": [stations[j] for j in ju],
            "distance": distance.to_numpy(dtype=float)[iu, ju],
            "overlap": overlap.to_numpy()[iu, ju].astype(int),
            "correlation": correlation.to_numpy(dtype=float)[iu, ju],
        }
    )
    return out.sort_values("distance", kind="mergesort").reset_index(drop=True)


__all__ = [
    "MIN_CORRELATION_OVERLAP",
    "pairwise_distance",
    "distance_matrix",
    "overlap_count",
    "overlap_matrix",
    "correlation",
    "correlation_matrix",
    "relationship_table",
]
