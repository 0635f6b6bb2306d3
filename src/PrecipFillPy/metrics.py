# src/PrecipFillPy/metrics.py
# SPDX-License-Identifier: MIT
"""
Error metrics used to score estimated against observed precipitation.

- :func:`pearson_r`: Pearson correlation, ``NaN`` when undefined.
- :func:`regression_metrics`: MAE, R and RMSE in a single dict.
- :func:`aggregate_and_score`: monthly/annual totals of both series, then
  :func:`regression_metrics` on complete periods only.

Any iterable is accepted. An undefined metric (no points, zero variance)
is ``numpy.nan``, never 0. ``R`` is the correlation coefficient, not
``r2_score``.
"""

from __future__ import annotations

from typing import Dict, Iterable, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error

METRIC_KEYS = ("MAE", "R", "RMSE")


# ---------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------


def _as_arrays(
    y_true: Iterable[float],
    y_pred: Iterable[float],
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert *y_true* and *y_pred* to NumPy arrays of ``dtype=float`` and
    verify that they share the same shape.

    Raises
    ------
    ValueError
        If the shapes of *y_true* and *y_pred* do not match.
    """
    yt = np.asarray(y_true, dtype=float)
    yp = np.asarray(y_pred, dtype=float)

    if yt.shape != yp.shape:
        raise ValueError(
            f"Shapes of y_true {yt.shape} and y_pred {yp.shape} do not match."
        )
    return yt, yp


def _nan_metrics() -> Dict[str, float]:
    return {k: np.nan for k in METRIC_KEYS}


# ---------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------


def pearson_r(y_true: Iterable[float], y_pred: Iterable[float]) -> float:
    """
    Pearson correlation coefficient.

    Returns ``np.nan`` when fewer than two points are given or when either
    series has zero variance.
    """
    yt, yp = _as_arrays(y_true, y_pred)
    if yt.size < 2:
        return np.nan
    if float(np.std(yt)) == 0.0 or float(np.std(yp)) == 0.0:
        return np.nan
    r = float(np.corrcoef(yt, yp)[0, 1])
    if not np.isfinite(r):
        return np.nan
    return float(np.clip(r, -1.0, 1.0))


def regression_metrics(y_true: Iterable[float], y_pred: Iterable[float]) -> Dict[str, float]:
    """
    Compute MAE, R (Pearson) and RMSE.

    Both inputs must already be restricted to pairs where both values are
    present; ``NaN`` entries are not dropped here.

    Degenerate cases
    ----------------
    * Empty input: every metric is ``np.nan``.
    * A single pair, or zero variance in either series: MAE and RMSE are
      computed as usual, ``R`` is ``np.nan``.
    """
    yt, yp = _as_arrays(y_true, y_pred)

    if yt.size == 0:
        return _nan_metrics()

    mae = float(mean_absolute_error(yt, yp))
    # sqrt of MSE instead of the removed `squared=False` keyword
    rmse = float(np.sqrt(mean_squared_error(yt, yp)))
    r = pearson_r(yt, yp)

    return {"MAE": mae, "R": r, "RMSE": rmse}


# ---------------------------------------------------------------------
# Temporal aggregation + metrics
# ---------------------------------------------------------------------


_FREQ_ALIAS = {
    "M": "ME",  # monthly end-of-month
    "A": "YE",  # annual
    "Y": "YE",
    "Q": "QE",  # quarterly
}


def aggregate_and_score(
    df_pred: pd.DataFrame,
    *,
    date_col: str = "date",
    y_col: str = "y_true",
    yhat_col: str = "y_pred",
    freq: str = "M",
    agg: str = "sum",
) -> Tuple[Dict[str, float], pd.DataFrame]:
    """
    Aggregate a daily observed/estimated table to a coarser time scale and
    compute :func:`regression_metrics` on the aggregated series.

    Typically used for monthly or annual precipitation totals.

    Only periods in which **every** row has both an observed and an
    estimated value are kept, so a month with gaps is not compared as if it
    had a smaller total.

    Parameters
    ----------
    df_pred : pandas.DataFrame
        DataFrame with at least [date_col, y_col, yhat_col].
    freq : str, default "M"
        Resampling frequency (``"M"``, ``"YE"``, ``"QE"``...). Legacy
        aliases are mapped via :data:`_FREQ_ALIAS`.
    agg : {"sum", "mean", "median"}
        Aggregation applied to both series.

    Returns
    -------
    metrics : dict
        MAE, R, RMSE on the aggregated series.
    agg_df : pandas.DataFrame
        Aggregated [y_col, yhat_col] indexed by period.
    """
    freq = _FREQ_ALIAS.get(freq, freq)
    agg = agg.lower()
    if agg not in {"sum", "mean", "median"}:
        raise ValueError("agg must be one of: 'sum', 'mean', or 'median'.")

    df = df_pred[[date_col, y_col, yhat_col]].copy()
    df[date_col] = pd.to_datetime(df[date_col], errors="coerce")
    df = df.dropna(subset=[date_col])

    if df.empty:
        return _nan_metrics(), df

    df = df.set_index(date_col).sort_index()
    complete = df[[y_col, yhat_col]].notna().all(axis=1)

    resampler = df.resample(freq)
    if agg == "sum":
        agg_df = resampler.sum(min_count=1)
    elif agg == "median":
        agg_df = resampler.median()
    else:  # "mean"
        agg_df = resampler.mean()

    # rows in each period vs. rows with both values present
    n_rows = complete.resample(freq).size()
    n_complete = complete.resample(freq).sum()
    full = (n_rows > 0) & (n_complete == n_rows)
    agg_df = agg_df.loc[full.reindex(agg_df.index, fill_value=False)].dropna()

    if agg_df.empty:
        return _nan_metrics(), agg_df

    metrics = regression_metrics(agg_df[y_col].values, agg_df[yhat_col].values)
    return metrics, agg_df


__all__ = [
    "METRIC_KEYS",
    "pearson_r",
    "regression_metrics",
    "aggregate_and_score",
]
