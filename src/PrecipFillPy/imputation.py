# src/PrecipFillPy/imputation.py
# SPDX-License-Identifier: MIT
"""
Weighted-average imputation from donor stations.

For a target station ``a`` and day ``t`` let ``P_t`` be the eligible donors
(non-``NaN`` entries in row ``a`` of the weight matrix) observed on ``t``::

    estimate(a, t) = sum_{b in P_t} w_ab * x_bt / sum_{b in P_t} w_ab

Donors missing on ``t`` are dropped from the numerator *and* the
denominator. The estimate is left missing when ``P_t`` is empty or when the
weights in ``P_t`` sum to zero (possible with signed correlation weights).

Two modes share the estimator:

- ``"gapfill"``: only missing days of the target are written; observed
  values are never touched.
- ``"simulate"``: every day is written with the estimate (full
  simulation), used to score the method against the observations.

Stations are independent of each other. With ``n_jobs != 1`` they are
dispatched through :class:`joblib.Parallel`; each task reads the shared
arrays and returns only its own column.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Hashable, List, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from tqdm.auto import tqdm

from .exceptions import InvalidInputError, NoEligibleDonorsWarning

MODES = ("gapfill", "simulate")

# Relative tolerance under which a weight sum counts as zero.
_ZERO_SUM_RTOL = 1e-12


@dataclass
class ImputationResult:
    """Output of :func:`impute`.

    Attributes
    ----------
    series :
        Filled (``"gapfill"``) or simulated (``"simulate"``) values, same
        index and columns as the input.
    filled_mask :
        True where the value in *series* is an estimate.
    stations_without_donors :
        Stations whose weight row is entirely ``NaN``. Their gaps are left
        as-is (gap-fill) or their whole series is ``NaN`` (simulation).
    unestimated :
        Per-station count of days that needed an estimate but got none
        (no donor observed that day, or zero weight sum).
    cancelled_weights :
        Per-station count of those days where donors were observed but
        their weights summed to zero (a subset of *unestimated*).
    mode :
        ``"gapfill"`` or ``"simulate"``.
    """

    series: pd.DataFrame
    filled_mask: pd.DataFrame
    stations_without_donors: List[Hashable] = field(default_factory=list)
    unestimated: pd.Series = field(default_factory=lambda: pd.Series(dtype=int))
    cancelled_weights: pd.Series = field(default_factory=lambda: pd.Series(dtype=int))
    mode: str = "gapfill"

    @property
    def n_filled(self) -> int:
        return int(self.filled_mask.to_numpy().sum())


# ---------------------------------------------------------------------
# Core estimator
# ---------------------------------------------------------------------


def _estimate_column(
    values: np.ndarray,
    present: np.ndarray,
    weights_row: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Weighted estimate for every day from one weight row.

    Returns ``(estimate, zero_sum)`` where *zero_sum* flags days with
    observed donors whose weights cancel out.
    """
    n_days = values.shape[0]
    est = np.full(n_days, np.nan)
    zero_sum = np.zeros(n_days, dtype=bool)

    donors = np.flatnonzero(~np.isnan(weights_row))
    if donors.size == 0:
        return est, zero_sum

    w = weights_row[donors]
    x = values[:, donors]
    m = present[:, donors]
    finite = np.isfinite(w)

    if finite.any():
        wf = w[finite]
        mf = m[:, finite]
        xf = np.where(mf, x[:, finite], 0.0)
        num = xf @ wf
        den = mf.astype(float) @ wf
        den_abs = mf.astype(float) @ np.abs(wf)
        observed = mf.any(axis=1)
        cancels = np.abs(den) <= _ZERO_SUM_RTOL * den_abs
        ok = observed & ~cancels
        est[ok] = num[ok] / den[ok]
        zero_sum = observed & cancels

    if not finite.all():
        # coincident donors (distance 0): their plain mean is the limit
        mi = m[:, ~finite]
        xi = np.where(mi, x[:, ~finite], 0.0)
        count = mi.sum(axis=1)
        has = count > 0
        est[has] = xi[has].sum(axis=1) / count[has]
        zero_sum &= ~has

    return est, zero_sum


def _check_weights(values: pd.DataFrame, weights: pd.DataFrame) -> None:
    stations = list(values.columns)
    if list(weights.index) != stations or list(weights.columns) != stations:
        raise InvalidInputError(
            "Weight matrix must be indexed by the station columns, in order."
        )


def estimate_station(
    values: pd.DataFrame,
    weights: pd.DataFrame,
    station: Hashable,
) -> pd.Series:
    """
    Full-simulation estimate for a single *station* (every day), ``NaN``
    where no estimate is possible.
    """
    _check_weights(values, weights)
    if station not in values.columns:
        raise KeyError(f"Unknown station {station!r}.")
    arr = values.to_numpy(dtype=float)
    est, _ = _estimate_column(arr, ~np.isnan(arr), weights.loc[station].to_numpy(dtype=float))
    return pd.Series(est, index=values.index, name=station)


def impute(
    values: pd.DataFrame,
    weights: pd.DataFrame,
    *,
    mode: str = "gapfill",
    n_jobs: int = 1,
    show_progress: bool = False,
) -> ImputationResult:
    """
    Estimate station values from eligible donors.

    Parameters
    ----------
    values : DataFrame
        Daily values, one column per station, ``NaN`` = missing.
    weights : DataFrame
        Filtered weight matrix from :func:`~PrecipFillPy.weights.select_weights`.
    mode : {"gapfill", "simulate"}
        Write estimates only on missing days, or on every day.
    n_jobs : int, default 1
        Parallel workers (joblib semantics, ``-1`` = all cores).
    show_progress : bool, default False
        Show a tqdm bar over stations and a short summary line.

    Returns
    -------
    ImputationResult
    """
    if mode not in MODES:
        raise ValueError(f"Unknown imputation mode {mode!r}; use one of {MODES}.")
    _check_weights(values, weights)

    stations = list(values.columns)
    arr = values.to_numpy(dtype=float)
    present = ~np.isnan(arr)
    w = weights.to_numpy(dtype=float)

    iterator = range(len(stations))
    if show_progress:
        iterator = tqdm(iterator, desc=f"Imputing ({mode})", unit="st")

    if n_jobs == 1:
        columns = [_estimate_column(arr, present, w[j]) for j in iterator]
    else:
        columns = Parallel(n_jobs=n_jobs)(
            delayed(_estimate_column)(arr, present, w[j]) for j in iterator
        )

    est = np.column_stack([c[0] for c in columns]) if columns else np.empty_like(arr)
    zero_sum = (
        np.column_stack([c[1] for c in columns]) if columns else np.zeros_like(present)
    )
    have_est = ~np.isnan(est)

    if mode == "gapfill":
        filled_mask = ~present & have_est
        out = np.where(filled_mask, est, arr)
        needed = ~present
    else:
        filled_mask = have_est
        out = est
        needed = np.ones_like(present)

    without = [s for s, row in zip(stations, w) if np.isnan(row).all()]
    if without:
        warnings.warn(
            f"No eligible donors for stations {without}; their values are left missing.",
            NoEligibleDonorsWarning,
            stacklevel=2,
        )

    unestimated = pd.Series(
        (needed & ~have_est).sum(axis=0).astype(int),
        index=values.columns,
        name="unestimated",
    )
    cancelled_weights = pd.Series(
        (needed & zero_sum).sum(axis=0).astype(int),
        index=values.columns,
        name="cancelled_weights",
    )

    if show_progress:
        tqdm.write(
            f"[impute] mode={mode}: {int(filled_mask.sum())} values estimated, "
            f"{int(unestimated.sum())} left missing, "
            f"{len(without)} station(s) without donors"
        )

    return ImputationResult(
        series=pd.DataFrame(out, index=values.index, columns=values.columns),
        filled_mask=pd.DataFrame(filled_mask, index=values.index, columns=values.columns),
        stations_without_donors=without,
        unestimated=unestimated,
        cancelled_weights=cancelled_weights,
        mode=mode,
    )


__all__ = ["MODES", "ImputationResult", "estimate_station", "impute"]
