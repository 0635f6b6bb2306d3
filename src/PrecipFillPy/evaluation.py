# src/PrecipFillPy/evaluation.py
# SPDX-License-Identifier: MIT
"""
Accuracy evaluation of simulated station series.

The full-simulation output of :func:`~PrecipFillPy.imputation.impute`
(``mode="simulate"``) is compared with the observations station by station.
Statistics are computed on the days where the observation is present; the
number of missing observations is counted over the whole analysis period.

A station whose simulated series has more than one missing day is treated
as a failed reconstruction: its row is left blank (``NaN``), never zero.
The report ends with one aggregate row, labelled ``"Mean"``, holding the
mean of each column over the stations with a non-blank row.
"""

from __future__ import annotations

from typing import Dict, Hashable, Iterable, List, Union

import numpy as np
import pandas as pd

from .exceptions import InvalidInputError
from .imputation import ImputationResult
from .metrics import aggregate_and_score, regression_metrics

REPORT_COLUMNS = [
    "Station",
    "MAE",
    "R",
    "RMSE",
    "NumberMissing",
    "ObservedMean",
    "EstimatedMean",
    "ObservedStdDev",
    "EstimatedStdDev",
]
AGGREGATE_LABEL = "Mean"

# A simulated series with more missing days than this is not scored.
MAX_SIMULATED_MISSING = 1


def _blank_row() -> Dict[str, float]:
    return {c: np.nan for c in REPORT_COLUMNS[1:]}


def _std(x: np.ndarray) -> float:
    return float(np.std(x, ddof=1)) if x.size >= 2 else np.nan


def station_error_statistics(
    observed: Iterable[float],
    simulated: Iterable[float],
) -> Dict[str, float]:
    """
    Error statistics of one simulated series against its observations.

    Returns a dict with the report columns (without ``Station``). All values
    are ``NaN`` when *simulated* has more than one missing value.
    """
    yo = np.asarray(observed, dtype=float)
    ys = np.asarray(simulated, dtype=float)
    if yo.shape != ys.shape:
        raise InvalidInputError(
            f"Observed {yo.shape} and simulated {ys.shape} series are not aligned."
        )

    if int(np.isnan(ys).sum()) > MAX_SIMULATED_MISSING:
        return _blank_row()

    both = ~np.isnan(yo) & ~np.isnan(ys)
    xo, xs = yo[both], ys[both]
    m = regression_metrics(xo, xs)
    return {
        "MAE": m["MAE"],
        "R": m["R"],
        "RMSE": m["RMSE"],
        "NumberMissing": float(np.isnan(yo).sum()),
        "ObservedMean": float(np.mean(xo)) if xo.size else np.nan,
        "EstimatedMean": float(np.mean(xs)) if xs.size else np.nan,
        "ObservedStdDev": _std(xo),
        "EstimatedStdDev": _std(xs),
    }


def _resolve_simulated(
    observed: pd.DataFrame,
    simulated: Union[pd.DataFrame, ImputationResult],
) -> pd.DataFrame:
    if isinstance(simulated, ImputationResult):
        if simulated.mode != "simulate":
            raise ValueError(
                "Accuracy evaluation needs a full-simulation result (mode='simulate')."
            )
        simulated = simulated.series
    if list(simulated.columns) != list(observed.columns) or not simulated.index.equals(
        observed.index
    ):
        raise InvalidInputError(
            "Observed and simulated tables must share stations and dates."
        )
    return simulated


def _with_aggregate_row(report: pd.DataFrame) -> pd.DataFrame:
    metric_cols = [c for c in report.columns if c != "Station"]
    valid = report[metric_cols].notna().any(axis=1)
    means = report.loc[valid, metric_cols].mean(axis=0, skipna=True)
    agg_row = {"Station": AGGREGATE_LABEL, **means.to_dict()}
    return pd.concat([report, pd.DataFrame([agg_row])], ignore_index=True)


def evaluate_network(
    observed: pd.DataFrame,
    simulated: Union[pd.DataFrame, ImputationResult],
) -> pd.DataFrame:
    """
    Per-station error report plus the ``"Mean"`` aggregate row.

    Parameters
    ----------
    observed : DataFrame
        Observations, one column per station, ``NaN`` = missing.
    simulated : DataFrame or ImputationResult
        Full-simulation values on the same stations and dates.

    Returns
    -------
    DataFrame
        Columns :data:`REPORT_COLUMNS`.
    """
    sim = _resolve_simulated(observed, simulated)
    rows: List[Dict] = []
    for station in observed.columns:
        stats = station_error_statistics(observed[station], sim[station])
        rows.append({"Station": station, **stats})
    report = pd.DataFrame(rows, columns=REPORT_COLUMNS)
    return _with_aggregate_row(report)


def evaluate_network_aggregated(
    observed: pd.DataFrame,
    simulated: Union[pd.DataFrame, ImputationResult],
    *,
    freq: str = "M",
    agg: str = "sum",
) -> pd.DataFrame:
    """
    Same idea as :func:`evaluate_network` on temporally aggregated series
    (monthly totals by default).

    Only periods fully observed on both sides are compared. Columns:
    ``Station, MAE, R, RMSE, NumberPeriods``; blank rows follow the same
    rule as the daily report.
    """
    sim = _resolve_simulated(observed, simulated)
    rows: List[Dict] = []
    for station in observed.columns:
        row: Dict[str, Union[Hashable, float]] = {"Station": station}
        if int(sim[station].isna().sum()) > MAX_SIMULATED_MISSING:
            row.update({"MAE": np.nan, "R": np.nan, "RMSE": np.nan, "NumberPeriods": np.nan})
            rows.append(row)
            continue
        pair = pd.DataFrame(
            {
                "date": observed.index,
                "y_true": observed[station].to_numpy(dtype=float),
                "y_pred": sim[station].to_numpy(dtype=float),
            }
        )
        metrics, agg_df = aggregate_and_score(
            pair,
            date_col="date",
            y_col="y_true",
            yhat_col="y_pred",
            freq=freq,
            agg=agg,
        )
        row.update(metrics)
        row["NumberPeriods"] = float(len(agg_df))
        rows.append(row)

    report = pd.DataFrame(rows, columns=["Station", "MAE", "R", "RMSE", "NumberPeriods"])
    return _with_aggregate_row(report)


__all__ = [
    "REPORT_COLUMNS",
    "AGGREGATE_LABEL",
    "MAX_SIMULATED_MISSING",
    "station_error_statistics",
    "evaluate_network",
    "evaluate_network_aggregated",
]
