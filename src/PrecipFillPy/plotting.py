# src/PrecipFillPy/plotting.py
# SPDX-License-Identifier: MIT
"""
Diagnostic plots (matplotlib).

- :func:`plot_distance_vs_correlation`: how correlation decays with
  distance across all station pairs; helps choosing thresholds.
- :func:`plot_observed_vs_estimated`: observed vs. simulated series for
  one station, with MAE / R / RMSE in the title.

Both return ``(fig, ax)`` and optionally save the figure.
"""

from __future__ import annotations

from typing import Dict, Hashable, Optional, Tuple

import matplotlib
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .io import _ensure_parent_dir
from .matrices import relationship_table
from .metrics import regression_metrics


def _finish(fig, save_to: Optional[str], dpi: int) -> None:
    fig.tight_layout()
    if save_to:
        _ensure_parent_dir(save_to)
        fig.savefig(save_to, dpi=dpi)


def _complete_period_sums(s: pd.Series, freq: str) -> pd.Series:
    """Per-period totals, NaN for periods with any missing day."""
    full = s.isna().resample(freq).sum() == 0
    return s.resample(freq).sum(min_count=1).where(full)


def plot_distance_vs_correlation(
    distance: pd.DataFrame,
    correlation: pd.DataFrame,
    overlap: Optional[pd.DataFrame] = None,
    *,
    min_overlap_days: int = 0,
    ax: Optional[matplotlib.axes.Axes] = None,
    figsize: Tuple[int, int] = (7, 5),
    title: Optional[str] = "Inter-station correlation vs. distance",
    xlabel: str = "Distance",
    save_to: Optional[str] = None,
    dpi: int = 150,
    style: Optional[Dict] = None,
) -> Tuple[matplotlib.figure.Figure, matplotlib.axes.Axes]:
    """
    Scatter of pairwise correlation against distance, one point per
    station pair. Pairs with undefined correlation are not drawn; with
    *overlap* given, pairs with ``overlap <= min_overlap_days`` are dropped.
    """
    if overlap is None:
        overlap = pd.DataFrame(
            np.zeros(distance.shape, dtype=int),
            index=distance.index,
            columns=distance.columns,
        )
        min_overlap_days = -1
    pairs = relationship_table(distance, overlap, correlation)
    pairs = pairs[(pairs["overlap"] > min_overlap_days) & pairs["correlation"].notna()]

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    style = {"s": 14, "alpha": 0.7, "color": "#1565C0", **(style or {})}
    ax.scatter(pairs["distance"], pairs["correlation"], **style)
    ax.axhline(0.0, color="0.6", lw=0.8)
    ax.set_xlabel(xlabel)
    ax.set_ylabel("Pearson r")
    ax.set_ylim(-1.05, 1.05)
    ax.grid(True, alpha=0.3)
    if title:
        ax.set_title(title)

    _finish(fig, save_to, dpi)
    return fig, ax


def plot_observed_vs_estimated(
    observed: pd.DataFrame,
    simulated: pd.DataFrame,
    station: Hashable,
    *,
    start: Optional[str] = None,
    end: Optional[str] = None,
    resample: Optional[str] = None,
    ax: Optional[matplotlib.axes.Axes] = None,
    figsize: Tuple[int, int] = (12, 5),
    ylabel: str = "Precipitation",
    save_to: Optional[str] = None,
    dpi: int = 150,
    obs_style: Optional[Dict] = None,
    sim_style: Optional[Dict] = None,
) -> Tuple[matplotlib.figure.Figure, matplotlib.axes.Axes]:
    """
    Observed and simulated series of *station* over time.

    With *resample* (e.g. ``"ME"``) both series are summed per period; a
    period with any missing day is left out of both. Metrics in the title
    are computed on the plotted points where both are present.
    """
    if station not in observed.columns or station not in simulated.columns:
        raise ValueError(f"No data for station {station!r}.")

    obs = observed[station].astype(float)
    sim = simulated[station].astype(float)
    if start or end:
        lo = pd.to_datetime(start) if start else obs.index.min()
        hi = pd.to_datetime(end) if end else obs.index.max()
        obs = obs[(obs.index >= lo) & (obs.index <= hi)]
        sim = sim[(sim.index >= lo) & (sim.index <= hi)]

    if resample is not None:
        obs = _complete_period_sums(obs, resample)
        sim = _complete_period_sums(sim, resample)

    if obs.dropna().empty and sim.dropna().empty:
        raise ValueError("Nothing to plot (both series are empty).")

    both = obs.notna() & sim.notna()
    m = regression_metrics(obs[both].values, sim[both].values)

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    obs_style = {
        "marker": "o",
        "ms": 3,
        "alpha": 0.7,
        "color": "#37474F",
        "ls": "",
        **(obs_style or {}),
    }
    sim_style = {"lw": 1.2, "alpha": 0.9, "color": "#1B5E20", **(sim_style or {})}

    ax.plot(obs.index, obs.values, label="Observed", **obs_style)
    ax.plot(sim.index, sim.values, label="Estimated", **sim_style)
    ax.set_ylabel(ylabel)
    ax.set_title(
        f"Station {station}: MAE={m['MAE']:.2f}  R={m['R']:.2f}  RMSE={m['RMSE']:.2f}"
    )
    ax.legend(loc="best")
    ax.grid(True, alpha=0.3)

    _finish(fig, save_to, dpi)
    return fig, ax


__all__ = ["plot_distance_vs_correlation", "plot_observed_vs_estimated"]
