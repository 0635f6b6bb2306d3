# src/PrecipFillPy/pipeline.py
# SPDX-License-Identifier: MIT
"""
End-to-end gap filling for a station network.

:func:`run_gap_filling` chains the pieces of the package in the order they
depend on each other::

    StationData (validated)
        -> distance / overlap / correlation matrices   (computed once)
        -> select_weights                              (thresholds)
        -> impute(mode="gapfill")                      (delivered product)
        -> impute(mode="simulate") + evaluate_network  (accuracy report)

Every intermediate result is returned in :class:`GapFillingResult`; nothing
is kept as module-level state.

Example
-------
    >>> from PrecipFillPy import FillConfig, run_gap_filling
    >>> cfg = FillConfig(
    ...     start="1991-01-01",
    ...     end="2020-12-31",
    ...     weighting="distance",
    ...     max_distance=50_000.0,
    ...     min_overlap_days=365,
    ... )
    >>> res = run_gap_filling(table, coords, cfg)
    >>> res.filled_table().head()
    >>> res.report
"""

from __future__ import annotations

import json
import math
import warnings
from dataclasses import asdict, dataclass, replace
from typing import Optional, Union

import numpy as np
import pandas as pd
from sklearn.exceptions import UndefinedMetricWarning
from tqdm.auto import tqdm

from .data import CoordinatesLike, StationData
from .evaluation import evaluate_network
from .exceptions import NoEligibleDonorsWarning
from .imputation import ImputationResult, impute
from .io import save_json, save_table
from .matrices import correlation_matrix, distance_matrix, overlap_matrix
from .weights import WeightingMode, select_weights


# ---------------------------------------------------------------------
# Warning policy
# ---------------------------------------------------------------------


def set_warning_policy(silence: bool = True) -> None:
    """
    Configure a conservative warning policy.

    Parameters
    ----------
    silence:
        If ``True`` (default), silence pandas ``FutureWarning`` and
        scikit-learn metric edge cases. Package warnings such as
        :class:`~PrecipFillPy.exceptions.NoEligibleDonorsWarning` are never
        silenced.
    """
    if silence:
        warnings.filterwarnings("ignore", category=FutureWarning, module=r"pandas\..*")
        warnings.filterwarnings("ignore", category=UndefinedMetricWarning)


# ---------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class FillConfig:
    """Run configuration.

    Attributes
    ----------
    start, end :
        Inclusive analysis period (``YYYY-MM-DD``); ``None`` = table bounds.
    max_distance :
        Donors farther than this (in coordinate units) are excluded.
    min_overlap_days :
        Donors must share strictly more observed days with the target.
    min_abs_correlation :
        Correlation mode only: ``|r|`` must be strictly greater.
    friction_exponent :
        Distance mode only: inverse-distance exponent ``k``.
    weighting :
        ``"distance"`` or ``"correlation"``.
    n_jobs :
        Parallel workers for the per-station imputation (joblib semantics).
    """

    start: Optional[str] = None
    end: Optional[str] = None
    max_distance: float = math.inf
    min_overlap_days: int = 0
    min_abs_correlation: float = 0.0
    friction_exponent: float = 2.0
    weighting: str = WeightingMode.CORRELATION.value
    n_jobs: int = 1

    def validate(self) -> "FillConfig":
        """Return a normalised copy, raising ``ValueError`` on bad values."""
        try:
            mode = WeightingMode(str(self.weighting).lower())
        except ValueError:
            raise ValueError(
                f"Unknown weighting mode {self.weighting!r}; use 'distance' or 'correlation'."
            ) from None
        if self.max_distance is None or self.max_distance < 0:
            raise ValueError("max_distance must be non-negative.")
        if self.min_overlap_days < 0:
            raise ValueError("min_overlap_days must be non-negative.")
        if self.min_abs_correlation < 0:
            raise ValueError("min_abs_correlation must be non-negative.")
        if not np.isfinite(self.friction_exponent) or self.friction_exponent <= 0:
            raise ValueError("friction_exponent must be a positive finite number.")
        if self.n_jobs == 0:
            raise ValueError("n_jobs must be non-zero.")
        return replace(self, weighting=mode.value)

    def to_dict(self) -> dict:
        d = asdict(self)
        if math.isinf(d["max_distance"]):
            d["max_distance"] = None
        return d

    @staticmethod
    def from_dict(d: dict) -> "FillConfig":
        d = dict(d)
        if d.get("max_distance") is None:
            d["max_distance"] = math.inf
        return FillConfig(**d).validate()

    @staticmethod
    def load(path: str) -> "FillConfig":
        """Load a configuration from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            return FillConfig.from_dict(json.load(f))

    def save(self, path: str) -> None:
        """Save the configuration to a JSON file."""
        save_json(self.to_dict(), path)


# ---------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------


@dataclass
class GapFillingResult:
    """Everything produced by one :func:`run_gap_filling` call."""

    config: FillConfig
    data: StationData
    distance: pd.DataFrame
    overlap: pd.DataFrame
    correlation: pd.DataFrame
    weights: pd.DataFrame
    filled: ImputationResult
    simulated: ImputationResult
    report: pd.DataFrame

    def filled_table(self) -> pd.DataFrame:
        """Gap-filled values as a flat ``date | station...`` table."""
        return self.data.to_frame(self.filled.series)

    def simulated_table(self) -> pd.DataFrame:
        """Full-simulation values as a flat ``date | station...`` table."""
        return self.data.to_frame(self.simulated.series)


# ---------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------


def run_gap_filling(
    table: Union[pd.DataFrame, StationData],
    coordinates: Optional[CoordinatesLike] = None,
    config: Optional[FillConfig] = None,
    *,
    date_col: str = "date",
    show_progress: bool = False,
    save_filled_path: Optional[str] = None,
    save_report_path: Optional[str] = None,
    save_config_path: Optional[str] = None,
) -> GapFillingResult:
    """
    Validate the input, compute the station matrices, select weights,
    fill the gaps and score the method.

    Parameters
    ----------
    table : DataFrame or StationData
        Wide table ``date | station...`` or an already validated container
        (then *coordinates* is ignored; the config period still applies).
    coordinates : DataFrame or mapping
        Station -> planar (x, y). Required when *table* is a DataFrame.
    config : FillConfig, optional
        Thresholds and weighting mode; defaults to :class:`FillConfig()`.
    show_progress : bool
        tqdm bars and short status lines.
    save_filled_path, save_report_path, save_config_path : str, optional
        Where to write the gap-filled table, the error report and the
        configuration (JSON).

    Returns
    -------
    GapFillingResult
    """
    cfg = (config or FillConfig()).validate()

    if isinstance(table, StationData):
        data = table.window(cfg.start, cfg.end)
    else:
        if coordinates is None:
            raise ValueError("coordinates are required when passing a raw table.")
        data = StationData.from_frames(
            table,
            coordinates,
            date_col=date_col,
            start=cfg.start,
            end=cfg.end,
        )

    if show_progress:
        tqdm.write(
            f"[gapfill] {len(data.stations)} stations × {len(data.dates)} days, "
            f"{int(data.missing_counts().sum())} missing values, "
            f"weighting={cfg.weighting}"
        )

    distance = distance_matrix(data.coordinates)
    overlap = overlap_matrix(data.values)
    correlation = correlation_matrix(data.values)

    weights = select_weights(
        distance,
        overlap,
        correlation,
        weighting=cfg.weighting,
        max_distance=cfg.max_distance,
        min_overlap_days=cfg.min_overlap_days,
        min_abs_correlation=cfg.min_abs_correlation,
        friction_exponent=cfg.friction_exponent,
    )

    filled = impute(
        data.values,
        weights,
        mode="gapfill",
        n_jobs=cfg.n_jobs,
        show_progress=show_progress,
    )
    with warnings.catch_warnings():
        # already reported by the gap-fill pass
        warnings.simplefilter("ignore", NoEligibleDonorsWarning)
        simulated = impute(
            data.values,
            weights,
            mode="simulate",
            n_jobs=cfg.n_jobs,
            show_progress=show_progress,
        )
    report = evaluate_network(data.values, simulated)

    result = GapFillingResult(
        config=cfg,
        data=data,
        distance=distance,
        overlap=overlap,
        correlation=correlation,
        weights=weights,
        filled=filled,
        simulated=simulated,
        report=report,
    )

    save_table(result.filled_table(), save_filled_path)
    save_table(report, save_report_path)
    if save_config_path is not None:
        cfg.save(save_config_path)
    return result


# Apply a safe default at import time
set_warning_policy(True)


__all__ = [
    "set_warning_policy",
    "FillConfig",
    "GapFillingResult",
    "run_gap_filling",
]
