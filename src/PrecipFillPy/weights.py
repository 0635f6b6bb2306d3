# src/PrecipFillPy/weights.py
# SPDX-License-Identifier: MIT
"""
Donor weights and threshold filtering.

Two weighting strategies are available and chosen once, at configuration
time, through :func:`make_weighting`:

- :class:`DistanceWeighting`: inverse-distance weights ``d ** -k``
  (``k`` is the friction exponent, default 2).
- :class:`CorrelationWeighting`: the signed Pearson correlation itself.

:func:`select_weights` turns the distance / overlap / correlation matrices
into a weight matrix (rows = target station, columns = donors) where every
ineligible pair is ``NaN``. A weight of exactly ``0.0`` is eligible.

Eligibility of donor ``b`` for target ``a`` (``b != a``)
-------------------------------------------------------
* ``overlap(a, b) > min_overlap_days``, and
* ``distance(a, b) <= max_distance``, and
* correlation mode: ``|corr(a, b)| > min_abs_correlation`` (``NaN``
  correlations never pass);
  distance mode: ``d ** -k > max_distance ** -k``, i.e. the threshold is the
  weight a donor at ``max_distance`` would get. ``min_abs_correlation`` is
  not used in distance mode.

Because the distance-mode test is strict, a donor sitting exactly at
``max_distance`` is excluded in distance mode and included in correlation
mode. This asymmetry is intentional and kept as is.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Hashable, List, Union

import numpy as np
import pandas as pd

from .exceptions import InvalidInputError


class WeightingMode(str, Enum):
    DISTANCE = "distance"
    CORRELATION = "correlation"


# ---------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class DistanceWeighting:
    """Inverse-distance weights with friction exponent ``k``.

    Coincident stations (distance 0) get an infinite weight; the imputer
    treats those as dominating every finite-weight donor.
    """

    friction_exponent: float = 2.0

    mode = WeightingMode.DISTANCE

    def raw_weights(self, distance: np.ndarray, correlation: np.ndarray) -> np.ndarray:
        with np.errstate(divide="ignore"):
            return np.power(distance, -float(self.friction_exponent))

    def passes_threshold(
        self,
        weights: np.ndarray,
        *,
        max_distance: float,
        min_abs_correlation: float,
    ) -> np.ndarray:
        with np.errstate(divide="ignore"):
            implied = np.power(float(max_distance), -float(self.friction_exponent))
        with np.errstate(invalid="ignore"):
            return weights > implied


@dataclass(frozen=True)
class CorrelationWeighting:
    """Signed correlation used as the weight, unchanged."""

    mode = WeightingMode.CORRELATION

    def raw_weights(self, distance: np.ndarray, correlation: np.ndarray) -> np.ndarray:
        return np.array(correlation, dtype=float, copy=True)

    def passes_threshold(
        self,
        weights: np.ndarray,
        *,
        max_distance: float,
        min_abs_correlation: float,
    ) -> np.ndarray:
        with np.errstate(invalid="ignore"):
            return np.abs(weights) > float(min_abs_correlation)


Weighting = Union[DistanceWeighting, CorrelationWeighting]


def make_weighting(
    mode: Union[str, WeightingMode, Weighting],
    *,
    friction_exponent: float = 2.0,
) -> Weighting:
    """
    Resolve *mode* (``"distance"``, ``"correlation"``, an enum member or an
    already-built strategy) into a weighting strategy.
    """
    if isinstance(mode, (DistanceWeighting, CorrelationWeighting)):
        return mode
    try:
        resolved = WeightingMode(str(getattr(mode, "value", mode)).lower())
    except ValueError:
        raise ValueError(
            f"Unknown weighting mode {mode!r}; use 'distance' or 'correlation'."
        ) from None
    if resolved is WeightingMode.DISTANCE:
        if not np.isfinite(friction_exponent) or friction_exponent <= 0:
            raise ValueError("friction_exponent must be a positive finite number.")
        return DistanceWeighting(friction_exponent=float(friction_exponent))
    return CorrelationWeighting()


# ---------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------


def _check_aligned(*frames: pd.DataFrame) -> List[Hashable]:
    stations = list(frames[0].index)
    for f in frames:
        if list(f.index) != stations or list(f.columns) != stations:
            raise InvalidInputError(
                "Distance, overlap and correlation matrices must share one "
                "station ordering."
            )
    return stations


def select_weights(
    distance: pd.DataFrame,
    overlap: pd.DataFrame,
    correlation: pd.DataFrame,
    *,
    weighting: Union[str, WeightingMode, Weighting] = "correlation",
    max_distance: float = np.inf,
    min_overlap_days: int = 0,
    min_abs_correlation: float = 0.0,
    friction_exponent: float = 2.0,
) -> pd.DataFrame:
    """
    Build the filtered weight matrix.

    Parameters
    ----------
    distance, overlap, correlation : DataFrame
        Square matrices from :mod:`PrecipFillPy.matrices`.
    weighting : {"distance", "correlation"} or strategy
        Weighting strategy.
    max_distance : float, default inf
        Donors farther than this are excluded.
    min_overlap_days : int, default 0
        Donors must share strictly more observed days than this.
    min_abs_correlation : float, default 0.0
        Correlation mode only: ``|r|`` must be strictly greater.
    friction_exponent : float, default 2.0
        Distance mode only.

    Returns
    -------
    DataFrame
        Rows = targets, columns = donors, ``NaN`` = ineligible. The
        diagonal is always ``NaN``.
    """
    stations = _check_aligned(distance, overlap, correlation)
    if max_distance < 0 or min_overlap_days < 0 or min_abs_correlation < 0:
        raise ValueError("Thresholds must be non-negative.")

    strategy = make_weighting(weighting, friction_exponent=friction_exponent)

    dist = distance.to_numpy(dtype=float)
    over = overlap.to_numpy(dtype=float)
    corr = correlation.to_numpy(dtype=float)

    weights = strategy.raw_weights(dist, corr)
    eligible = (
        (over > min_overlap_days)
        & (dist <= max_distance)
        & strategy.passes_threshold(
            weights,
            max_distance=max_distance,
            min_abs_correlation=min_abs_correlation,
        )
    )
    np.fill_diagonal(eligible, False)

    out = np.where(eligible, weights, np.nan)
    return pd.DataFrame(out, index=stations, columns=stations)


def donor_table(weights: pd.DataFrame) -> pd.DataFrame:
    """
    Long table of eligible donors: ``target, donor, weight``, sorted by
    target (table order) and decreasing weight.
    """
    rows: List[Dict] = []
    for target in weights.index:
        row = weights.loc[target].dropna().sort_values(ascending=False)
        for donor, w in row.items():
            rows.append({"target": target, "donor": donor, "weight": float(w)})
    return pd.DataFrame(rows, columns=["target", "donor", "weight"])


__all__ = [
    "WeightingMode",
    "DistanceWeighting",
    "CorrelationWeighting",
    "make_weighting",
    "select_weights",
    "donor_table",
]
