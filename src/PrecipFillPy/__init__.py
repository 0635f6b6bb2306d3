"""
PrecipFillPy
============

Neighbor-based gap filling for daily precipitation station networks.

Missing daily values at a station are estimated as a weighted average of the
values observed the same day at other stations of the network ("donors").
Weights come either from inverse distance or from the inter-station
correlation, and donors are filtered by distance, by the number of days they
share with the target, and (correlation weighting) by the strength of the
correlation.

Workflow
--------
1. Validated input: :class:`StationData`
2. Station relationships (computed once)
   - :func:`distance_matrix`
   - :func:`overlap_matrix`
   - :func:`correlation_matrix`
3. Donor weights: :func:`select_weights`
4. Estimation: :func:`impute` (``mode="gapfill"`` or ``"simulate"``)
5. Accuracy: :func:`evaluate_network`, :func:`evaluate_network_aggregated`

:func:`run_gap_filling` runs the whole chain from a :class:`FillConfig`.

Example
-------
    >>> import pandas as pd
    >>> from PrecipFillPy import FillConfig, run_gap_filling
    >>> table = pd.read_csv("precip.csv")          # date | S1 | S2 | ...
    >>> coords = {"S1": (512300.0, 2150100.0), "S2": (518900.0, 2149800.0)}
    >>> res = run_gap_filling(
    ...     table,
    ...     coords,
    ...     FillConfig(weighting="correlation", min_abs_correlation=0.5,
    ...                min_overlap_days=365),
    ... )
    >>> res.filled_table()
    >>> res.report
"""

from __future__ import annotations

# Public version (update in sync with pyproject.toml)
__version__ = "0.1.0"

from .exceptions import InvalidInputError, NoEligibleDonorsWarning
from .data import StationData

# ---------------------------------------------------------------------------
# Station relationships and weights
# ---------------------------------------------------------------------------

from .matrices import (
    pairwise_distance,
    distance_matrix,
    overlap_count,
    overlap_matrix,
    correlation,
    correlation_matrix,
    relationship_table,
)
from .weights import (
    WeightingMode,
    DistanceWeighting,
    CorrelationWeighting,
    make_weighting,
    select_weights,
    donor_table,
)

# ---------------------------------------------------------------------------
# Estimation and evaluation
# ---------------------------------------------------------------------------

from .imputation import ImputationResult, estimate_station, impute
from .metrics import regression_metrics, aggregate_and_score
from .evaluation import (
    REPORT_COLUMNS,
    station_error_statistics,
    evaluate_network,
    evaluate_network_aggregated,
)
from .pipeline import FillConfig, GapFillingResult, run_gap_filling

__all__ = [
    "__version__",
    # errors
    "InvalidInputError",
    "NoEligibleDonorsWarning",
    # data
    "StationData",
    # relationships
    "pairwise_distance",
    "distance_matrix",
    "overlap_count",
    "overlap_matrix",
    "correlation",
    "correlation_matrix",
    "relationship_table",
    # weights
    "WeightingMode",
    "DistanceWeighting",
    "CorrelationWeighting",
    "make_weighting",
    "select_weights",
    "donor_table",
    # estimation
    "ImputationResult",
    "estimate_station",
    "impute",
    # evaluation
    "regression_metrics",
    "aggregate_and_score",
    "REPORT_COLUMNS",
    "station_error_statistics",
    "evaluate_network",
    "evaluate_network_aggregated",
    # pipeline
    "FillConfig",
    "GapFillingResult",
    "run_gap_filling",
]
