# tests/test_weights.py

import numpy as np
import pandas as pd
import pytest

from PrecipFillPy.exceptions import InvalidInputError
from PrecipFillPy.weights import (
    WeightingMode,
    DistanceWeighting,
    CorrelationWeighting,
    make_weighting,
    select_weights,
    donor_table,
)

STATIONS = ["A", "B", "C"]


def _square(values) -> pd.DataFrame:
    return pd.DataFrame(np.asarray(values, dtype=float), index=STATIONS, columns=STATIONS)


@pytest.fixture
def matrices():
    """
    Hand-made relationship matrices:

    pair   distance  overlap  corr
    A-B        5        20     0.8
    A-C       10         3    -0.6
    B-C        5        20     0.1
    """
    nan = np.nan
    distance = _square([[0, 5, 10], [5, 0, 5], [10, 5, 0]])
    overlap = _square([[30, 20, 3], [20, 30, 20], [3, 20, 30]]).astype(int)
    correlation = _square([[nan, 0.8, -0.6], [0.8, nan, 0.1], [-0.6, 0.1, nan]])
    return distance, overlap, correlation


def test_make_weighting_resolves_modes():
    assert make_weighting("distance", friction_exponent=3.0) == DistanceWeighting(3.0)
    assert make_weighting("Correlation") == CorrelationWeighting()
    assert make_weighting(WeightingMode.DISTANCE).friction_exponent == 2.0
    strategy = DistanceWeighting(1.5)
    assert make_weighting(strategy) is strategy


def test_make_weighting_rejects_unknown_mode():
    with pytest.raises(ValueError, match="Unknown weighting mode"):
        make_weighting("kriging")
    with pytest.raises(ValueError, match="friction_exponent"):
        make_weighting("distance", friction_exponent=0.0)


def test_correlation_mode_filters_all_thresholds(matrices):
    w = select_weights(
        *matrices,
        weighting="correlation",
        max_distance=10.0,
        min_overlap_days=5,
        min_abs_correlation=0.5,
    )

    assert w.loc["A", "B"] == pytest.approx(0.8)
    assert w.loc["B", "A"] == pytest.approx(0.8)
    assert np.isnan(w.loc["A", "C"])  # overlap 3 <= 5
    assert np.isnan(w.loc["C", "A"])
    assert np.isnan(w.loc["B", "C"])  # |0.1| <= 0.5
    assert np.isnan(w.loc["C", "B"])


def test_correlation_weights_are_signed(matrices):
    w = select_weights(*matrices, weighting="correlation", min_abs_correlation=0.5)
    assert w.loc["A", "C"] == pytest.approx(-0.6)


def test_self_pairs_never_eligible(matrices):
    for mode in ("distance", "correlation"):
        w = select_weights(*matrices, weighting=mode)
        assert np.isnan(np.diag(w.to_numpy())).all()


def test_overlap_threshold_is_strict(matrices):
    w = select_weights(*matrices, weighting="correlation", min_overlap_days=20)
    assert w.isna().all().all()


def test_absent_correlation_is_ineligible(matrices):
    distance, overlap, correlation = matrices
    correlation.loc["B", "C"] = correlation.loc["C", "B"] = np.nan
    w = select_weights(distance, overlap, correlation, weighting="correlation")
    assert np.isnan(w.loc["B", "C"])
    assert np.isnan(w.loc["C", "B"])
    assert w.loc["A", "B"] == pytest.approx(0.8)


def test_threshold_above_every_correlation_leaves_nothing(matrices):
    w = select_weights(*matrices, weighting="correlation", min_abs_correlation=0.95)
    assert w.isna().all().all()


def test_distance_mode_inverse_distance_weights(matrices):
    w = select_weights(
        *matrices,
        weighting="distance",
        friction_exponent=2.0,
        min_abs_correlation=0.99,  # not used in distance mode
    )

    assert w.loc["A", "B"] == pytest.approx(5.0 ** -2)
    assert w.loc["A", "C"] == pytest.approx(10.0 ** -2)
    assert w.loc["B", "C"] == pytest.approx(5.0 ** -2)
    off_diag = w.to_numpy()[~np.eye(3, dtype=bool)]
    assert np.isfinite(off_diag).all()
    assert (off_diag > 0).all()


def test_distance_mode_friction_exponent(matrices):
    w = select_weights(*matrices, weighting="distance", friction_exponent=1.0)
    assert w.loc["A", "C"] == pytest.approx(0.1)


def test_donor_at_max_distance_differs_between_modes(matrices):
    """
    Distance mode filters with the implied threshold max_distance ** -k,
    which is strict; correlation mode compares distances inclusively.
    """
    w_corr = select_weights(*matrices, weighting="correlation", max_distance=5.0)
    w_dist = select_weights(*matrices, weighting="distance", max_distance=5.0)

    assert w_corr.loc["A", "B"] == pytest.approx(0.8)
    assert np.isnan(w_dist.loc["A", "B"])
    # farther than max_distance: excluded in both
    assert np.isnan(w_corr.loc["A", "C"])
    assert np.isnan(w_dist.loc["A", "C"])


def test_distance_mode_includes_donors_inside_max_distance(matrices):
    w = select_weights(*matrices, weighting="distance", max_distance=7.5)
    assert w.loc["A", "B"] == pytest.approx(0.04)
    assert np.isnan(w.loc["A", "C"])


def test_coincident_stations_get_infinite_weight(matrices):
    distance, overlap, correlation = matrices
    distance.loc["A", "B"] = distance.loc["B", "A"] = 0.0
    w = select_weights(distance, overlap, correlation, weighting="distance")
    assert np.isinf(w.loc["A", "B"])


def test_invalid_thresholds_raise(matrices):
    with pytest.raises(ValueError, match="non-negative"):
        select_weights(*matrices, min_overlap_days=-1)
    with pytest.raises(ValueError, match="non-negative"):
        select_weights(*matrices, max_distance=-5.0)


def test_misaligned_matrices_raise(matrices):
    distance, overlap, correlation = matrices
    with pytest.raises(InvalidInputError):
        select_weights(distance.loc[["C", "B", "A"], ["C", "B", "A"]], overlap, correlation)


def test_donor_table_lists_eligible_pairs(matrices):
    w = select_weights(*matrices, weighting="correlation", min_abs_correlation=0.5)
    table = donor_table(w)

    assert list(table.columns) == ["target", "donor", "weight"]
    assert not ((table["target"] == table["donor"]).any())
    a_rows = table[table["target"] == "A"]
    assert a_rows["donor"].tolist() == ["B", "C"]  # decreasing weight
    assert len(table) == 4  # A-B, A-C both ways
