# tests/test_evaluation.py

import numpy as np
import pandas as pd
import pytest

from PrecipFillPy.evaluation import (
    AGGREGATE_LABEL,
    REPORT_COLUMNS,
    station_error_statistics,
    evaluate_network,
    evaluate_network_aggregated,
)
from PrecipFillPy.exceptions import InvalidInputError
from PrecipFillPy.imputation import impute
from PrecipFillPy.matrices import correlation_matrix, distance_matrix, overlap_matrix
from PrecipFillPy.weights import select_weights


def _pair_network(n_days: int = 40) -> pd.DataFrame:
    """Two stations with identical, non-constant series."""
    dates = pd.date_range("2000-01-01", periods=n_days, freq="D")
    base = (np.arange(n_days) % 9).astype(float) * 1.5
    return pd.DataFrame({"A": base, "B": base.copy()}, index=dates)


def _weights(values, coords, **kwargs):
    return select_weights(
        distance_matrix(coords),
        overlap_matrix(values),
        correlation_matrix(values),
        **kwargs,
    )


COORDS = pd.DataFrame({"x": [0.0, 1.0], "y": [0.0, 0.0]}, index=["A", "B"])


# ----------------------------------------------------------------------
# Single station
# ----------------------------------------------------------------------


def test_station_statistics_known_values():
    observed = [1.0, np.nan, 3.0, 5.0, np.nan]
    simulated = [2.0, 9.0, 3.0, 3.0, 4.0]
    s = station_error_statistics(observed, simulated)

    # restricted to days 0, 2, 3
    assert s["MAE"] == pytest.approx(1.0)
    assert s["RMSE"] == pytest.approx(np.sqrt(5.0 / 3.0))
    assert s["R"] == pytest.approx(np.corrcoef([1, 3, 5], [2, 3, 3])[0, 1])
    assert s["NumberMissing"] == 2
    assert s["ObservedMean"] == pytest.approx(3.0)
    assert s["EstimatedMean"] == pytest.approx(8.0 / 3.0)
    assert s["ObservedStdDev"] == pytest.approx(np.std([1, 3, 5], ddof=1))
    assert s["EstimatedStdDev"] == pytest.approx(np.std([2, 3, 3], ddof=1))


def test_one_missing_simulated_value_is_still_scored():
    s = station_error_statistics([1.0, 2.0, 3.0, 4.0], [1.0, np.nan, 3.0, 4.0])
    assert s["MAE"] == pytest.approx(0.0)
    assert s["ObservedMean"] == pytest.approx(8.0 / 3.0)


def test_more_than_one_missing_simulated_value_blanks_the_row():
    s = station_error_statistics([1.0, 2.0, 3.0, 4.0], [np.nan, np.nan, 3.0, 4.0])
    assert set(s.keys()) == set(REPORT_COLUMNS[1:])
    assert all(np.isnan(v) for v in s.values())


def test_misaligned_series_raise():
    with pytest.raises(InvalidInputError):
        station_error_statistics([1.0, 2.0], [1.0, 2.0, 3.0])


# ----------------------------------------------------------------------
# Network report
# ----------------------------------------------------------------------


def test_identical_single_donor_round_trip():
    values = _pair_network()
    values.iloc[3, 0] = np.nan  # a gap in the target
    w = _weights(values, COORDS, weighting="correlation")
    sim = impute(values, w, mode="simulate")

    report = evaluate_network(values, sim)
    row = report.set_index("Station").loc["A"]

    assert row["MAE"] == pytest.approx(0.0, abs=1e-12)
    assert row["R"] == pytest.approx(1.0, rel=1e-9)
    assert row["RMSE"] == pytest.approx(0.0, abs=1e-12)
    assert row["NumberMissing"] == 1
    assert row["ObservedMean"] == pytest.approx(row["EstimatedMean"])


def test_report_layout_and_aggregate_row():
    values = _pair_network()
    w = _weights(values, COORDS, weighting="distance")
    report = evaluate_network(values, impute(values, w, mode="simulate"))

    assert list(report.columns) == REPORT_COLUMNS
    assert report["Station"].tolist() == ["A", "B", AGGREGATE_LABEL]
    for col in REPORT_COLUMNS[1:]:
        assert report[col].iloc[-1] == pytest.approx(report[col].iloc[:-1].mean())


def test_aggregate_row_ignores_blank_rows():
    dates = pd.date_range("2000-01-01", periods=4, freq="D")
    observed = pd.DataFrame(
        {"A": [1.0, 2.0, 3.0, 4.0], "B": [1.0, 2.0, 3.0, 4.0], "C": [2.0, 2.0, 1.0, 1.0]},
        index=dates,
    )
    simulated = pd.DataFrame(
        {
            "A": [1.0, 2.0, 3.0, 5.0],          # MAE 0.25
            "B": [np.nan, np.nan, 3.0, 4.0],    # blank
            "C": [2.0, 2.0, 2.0, 2.0],          # MAE 0.5, R undefined
        },
        index=dates,
    )
    report = evaluate_network(observed, simulated).set_index("Station")

    assert report.loc["B"].isna().all()
    assert np.isnan(report.loc["C", "R"])
    assert report.loc[AGGREGATE_LABEL, "MAE"] == pytest.approx(0.375)
    assert report.loc[AGGREGATE_LABEL, "R"] == pytest.approx(report.loc["A", "R"])


def test_unreachable_thresholds_give_blank_rows():
    values = _pair_network()
    values.iloc[5:8, 1] = np.nan
    w = _weights(values, COORDS, weighting="correlation", min_abs_correlation=1.0)
    assert w.isna().all().all()

    with pytest.warns(UserWarning):
        gap = impute(values, w, mode="gapfill")
    with pytest.warns(UserWarning):
        sim = impute(values, w, mode="simulate")

    assert gap.series["B"].isna().sum() == 3
    report = evaluate_network(values, sim)
    metric_cols = REPORT_COLUMNS[1:]
    assert report[metric_cols].isna().all().all()
    assert report["Station"].iloc[-1] == AGGREGATE_LABEL


def test_gapfill_result_is_rejected():
    values = _pair_network()
    w = _weights(values, COORDS)
    with pytest.raises(ValueError, match="simulate"):
        evaluate_network(values, impute(values, w, mode="gapfill"))


def test_misaligned_tables_are_rejected():
    values = _pair_network()
    with pytest.raises(InvalidInputError):
        evaluate_network(values, values[["B", "A"]])
    with pytest.raises(InvalidInputError):
        evaluate_network(values, values.iloc[:-1])


# ----------------------------------------------------------------------
# Aggregated (monthly) report
# ----------------------------------------------------------------------


def test_monthly_report():
    values = _pair_network(n_days=91)  # Jan-Mar 2000
    values.iloc[40, 0] = np.nan  # February gap at A
    w = _weights(values, COORDS, weighting="correlation")
    sim = impute(values, w, mode="simulate")

    report = evaluate_network_aggregated(values, sim, freq="M", agg="sum")
    assert list(report.columns) == ["Station", "MAE", "R", "RMSE", "NumberPeriods"]
    rows = report.set_index("Station")
    # February dropped on both: observed gap at A, simulated gap at B
    assert rows.loc["A", "NumberPeriods"] == 2
    assert rows.loc["B", "NumberPeriods"] == 2
    assert rows.loc["A", "MAE"] == pytest.approx(0.0, abs=1e-9)
    assert rows.loc[AGGREGATE_LABEL, "NumberPeriods"] == pytest.approx(2.0)
