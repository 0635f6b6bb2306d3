# tests/test_metrics.py

import numpy as np
import pandas as pd
import pytest

from PrecipFillPy.metrics import (
    pearson_r,
    regression_metrics,
    aggregate_and_score,
)


def test_pearson_r_perfect_match_is_one():
    val = pearson_r([1.0, 2.0, 3.0, 4.0], [1.0, 2.0, 3.0, 4.0])
    assert val == pytest.approx(1.0, rel=1e-9)


def test_pearson_r_anticorrelated_is_minus_one():
    val = pearson_r([1.0, 2.0, 3.0], [3.0, 2.0, 1.0])
    assert val == pytest.approx(-1.0, rel=1e-9)


def test_pearson_r_zero_variance_returns_nan():
    """Correlation is undefined (NaN), never 0, for a constant series."""
    assert np.isnan(pearson_r([5.0, 5.0, 5.0], [1.0, 2.0, 3.0]))
    assert np.isnan(pearson_r([1.0, 2.0, 3.0], [0.0, 0.0, 0.0]))


def test_pearson_r_too_few_points_returns_nan():
    assert np.isnan(pearson_r([1.0], [1.0]))


def test_metrics_shape_mismatch_raises():
    with pytest.raises(ValueError):
        pearson_r([1.0, 2.0, 3.0], [1.0, 2.0])
    with pytest.raises(ValueError):
        regression_metrics([1.0, 2.0, 3.0], [1.0, 2.0])


def test_regression_metrics_perfect_match():
    """Perfect match should give MAE=0, R=1, RMSE=0."""
    y = [0.0, 1.0, 2.0, 3.0, 4.0]
    m = regression_metrics(y, y)

    assert set(m.keys()) == {"MAE", "R", "RMSE"}
    assert m["MAE"] == pytest.approx(0.0, abs=1e-12)
    assert m["R"] == pytest.approx(1.0, rel=1e-9)
    assert m["RMSE"] == pytest.approx(0.0, abs=1e-12)


def test_regression_metrics_known_values():
    y_true = [0.0, 2.0, 4.0]
    y_pred = [1.0, 2.0, 1.0]
    m = regression_metrics(y_true, y_pred)
    assert m["MAE"] == pytest.approx(4.0 / 3.0)
    assert m["RMSE"] == pytest.approx(np.sqrt(10.0 / 3.0))
    assert m["R"] == pytest.approx(np.corrcoef(y_true, y_pred)[0, 1])


def test_regression_metrics_single_point_has_no_correlation():
    m = regression_metrics([2.0], [3.0])
    assert m["MAE"] == pytest.approx(1.0)
    assert m["RMSE"] == pytest.approx(1.0)
    assert np.isnan(m["R"])


def test_regression_metrics_empty_inputs_return_nan():
    """Empty inputs should return all-NaN metrics, not crash."""
    m = regression_metrics([], [])
    for v in m.values():
        assert np.isnan(v)


def test_aggregate_and_score_monthly_sum_perfect():
    # 2000 is a leap year: 31 days of January + 29 days of February
    dates = pd.date_range("2000-01-01", periods=60, freq="D")
    df = pd.DataFrame(
        {"date": dates, "y_true": np.ones(60), "y_pred": np.ones(60)}
    )

    metrics, agg_df = aggregate_and_score(
        df, date_col="date", y_col="y_true", yhat_col="y_pred", freq="M", agg="sum"
    )

    assert len(agg_df) == 2
    assert agg_df["y_true"].tolist() == pytest.approx([31.0, 29.0])
    assert agg_df["y_pred"].tolist() == pytest.approx([31.0, 29.0])
    assert metrics["MAE"] == pytest.approx(0.0, abs=1e-12)
    assert metrics["RMSE"] == pytest.approx(0.0, abs=1e-12)
    assert metrics["R"] == pytest.approx(1.0, rel=1e-9)


def test_aggregate_and_score_drops_incomplete_periods():
    dates = pd.date_range("2000-01-01", periods=60, freq="D")
    y_pred = np.ones(60)
    y_pred[40] = np.nan  # a February day
    df = pd.DataFrame({"date": dates, "y_true": np.ones(60), "y_pred": y_pred})

    _, agg_df = aggregate_and_score(df, freq="M", agg="sum")

    assert len(agg_df) == 1
    assert agg_df.index[0].month == 1


def test_aggregate_and_score_handles_empty_dataframe():
    df = pd.DataFrame({"date": [], "y_true": [], "y_pred": []})

    metrics, agg_df = aggregate_and_score(df)

    assert agg_df.empty
    for v in metrics.values():
        assert np.isnan(v)


def test_aggregate_and_score_rejects_unknown_aggregation():
    df = pd.DataFrame(
        {"date": pd.date_range("2000-01-01", periods=3), "y_true": [1, 2, 3], "y_pred": [1, 2, 3]}
    )
    with pytest.raises(ValueError, match="agg must be"):
        aggregate_and_score(df, agg="max")
