from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from hourly_traffic_forecasting.errors import HorizonMismatch
from hourly_traffic_forecasting.metrics import (
    evaluate_forecast,
    mae,
    mase,
    rank_reports,
    rmse,
    seasonal_naive_scale,
)


def _frames(actual_values, forecast_values, start='2016-12-01'):
    idx = pd.date_range(start, periods=len(actual_values), freq='h', name='timestamp')
    actual = pd.DataFrame({'traffic': actual_values}, index=idx)
    forecast = pd.DataFrame({'forecast': forecast_values, 'lower': np.nan, 'upper': np.nan}, index=idx)
    return forecast, actual


def test_perfect_forecast_scores_zero():
    y = np.linspace(100, 400, 48)
    forecast, actual = _frames(y, y)
    report = evaluate_forecast(forecast, actual, scale=12.5, model='perfect')
    assert report.RMSE == 0.0
    assert report.MAE == 0.0
    assert report.MASE == 0.0
    assert report.n_points == 48


def test_constant_unit_offset_scores_one():
    y = np.linspace(100, 400, 30)
    forecast, actual = _frames(y, y + 1.0)
    report = evaluate_forecast(forecast, actual, scale=4.0)
    assert report.RMSE == pytest.approx(1.0)
    assert report.MAE == pytest.approx(1.0)
    assert report.MASE == pytest.approx(0.25)


def test_mase_uses_training_scale_not_test_data():
    train = np.array([1.0, 2.0, 3.0, 4.0])
    scale = seasonal_naive_scale(train, period=2)
    assert scale == 2.0
    assert mase([10.0, 10.0], [11.0, 9.0], scale) == pytest.approx(0.5)


def test_mase_undefined_for_flat_training_series():
    assert np.isnan(mase([1.0], [2.0], seasonal_naive_scale(np.ones(50), period=24)))
    assert np.isnan(seasonal_naive_scale(np.arange(10.0), period=24))


def test_missing_actuals_are_excluded():
    forecast, actual = _frames([1.0, np.nan, 3.0], [2.0, 100.0, 4.0])
    report = evaluate_forecast(forecast, actual, scale=1.0)
    assert report.n_points == 2
    assert report.MAE == pytest.approx(1.0)


def test_horizon_mismatch_is_fatal():
    forecast, actual = _frames(np.ones(24), np.ones(24))
    with pytest.raises(HorizonMismatch):
        evaluate_forecast(forecast.iloc[:-1], actual, scale=1.0)
    shifted = forecast.copy()
    shifted.index = shifted.index + pd.Timedelta(hours=1)
    with pytest.raises(HorizonMismatch):
        evaluate_forecast(shifted, actual, scale=1.0)


def test_rmse_mae_basic():
    assert rmse([0, 0], [3, 4]) == pytest.approx(np.sqrt(12.5))
    assert mae([0, 0], [3, -4]) == pytest.approx(3.5)


def test_rank_by_rmse_then_mae_failed_last():
    table = pd.DataFrame([
        {'model': 'a', 'RMSE': 5.0, 'MAE': 4.0},
        {'model': 'failed', 'RMSE': np.nan, 'MAE': np.nan},
        {'model': 'b', 'RMSE': 3.0, 'MAE': 2.5},
        {'model': 'c', 'RMSE': 3.0, 'MAE': 2.0},
    ])
    assert rank_reports(table)['model'].tolist() == ['c', 'b', 'a', 'failed']
