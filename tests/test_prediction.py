from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from hourly_traffic_forecasting.errors import MissingCovariate
from hourly_traffic_forecasting.modeling import LinearTrendSeasonForecaster
from hourly_traffic_forecasting.prediction import (
    forecast_future,
    future_covariates,
    holdout_predictions,
    monthly_weather_climatology,
)

from conftest import make_hourly


def _two_decembers() -> pd.DataFrame:
    """Hourly frame covering Jan and Dec 2015 plus Dec 2016, weather constant per month-year."""
    parts = []
    for start, days, precip, snow in [
        ('2015-01-01', 31, 1.0, 4.0),
        ('2015-12-01', 31, 2.0, 0.0),
        ('2016-12-01', 31, 4.0, 2.0),
    ]:
        idx = pd.date_range(start, periods=24 * days, freq='h', name='timestamp')
        parts.append(pd.DataFrame({
            'traffic': 300.0,
            'holiday': 0.0,
            'precipitation': precip,
            'snow': snow,
        }, index=idx))
    return pd.concat(parts)


def test_monthly_climatology_averages_daily_values_across_years():
    clim = monthly_weather_climatology(_two_decembers())
    assert clim.loc[12, 'precipitation'] == pytest.approx(3.0)
    assert clim.loc[12, 'snow'] == pytest.approx(1.0)
    assert clim.loc[1, 'precipitation'] == pytest.approx(1.0)


def test_future_covariates_use_calendar_and_climatology():
    history = _two_decembers()
    fut = future_covariates(history, periods=48, future_holidays=['2017-01-02'])

    assert fut.index[0] == pd.Timestamp('2017-01-01 00:00')
    assert len(fut) == 48
    assert fut.loc['2017-01-01', 'holiday'].eq(0.0).all()
    assert fut.loc['2017-01-02', 'holiday'].eq(1.0).all()
    assert fut['precipitation'].eq(1.0).all()
    assert fut['snow'].eq(4.0).all()
    assert fut['traffic'].isna().all()


def test_future_covariates_need_history_for_every_month():
    history = make_hourly(24 * 20, start='2016-06-01')
    with pytest.raises(MissingCovariate):
        future_covariates(history, periods=24 * 40, future_holidays=[])


def test_forecast_future_refits_on_full_history():
    history = make_hourly(24 * 20)
    model = LinearTrendSeasonForecaster(covariates=['holiday', 'precipitation'])
    fc = forecast_future(model, history, periods=72, future_holidays=['2016-01-22'])

    assert len(fc) == 72
    assert fc.index[0] == history.index[-1] + pd.Timedelta(hours=1)
    assert (fc['model'] == 'TSLM+holiday+precipitation').all()
    assert np.isfinite(fc['forecast']).all()
    # the synthetic series drops by 120 on holidays
    holiday_mean = fc.loc['2016-01-22', 'forecast'].mean()
    other_mean = fc.loc['2016-01-23', 'forecast'].mean()
    assert holiday_mean < other_mean - 60


def test_forecast_future_without_covariates_uses_step_count():
    history = make_hourly(24 * 5)
    fc = forecast_future(LinearTrendSeasonForecaster(), history, periods=10, future_holidays=[])
    assert len(fc) == 10
    assert fc.index.name == 'timestamp'


def test_holdout_predictions_table():
    full = make_hourly(24 * 6, start='2016-01-05')
    train, test = full.iloc[:24 * 5], full.iloc[24 * 5:]
    pred = holdout_predictions(LinearTrendSeasonForecaster(), train, test)

    assert list(pred.columns) == ['timestamp', 'model', 'y_true', 'y_pred', 'lower', 'upper', 'residual']
    assert len(pred) == 24
    np.testing.assert_allclose(pred['residual'], pred['y_true'] - pred['y_pred'])
    assert pred['residual'].abs().mean() < 30
