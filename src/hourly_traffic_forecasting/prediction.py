from __future__ import annotations

import numpy as np
import pandas as pd

from .calendars import as_dates
from .errors import MissingCovariate
from .modeling import ForecastModel


WEATHER_COLS = ['precipitation', 'snow']


def holdout_predictions(model: ForecastModel, train: pd.DataFrame, test: pd.DataFrame) -> pd.DataFrame:
    """Fit on train and return a tidy table of actual vs forecast over the test window."""
    fitted = model.fit(train)
    fc = fitted.forecast(test)

    pred = pd.DataFrame({
        'timestamp': fc.index,
        'model': model.name,
        'y_true': test['traffic'].to_numpy(dtype=float),
        'y_pred': fc['forecast'].to_numpy(),
        'lower': fc['lower'].to_numpy(),
        'upper': fc['upper'].to_numpy(),
    })
    pred['residual'] = pred['y_true'] - pred['y_pred']
    return pred


def monthly_weather_climatology(history: pd.DataFrame, cols=WEATHER_COLS) -> pd.DataFrame:
    """Mean daily precipitation/snow per calendar month across all observed years."""
    missing = [c for c in cols if c not in history.columns]
    if missing:
        raise MissingCovariate(f'history lacks weather columns {missing}')

    # weather is a daily value repeated on every hour; collapse to one row per day first
    daily = history[cols].groupby(history.index.normalize()).first()
    return daily.groupby(daily.index.month).mean()


def future_covariates(history: pd.DataFrame, periods: int, future_holidays) -> pd.DataFrame:
    """Synthetic covariates for the hours after the history ends.

    Holiday comes from the known future calendar; weather is the historical
    monthly mean for the matching month (future weather is unknown).
    """
    start = pd.DatetimeIndex(history.index).max() + pd.Timedelta(hours=1)
    index = pd.date_range(start, periods=periods, freq='h', name='timestamp')

    clim = monthly_weather_climatology(history)
    months = index.month
    absent = sorted(set(months) - set(clim.dropna().index))
    if absent:
        raise MissingCovariate(f'no weather history for calendar months {absent}')

    out = pd.DataFrame(index=index)
    out['holiday'] = index.normalize().isin(as_dates(future_holidays)).astype(float)
    for c in WEATHER_COLS:
        out[c] = clim[c].reindex(months).to_numpy(dtype=float)
    out['traffic'] = np.nan
    return out[['traffic', 'holiday'] + WEATHER_COLS]


def forecast_future(model: ForecastModel, history: pd.DataFrame, periods: int, future_holidays) -> pd.DataFrame:
    """Refit on the full cleaned history and forecast `periods` hours past its end."""
    fitted = model.fit(history)
    if model.covariates:
        horizon = future_covariates(history, periods=periods, future_holidays=future_holidays)
    else:
        horizon = periods
    fc = fitted.forecast(horizon)
    fc.insert(0, 'model', model.name)
    return fc
