from __future__ import annotations

import numpy as np
import pandas as pd
import pytest


HOLIDAYS = ['2016-01-01', '2016-01-18', '2016-02-15']


def make_hourly(n_hours: int, start: str = '2016-01-01', noise: float = 5.0, seed: int = 7) -> pd.DataFrame:
    """Daily-seasonal traffic with a mild trend plus daily covariates."""
    rng = np.random.default_rng(seed)
    idx = pd.date_range(start, periods=n_hours, freq='h', name='timestamp')
    t = np.arange(n_hours, dtype=float)
    day = idx.normalize()

    holiday = day.isin(pd.to_datetime(HOLIDAYS)).astype(float)
    n_days = len(day.unique())
    daily_precip = pd.Series(rng.gamma(0.6, 2.0, n_days), index=day.unique())
    daily_snow = pd.Series(np.where(rng.random(n_days) < 0.2, rng.uniform(0, 5, n_days), 0.0), index=day.unique())

    traffic = (
        400.0
        + 250.0 * np.sin(2 * np.pi * (t % 24) / 24.0)
        + 0.05 * t
        - 120.0 * holiday
        + rng.normal(0.0, noise, n_hours)
    )

    return pd.DataFrame(
        {
            'traffic': traffic,
            'holiday': holiday,
            'precipitation': daily_precip.reindex(day).to_numpy(),
            'snow': daily_snow.reindex(day).to_numpy(),
        },
        index=idx,
    )


@pytest.fixture
def hourly_series() -> pd.DataFrame:
    return make_hourly(24 * 21)
