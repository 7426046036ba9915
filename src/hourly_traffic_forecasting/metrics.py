from __future__ import annotations

from dataclasses import asdict, dataclass

import numpy as np
import pandas as pd

from .errors import HorizonMismatch


def rmse(y, yhat) -> float:
    y = np.asarray(y, dtype=float)
    yhat = np.asarray(yhat, dtype=float)
    return float(np.sqrt(np.mean((y - yhat) ** 2)))


def mae(y, yhat) -> float:
    y = np.asarray(y, dtype=float)
    yhat = np.asarray(yhat, dtype=float)
    return float(np.mean(np.abs(y - yhat)))


def seasonal_naive_scale(y_train, period: int = 24) -> float:
    """Mean absolute error of the seasonal-naive forecast y[t-period] in-sample."""
    y = np.asarray(y_train, dtype=float)
    if len(y) <= period:
        return float('nan')
    return float(np.mean(np.abs(y[period:] - y[:-period])))


def mase(y, yhat, scale: float) -> float:
    """MAE scaled by the training seasonal-naive error; NaN when the scale is 0 or unknown."""
    if not np.isfinite(scale) or scale <= 0:
        return float('nan')
    return mae(y, yhat) / scale


@dataclass(frozen=True)
class AccuracyReport:
    model: str
    RMSE: float
    MAE: float
    MASE: float
    n_points: int

    def as_row(self) -> dict:
        return asdict(self)


def evaluate_forecast(
    forecast: pd.DataFrame,
    actual: pd.DataFrame,
    scale: float,
    model: str = '',
    value_col: str = 'forecast',
    actual_col: str = 'traffic',
) -> AccuracyReport:
    """Score a forecast against held-out actuals on identical timestamps.

    `scale` must come from the training fit (see seasonal_naive_scale).
    Hours whose actual value is missing are left out of every metric.
    """
    f_idx = pd.DatetimeIndex(forecast.index)
    a_idx = pd.DatetimeIndex(actual.index)
    if len(f_idx) != len(a_idx) or not f_idx.equals(a_idx):
        raise HorizonMismatch(
            f'{model or "forecast"}: {len(f_idx)} forecast timestamps '
            f'[{f_idx.min() if len(f_idx) else None} .. {f_idx.max() if len(f_idx) else None}] vs '
            f'{len(a_idx)} actual timestamps '
            f'[{a_idx.min() if len(a_idx) else None} .. {a_idx.max() if len(a_idx) else None}]'
        )

    y = actual[actual_col].to_numpy(dtype=float)
    yhat = forecast[value_col].to_numpy(dtype=float)
    keep = ~np.isnan(y)
    y, yhat = y[keep], yhat[keep]

    return AccuracyReport(
        model=model,
        RMSE=rmse(y, yhat),
        MAE=mae(y, yhat),
        MASE=mase(y, yhat, scale),
        n_points=int(keep.sum()),
    )


def rank_reports(table: pd.DataFrame) -> pd.DataFrame:
    """Ascending RMSE, ties broken by MAE; rows without scores go last."""
    if table.empty:
        return table.reset_index(drop=True)
    return table.sort_values(['RMSE', 'MAE'], ascending=[True, True], na_position='last', kind='stable').reset_index(drop=True)
