from __future__ import annotations

from dataclasses import dataclass, fields
from typing import List, Tuple

import numpy as np
import pandas as pd

from statsmodels.tsa.seasonal import STL

from .errors import IncompleteTrainingData, MalformedInput
from .ingest import holiday_flags
from .split import trim_to_observed


COVARIATE_COLS = ['holiday', 'precipitation', 'snow']
OUTLIER_COLS = ['traffic', 'trend', 'seasonal', 'remainder', 'lower_fence', 'upper_fence']


@dataclass(frozen=True)
class CleaningReport:
    input_rows: int
    duplicate_rows_merged: int
    hours_inserted: int
    zero_days: int
    hours_interpolated: int
    hours_still_missing: int
    outliers_flagged: int

    def as_rows(self) -> List[Tuple[str, int]]:
        return [(f.name, getattr(self, f.name)) for f in fields(self)]


@dataclass(frozen=True)
class CleaningResult:
    series: pd.DataFrame
    outliers: pd.DataFrame
    report: CleaningReport


def deduplicate(df: pd.DataFrame) -> pd.DataFrame:
    """One row per timestamp; duplicate rows are averaged field by field."""
    out = df.groupby(level=0, sort=True).mean(numeric_only=True)
    out.index.name = 'timestamp'
    return out[[c for c in df.columns if c in out.columns]]


def fill_hourly_gaps(df: pd.DataFrame) -> pd.DataFrame:
    """Reindex onto every hour between the first and last timestamp.

    Inserted hours carry missing values in every column, never zero.
    """
    if df.empty:
        return df.copy()
    if not df.index.is_unique:
        raise ValueError('fill_hourly_gaps needs unique timestamps; run deduplicate first')

    idx = pd.DatetimeIndex(df.index)
    if (idx != idx.floor('h')).any():
        raise MalformedInput('timestamps must be aligned to the hour')

    full = pd.date_range(idx.min(), idx.max(), freq='h', name='timestamp')
    return df.reindex(full)


def fill_daily_covariates(df: pd.DataFrame) -> pd.DataFrame:
    """Spread each date's holiday/weather values onto that date's inserted hours."""
    cols = [c for c in COVARIATE_COLS if c in df.columns]
    out = df.copy()
    if not cols:
        return out
    day = out.index.normalize()
    daily_first = out.groupby(day)[cols].transform('first')
    out[cols] = out[cols].fillna(daily_first)
    return out


def zero_traffic_days(df: pd.DataFrame) -> pd.DatetimeIndex:
    """Dates whose observed hourly traffic sums to exactly zero.

    A date with no observed value at all is missing, not zero.
    """
    day = df.index.normalize()
    daily = df['traffic'].groupby(day).sum(min_count=1)
    return pd.DatetimeIndex(daily.index[daily == 0])


def null_zero_days(df: pd.DataFrame) -> pd.DataFrame:
    """Treat all-zero days as sensor outages: every hour of them becomes missing."""
    out = df.copy()
    dead = zero_traffic_days(out)
    out.loc[out.index.normalize().isin(dead), 'traffic'] = np.nan
    return out


def interpolate_traffic(df: pd.DataFrame) -> pd.DataFrame:
    """Linear fill between observed neighbours; series-edge gaps stay missing."""
    out = df.copy()
    out['traffic'] = out['traffic'].interpolate(method='linear', limit_area='inside')
    return out


def iqr_fences(values, k: float = 3.0) -> Tuple[float, float]:
    q1, q3 = np.nanpercentile(np.asarray(values, dtype=float), [25, 75])
    iqr = q3 - q1
    return float(q1 - k * iqr), float(q3 + k * iqr)


def iqr_outlier_mask(values, k: float = 3.0) -> np.ndarray:
    """True where a value falls strictly outside the k*IQR Tukey fences."""
    v = np.asarray(values, dtype=float)
    lower, upper = iqr_fences(v, k=k)
    return (v > upper) | (v < lower)


def decompose_traffic(df: pd.DataFrame, period: int = 24) -> pd.DataFrame:
    """Robust STL with a periodic seasonal window.

    Leading/trailing missing hours are trimmed; interior gaps are an error.
    Returns traffic, trend, seasonal and remainder on the trimmed index.
    """
    y = trim_to_observed(df)['traffic']
    if y.empty:
        raise IncompleteTrainingData('no observed traffic to decompose')

    if y.isna().any():
        raise IncompleteTrainingData(f'{int(y.isna().sum())} interior missing hours; interpolate before decomposing')
    if len(y) < 2 * period:
        raise IncompleteTrainingData(f'decomposition needs at least {2 * period} hours, got {len(y)}')

    # seasonal window wider than the series == periodic (constant) seasonal shape
    seasonal_window = 10 * len(y) + 1
    res = STL(y, period=period, seasonal=seasonal_window, seasonal_deg=0, robust=True).fit()

    return pd.DataFrame({
        'traffic': y,
        'trend': np.asarray(res.trend),
        'seasonal': np.asarray(res.seasonal),
        'remainder': np.asarray(res.resid),
    }, index=y.index)


def detect_outliers(df: pd.DataFrame, period: int = 24, iqr_k: float = 3.0) -> pd.DataFrame:
    """Flag hours whose STL remainder lies outside the k*IQR fences.

    Diagnostic only: the input frame is not modified and nothing is replaced.
    """
    dec = decompose_traffic(df, period=period)
    lower, upper = iqr_fences(dec['remainder'], k=iqr_k)
    mask = iqr_outlier_mask(dec['remainder'], k=iqr_k)

    flagged = dec.loc[mask].copy()
    flagged['lower_fence'] = lower
    flagged['upper_fence'] = upper
    return flagged


def clean_series(df: pd.DataFrame, period: int = 24, iqr_k: float = 3.0, holidays=None) -> CleaningResult:
    """Run the repair stages in order: dedup, gap-fill, zero-day nulling, interpolation, outlier flags.

    With `holidays`, the holiday flag is recomputed from the calendar for every
    hour after gap-fill, so dates without any sensor row still get a flag.
    Outlier flags need at least two seasonal cycles of observed traffic; a
    shorter series is repaired and returned with no flags.
    """
    deduped = deduplicate(df)
    filled = fill_daily_covariates(fill_hourly_gaps(deduped))
    if holidays is not None:
        filled['holiday'] = holiday_flags(filled.index, holidays)
    nulled = null_zero_days(filled)
    repaired = interpolate_traffic(nulled)

    if len(trim_to_observed(repaired)) >= 2 * period:
        outliers = detect_outliers(repaired, period=period, iqr_k=iqr_k)
    else:
        outliers = pd.DataFrame(columns=OUTLIER_COLS, index=repaired.index[:0], dtype=float)

    if 'holiday' in repaired.columns:
        repaired['holiday'] = repaired['holiday'].astype(float)

    report = CleaningReport(
        input_rows=int(len(df)),
        duplicate_rows_merged=int(len(df) - len(deduped)),
        hours_inserted=int(len(filled) - len(deduped)),
        zero_days=int(len(zero_traffic_days(filled))),
        hours_interpolated=int(nulled['traffic'].isna().sum() - repaired['traffic'].isna().sum()),
        hours_still_missing=int(repaired['traffic'].isna().sum()),
        outliers_flagged=int(len(outliers)),
    )
    return CleaningResult(series=repaired, outliers=outliers, report=report)
