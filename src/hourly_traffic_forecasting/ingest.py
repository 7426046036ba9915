from __future__ import annotations

from pathlib import Path
from typing import Iterable

import numpy as np
import pandas as pd

from .calendars import as_dates
from .errors import MalformedInput


VALUE_COLS = ['traffic', 'holiday', 'precipitation', 'snow']
WEATHER_COLS = ['precipitation', 'snow']


def _require_columns(df: pd.DataFrame, cols: Iterable[str], what: str) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise MalformedInput(f'{what}: missing required columns: {missing} (have {list(df.columns)})')


def _parse_instants(raw: pd.Series, what: str) -> pd.Series:
    """Parse strings to timestamps; any non-empty value that fails to parse is fatal."""
    parsed = pd.to_datetime(raw, errors='coerce')
    bad = parsed.isna() & raw.notna() & (raw.astype(str).str.strip() != '')
    if bad.any():
        examples = raw[bad].astype(str).head(3).tolist()
        raise MalformedInput(f'{what}: {int(bad.sum())} unparseable timestamps, e.g. {examples}')
    return parsed


def _parse_numbers(raw: pd.Series, what: str) -> pd.Series:
    parsed = pd.to_numeric(raw, errors='coerce')
    bad = parsed.isna() & raw.notna() & (raw.astype(str).str.strip() != '')
    if bad.any():
        examples = raw[bad].astype(str).head(3).tolist()
        raise MalformedInput(f'{what}: {int(bad.sum())} non-numeric values, e.g. {examples}')
    return parsed.astype(float)


def parse_sensor_readings(
    raw: pd.DataFrame,
    timestamp_col: str = 'timestamp',
    reading_col: str = 'traffic',
) -> pd.DataFrame:
    """Raw sensor rows -> (timestamp, traffic) sorted by time.

    Timestamps are floored to the hour. Negative readings are invalid for a
    vehicle count and become missing. Rows without a timestamp are dropped.
    """
    _require_columns(raw, [timestamp_col, reading_col], 'sensor readings')

    ts = _parse_instants(raw[timestamp_col], 'sensor readings')
    traffic = _parse_numbers(raw[reading_col], 'sensor readings')
    traffic = traffic.where(traffic >= 0)

    out = pd.DataFrame({'timestamp': ts.dt.floor('h'), 'traffic': traffic.to_numpy()})
    out = out.dropna(subset=['timestamp'])
    return out.sort_values('timestamp', kind='stable').reset_index(drop=True)


def load_sensor_readings(
    path: Path,
    skip_rows: int = 1,
    timestamp_col: str = 'timestamp',
    reading_col: str = 'traffic',
) -> pd.DataFrame:
    # the first line of the export is a malformed header; the real header follows it
    raw = pd.read_csv(path, skiprows=skip_rows, dtype=str)
    raw.columns = raw.columns.str.strip()
    return parse_sensor_readings(raw, timestamp_col=timestamp_col, reading_col=reading_col)


def parse_weather(
    raw: pd.DataFrame,
    date_col: str = 'date',
    precipitation_col: str = 'precipitation',
    snow_col: str = 'snow',
) -> pd.DataFrame:
    """Daily weather rows -> (date, precipitation, snow); incomplete rows dropped."""
    _require_columns(raw, [date_col, precipitation_col, snow_col], 'weather')

    df = pd.DataFrame({
        'date': _parse_instants(raw[date_col], 'weather'),
        'precipitation': _parse_numbers(raw[precipitation_col], 'weather'),
        'snow': _parse_numbers(raw[snow_col], 'weather'),
    })
    df = df.dropna(subset=['date', 'precipitation', 'snow']).copy()
    df['date'] = df['date'].dt.normalize()
    df = df.drop_duplicates(subset=['date'], keep='first')
    return df.sort_values('date').reset_index(drop=True)


def load_weather(path: Path, **kwargs) -> pd.DataFrame:
    raw = pd.read_csv(path, dtype=str)
    raw.columns = raw.columns.str.strip()
    return parse_weather(raw, **kwargs)


def holiday_flags(index: pd.DatetimeIndex, holidays) -> np.ndarray:
    """Exact calendar-date membership, time of day ignored."""
    return pd.DatetimeIndex(index).normalize().isin(as_dates(holidays))


def build_hourly_table(readings: pd.DataFrame, weather: pd.DataFrame, holidays) -> pd.DataFrame:
    """Join daily weather and holiday flags onto hourly readings.

    Traffic drives the join: every reading survives, and hours whose date has
    no weather row carry missing precipitation/snow. Duplicate timestamps are
    kept here; deduplication belongs to cleaning.
    """
    _require_columns(readings, ['timestamp', 'traffic'], 'sensor readings')
    _require_columns(weather, ['date'] + WEATHER_COLS, 'weather')

    df = readings[['timestamp', 'traffic']].copy()
    df['date'] = df['timestamp'].dt.normalize()
    df = df.merge(weather[['date'] + WEATHER_COLS], on='date', how='left', validate='many_to_one')
    df['holiday'] = holiday_flags(pd.DatetimeIndex(df['timestamp']), holidays)

    df = df.set_index('timestamp').sort_index(kind='stable')
    return df[VALUE_COLS]


def load_series(path: Path) -> pd.DataFrame:
    """Read a cleaned hourly series written by scripts/01_build_series.py."""
    df = pd.read_csv(path)
    _require_columns(df, ['timestamp', 'traffic'], str(path))
    df['timestamp'] = _parse_instants(df['timestamp'], str(path))
    return df.set_index('timestamp').sort_index()
