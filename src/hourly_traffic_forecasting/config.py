from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from .calendars import HOLIDAYS_2015_2017, HOLIDAYS_JAN_2017


@dataclass(frozen=True)
class ProjectConfig:
    # Paths (repo-relative by default)
    sensor_path: Path = Path('data/raw/sensor_hourly.csv')
    weather_path: Path = Path('data/raw/weather_daily.csv')
    series_out_path: Path = Path('data/processed/clean_series.csv.gz')
    outliers_out_path: Path = Path('data/processed/outliers.csv')

    # Raw input layout
    sensor_skip_rows: int = 1
    timestamp_col: str = 'timestamp'
    reading_col: str = 'traffic'

    # Calendars (explicit inputs, overridable in tests)
    holidays: List[str] = field(default_factory=lambda: list(HOLIDAYS_2015_2017))
    future_holidays: List[str] = field(default_factory=lambda: list(HOLIDAYS_JAN_2017))

    # Cleaning
    seasonal_period: int = 24
    outlier_iqr_k: float = 3.0

    # Split / horizons (hours)
    test_hours: int = 744
    forecast_hours: int = 744

    # Model bank
    covariates: List[str] = field(default_factory=lambda: ['holiday', 'precipitation', 'snow'])
    arima_max_p: int = 2
    arima_max_q: int = 2
    arima_seasonal_order: Tuple[int, int, int, int] = (1, 0, 0, 24)
    interval_alpha: float = 0.05
