#!/usr/bin/env python3
from __future__ import annotations

import argparse
from pathlib import Path

from rich.console import Console
from rich.table import Table

from hourly_traffic_forecasting.cleaning import clean_series
from hourly_traffic_forecasting.config import ProjectConfig
from hourly_traffic_forecasting.ingest import build_hourly_table, load_sensor_readings, load_weather


def main() -> None:
    ap = argparse.ArgumentParser(description='Ingest sensor + weather data, repair gaps/dead days and flag STL outliers.')
    ap.add_argument('--sensor', type=str, default=str(ProjectConfig().sensor_path), help='Raw hourly sensor CSV (first line is a junk header).')
    ap.add_argument('--weather', type=str, default=str(ProjectConfig().weather_path), help='Daily weather CSV with date, precipitation, snow.')
    ap.add_argument('--out', type=str, default=str(ProjectConfig().series_out_path), help='Output .csv.gz path for the clean series.')
    ap.add_argument('--outliers-out', type=str, default=str(ProjectConfig().outliers_out_path))
    ap.add_argument('--skip-rows', type=int, default=ProjectConfig().sensor_skip_rows)
    ap.add_argument('--timestamp-col', type=str, default=ProjectConfig().timestamp_col)
    ap.add_argument('--reading-col', type=str, default=ProjectConfig().reading_col)
    ap.add_argument('--iqr-k', type=float, default=ProjectConfig().outlier_iqr_k)
    args = ap.parse_args()

    cfg = ProjectConfig(
        sensor_path=Path(args.sensor),
        weather_path=Path(args.weather),
        series_out_path=Path(args.out),
        outliers_out_path=Path(args.outliers_out),
        sensor_skip_rows=args.skip_rows,
        timestamp_col=args.timestamp_col,
        reading_col=args.reading_col,
        outlier_iqr_k=args.iqr_k,
    )

    readings = load_sensor_readings(
        cfg.sensor_path,
        skip_rows=cfg.sensor_skip_rows,
        timestamp_col=cfg.timestamp_col,
        reading_col=cfg.reading_col,
    )
    weather = load_weather(cfg.weather_path)
    table = build_hourly_table(readings, weather, holidays=cfg.holidays)

    result = clean_series(table, period=cfg.seasonal_period, iqr_k=cfg.outlier_iqr_k, holidays=cfg.holidays)

    console = Console()
    summary = Table(title='Cleaning report')
    summary.add_column('step')
    summary.add_column('count', justify='right')
    for name, value in result.report.as_rows():
        summary.add_row(name, f'{value:,}')
    console.print(summary)

    missing_weather = int(result.series[['precipitation', 'snow']].isna().any(axis=1).sum())
    if missing_weather:
        console.print(f'[yellow]{missing_weather:,} hours have no weather; precipitation/snow models will be recorded as FAILED in the bake-off[/yellow]')

    cfg.series_out_path.parent.mkdir(parents=True, exist_ok=True)
    result.series.to_csv(cfg.series_out_path, index=True, compression='gzip')

    cfg.outliers_out_path.parent.mkdir(parents=True, exist_ok=True)
    result.outliers.to_csv(cfg.outliers_out_path, index=True)

    print(f'Wrote series: {cfg.series_out_path} ({result.series.shape[0]:,} hours)')
    print(f'Wrote outliers: {cfg.outliers_out_path} ({result.outliers.shape[0]:,} flagged)')


if __name__ == '__main__':
    main()
