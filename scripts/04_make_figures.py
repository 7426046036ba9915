#!/usr/bin/env python3
"""Render figures from the pipeline outputs.

Expected inputs:
- clean series: data/processed/clean_series.csv.gz
- outliers: data/processed/outliers.csv
- hold-out predictions: reports/predictions/pred_holdout.csv
- production forecast: reports/predictions/forecast_future.csv

Outputs:
- assets/figures/fig01..fig03 as HTML (+ PNG with --png, requires kaleido)
"""

from __future__ import annotations

import argparse
from pathlib import Path

import pandas as pd

from hourly_traffic_forecasting.config import ProjectConfig
from hourly_traffic_forecasting.ingest import load_series
from hourly_traffic_forecasting.viz_utils import plot_cleaning, plot_forecast, save_plotly


def _read_indexed(path: Path, time_col: str) -> pd.DataFrame:
    df = pd.read_csv(path)
    df[time_col] = pd.to_datetime(df[time_col], errors='coerce')
    return df.dropna(subset=[time_col]).set_index(time_col).sort_index()


def main() -> None:
    ap = argparse.ArgumentParser(description='Make cleaning, hold-out and forecast figures.')
    ap.add_argument('--series', type=str, default=str(ProjectConfig().series_out_path))
    ap.add_argument('--outliers', type=str, default=str(ProjectConfig().outliers_out_path))
    ap.add_argument('--holdout', type=str, default='reports/predictions/pred_holdout.csv')
    ap.add_argument('--forecast', type=str, default='reports/predictions/forecast_future.csv')
    ap.add_argument('--fig-dir', type=str, default='assets/figures')
    ap.add_argument('--png', action='store_true', help='Also write PNGs (needs kaleido).')
    args = ap.parse_args()

    fig_dir = Path(args.fig_dir)
    written = []

    def _save(fig, stem: str) -> None:
        html = fig_dir / f'{stem}.html'
        png = fig_dir / f'{stem}.png' if args.png else None
        save_plotly(fig, html, png)
        written.append(html)

    series = load_series(Path(args.series))
    outliers_path = Path(args.outliers)
    outliers = _read_indexed(outliers_path, 'timestamp') if outliers_path.exists() else series.iloc[0:0]
    _save(plot_cleaning(series, outliers), 'fig01_clean_series_outliers')

    holdout_path = Path(args.holdout)
    if holdout_path.exists():
        pred = _read_indexed(holdout_path, 'timestamp')
        fc = pred.rename(columns={'y_pred': 'forecast'})[['forecast', 'lower', 'upper']]
        actual = pred.rename(columns={'y_true': 'traffic'})[['traffic']]
        history = series[series.index < fc.index.min()]
        name = pred['model'].iloc[0] if len(pred) else ''
        _save(plot_forecast(history, fc, title=f'Hold-out forecast vs actual ({name})', actual=actual), 'fig02_holdout_forecast')

    forecast_path = Path(args.forecast)
    if forecast_path.exists():
        fut = _read_indexed(forecast_path, 'timestamp')
        name = fut['model'].iloc[0] if len(fut) else ''
        _save(plot_forecast(series, fut, title=f'Production forecast ({name})'), 'fig03_future_forecast')

    print('Wrote:\n  ' + '\n  '.join(str(p) for p in written))


if __name__ == '__main__':
    main()
