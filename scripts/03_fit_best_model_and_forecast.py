#!/usr/bin/env python3
from __future__ import annotations

import argparse
from pathlib import Path

from hourly_traffic_forecasting.config import ProjectConfig
from hourly_traffic_forecasting.ingest import load_series
from hourly_traffic_forecasting.modeling import build_model_bank
from hourly_traffic_forecasting.prediction import forecast_future, holdout_predictions
from hourly_traffic_forecasting.split import holdout_cutoff, split_train_test, trim_to_observed


def main() -> None:
    ap = argparse.ArgumentParser(description='Write hold-out predictions and a production forecast for one model.')
    ap.add_argument('--series', type=str, default=str(ProjectConfig().series_out_path))
    ap.add_argument('--model', type=str, default='TSLM+holiday', help='Model name from the model bank.')
    ap.add_argument('--holdout-out', type=str, default='reports/predictions/pred_holdout.csv')
    ap.add_argument('--forecast-out', type=str, default='reports/predictions/forecast_future.csv')
    ap.add_argument('--test-hours', type=int, default=ProjectConfig().test_hours)
    ap.add_argument('--horizon-hours', type=int, default=ProjectConfig().forecast_hours)
    args = ap.parse_args()

    cfg = ProjectConfig(test_hours=args.test_hours, forecast_hours=args.horizon_hours)

    series = trim_to_observed(load_series(Path(args.series)))

    bank = build_model_bank(
        covariates=cfg.covariates,
        seasonal_period=cfg.seasonal_period,
        alpha=cfg.interval_alpha,
        arima_max_p=cfg.arima_max_p,
        arima_max_q=cfg.arima_max_q,
        arima_seasonal_order=cfg.arima_seasonal_order,
    )
    if args.model not in bank:
        raise SystemExit(f"Unknown model '{args.model}'. Available: {sorted(bank.keys())}")
    model = bank[args.model]

    train, test = split_train_test(series, holdout_cutoff(series, hours=cfg.test_hours))
    pred = holdout_predictions(model, train, test)

    holdout_out = Path(args.holdout_out)
    holdout_out.parent.mkdir(parents=True, exist_ok=True)
    pred.to_csv(holdout_out, index=False)
    print(f'Wrote: {holdout_out} ({pred.shape[0]:,} rows)')

    fc = forecast_future(model, series, periods=cfg.forecast_hours, future_holidays=cfg.future_holidays)

    forecast_out = Path(args.forecast_out)
    forecast_out.parent.mkdir(parents=True, exist_ok=True)
    fc.to_csv(forecast_out, index=True)
    print(f'Wrote: {forecast_out} ({fc.shape[0]:,} hours from {fc.index.min()})')


if __name__ == '__main__':
    main()
