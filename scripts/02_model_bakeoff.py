#!/usr/bin/env python3
from __future__ import annotations

import argparse
from pathlib import Path

from hourly_traffic_forecasting.config import ProjectConfig
from hourly_traffic_forecasting.ingest import load_series
from hourly_traffic_forecasting.modeling import build_model_bank, evaluate_models
from hourly_traffic_forecasting.split import holdout_cutoff, split_train_test, trim_to_observed


def main() -> None:
    ap = argparse.ArgumentParser(description='Fit the model bank on the training span and rank it on the held-out window.')
    ap.add_argument('--series', type=str, default=str(ProjectConfig().series_out_path))
    ap.add_argument('--out', type=str, default='reports/models/model_comparison.csv')
    ap.add_argument('--test-hours', type=int, default=ProjectConfig().test_hours, help='Length of the final hold-out window in hours.')
    ap.add_argument('--families', type=str, nargs='+', default=['ETS', 'ARIMA', 'TSLM'], choices=['ETS', 'ARIMA', 'TSLM'])
    ap.add_argument('--max-p', type=int, default=ProjectConfig().arima_max_p)
    ap.add_argument('--max-q', type=int, default=ProjectConfig().arima_max_q)
    args = ap.parse_args()

    cfg = ProjectConfig(test_hours=args.test_hours, arima_max_p=args.max_p, arima_max_q=args.max_q)

    series = trim_to_observed(load_series(Path(args.series)))
    cutoff = holdout_cutoff(series, hours=cfg.test_hours)
    train, test = split_train_test(series, cutoff)
    print(f'Cutoff: {cutoff}  train={len(train):,}h  test={len(test):,}h')

    models = build_model_bank(
        covariates=cfg.covariates,
        seasonal_period=cfg.seasonal_period,
        alpha=cfg.interval_alpha,
        arima_max_p=cfg.arima_max_p,
        arima_max_q=cfg.arima_max_q,
        arima_seasonal_order=cfg.arima_seasonal_order,
        families=args.families,
    )

    res = evaluate_models(train=train, test=test, models=models)

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    res.to_csv(out, index=False)
    print(f'Wrote: {out}')


if __name__ == '__main__':
    main()
