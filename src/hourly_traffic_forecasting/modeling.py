from __future__ import annotations

import itertools
import time
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.stats import norm

from sklearn.linear_model import LinearRegression
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from statsmodels.tsa.arima.model import ARIMA
from statsmodels.tsa.exponential_smoothing.ets import ETSModel
from statsmodels.tsa.stattools import adfuller

from .errors import HorizonMismatch, IncompleteTrainingData, MalformedInput, MissingCovariate
from .metrics import evaluate_forecast, rank_reports, seasonal_naive_scale

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn


TARGET = 'traffic'
DEFAULT_COVARIATES = ['holiday', 'precipitation', 'snow']
FORECAST_COLS = ['forecast', 'lower', 'upper']


@dataclass
class FittedModel:
    model: 'ForecastModel'
    result: Any
    train_start: pd.Timestamp
    train_end: pd.Timestamp
    n_obs: int
    mase_scale: float
    params: Dict[str, Any] = field(default_factory=dict)

    def forecast(self, horizon) -> pd.DataFrame:
        return self.model.forecast(self, horizon)


class ForecastModel:
    """fit(train) -> FittedModel, forecast(fitted, horizon) -> ForecastSeries.

    `horizon` is an int step count (models without covariates only) or a
    frame whose hourly index defines the forecast timestamps and which holds
    the covariate columns the model was fitted with.
    """

    family = 'base'

    def __init__(self, covariates: Sequence[str] = (), seasonal_period: int = 24, alpha: float = 0.05) -> None:
        self.covariates = list(covariates)
        self.seasonal_period = int(seasonal_period)
        self.alpha = float(alpha)

    @property
    def name(self) -> str:
        if not self.covariates:
            return self.family
        return '+'.join([self.family] + self.covariates)

    @property
    def min_length(self) -> int:
        return 2 * self.seasonal_period

    def __repr__(self) -> str:
        return f'{type(self).__name__}(name={self.name!r})'

    # -----------------
    # public contract
    # -----------------

    def fit(self, train: pd.DataFrame) -> FittedModel:
        y, X = self._training_arrays(train)
        result, params = self._fit(y, X)
        return FittedModel(
            model=self,
            result=result,
            train_start=y.index[0],
            train_end=y.index[-1],
            n_obs=int(len(y)),
            mase_scale=seasonal_naive_scale(y.to_numpy(), self.seasonal_period),
            params=params,
        )

    def forecast(self, fitted: FittedModel, horizon) -> pd.DataFrame:
        index, X = self._horizon_arrays(fitted, horizon)
        point, lower, upper = self._forecast(fitted, index, X)
        return pd.DataFrame(
            {
                'forecast': np.asarray(point, dtype=float),
                'lower': np.asarray(lower, dtype=float),
                'upper': np.asarray(upper, dtype=float),
            },
            index=index,
        )

    # -----------------
    # backend hooks
    # -----------------

    def _fit(self, y: pd.Series, X: pd.DataFrame | None) -> Tuple[Any, Dict[str, Any]]:
        raise NotImplementedError

    def _forecast(self, fitted: FittedModel, index: pd.DatetimeIndex, X: pd.DataFrame | None):
        raise NotImplementedError

    # -----------------
    # validation
    # -----------------

    def _training_arrays(self, train: pd.DataFrame) -> Tuple[pd.Series, pd.DataFrame | None]:
        if TARGET not in train.columns:
            raise IncompleteTrainingData(f'{self.name}: training frame has no {TARGET!r} column')
        if len(train) < self.min_length:
            raise IncompleteTrainingData(
                f'{self.name}: needs at least {self.min_length} hourly rows, got {len(train)}'
            )

        n_missing = int(train[TARGET].isna().sum())
        if n_missing:
            raise IncompleteTrainingData(f'{self.name}: {n_missing} missing {TARGET} values in training data')

        idx = pd.DatetimeIndex(train.index)
        expected = pd.date_range(idx[0], periods=len(idx), freq='h', name='timestamp')
        if not idx.equals(expected):
            raise IncompleteTrainingData(f'{self.name}: training index is not a gap-free hourly timeline')

        y = pd.Series(train[TARGET].to_numpy(dtype=float), index=expected, name=TARGET)

        if not self.covariates:
            return y, None

        absent = [c for c in self.covariates if c not in train.columns]
        if absent:
            raise MissingCovariate(f'{self.name}: training frame lacks covariate columns {absent}')
        X = pd.DataFrame(train[self.covariates].to_numpy(dtype=float), index=expected, columns=self.covariates)
        gaps = X.isna().sum()
        if gaps.any():
            raise IncompleteTrainingData(f'{self.name}: missing covariate values in training data {gaps[gaps > 0].to_dict()}')
        return y, X

    def _horizon_arrays(self, fitted: FittedModel, horizon) -> Tuple[pd.DatetimeIndex, pd.DataFrame | None]:
        start = fitted.train_end + pd.Timedelta(hours=1)

        if isinstance(horizon, (int, np.integer)) and not isinstance(horizon, bool):
            if self.covariates:
                raise MissingCovariate(f'{self.name}: needs a covariate frame with {self.covariates}, got a step count')
            if horizon <= 0:
                raise HorizonMismatch(f'{self.name}: horizon must be positive, got {horizon}')
            return pd.date_range(start, periods=int(horizon), freq='h', name='timestamp'), None

        if not isinstance(horizon, pd.DataFrame):
            raise TypeError(f'horizon must be an int or a DataFrame, got {type(horizon).__name__}')

        index = pd.DatetimeIndex(horizon.index)
        expected = pd.date_range(start, periods=len(index), freq='h', name='timestamp')
        if len(index) == 0 or not index.equals(expected):
            raise HorizonMismatch(
                f'{self.name}: horizon must be contiguous hourly starting at {start}, '
                f'got {len(index)} timestamps starting at {index.min() if len(index) else None}'
            )

        if not self.covariates:
            return expected, None

        absent = [c for c in self.covariates if c not in horizon.columns]
        if absent:
            raise MissingCovariate(f'{self.name}: horizon lacks covariate columns {absent}')
        X = pd.DataFrame(horizon[self.covariates].to_numpy(dtype=float), index=expected, columns=self.covariates)
        gaps = X.isna().sum()
        if gaps.any():
            raise MissingCovariate(f'{self.name}: covariates missing at forecast timestamps {gaps[gaps > 0].to_dict()}')
        return expected, X


class ETSForecaster(ForecastModel):
    """Additive-error ETS with damped additive trend and additive hourly season."""

    family = 'ETS'

    def __init__(self, seasonal_period: int = 24, alpha: float = 0.05) -> None:
        super().__init__(covariates=(), seasonal_period=seasonal_period, alpha=alpha)

    def _fit(self, y, X):
        model = ETSModel(
            y,
            error='add',
            trend='add',
            damped_trend=True,
            seasonal='add',
            seasonal_periods=self.seasonal_period,
        )
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', ConvergenceWarning)
            res = model.fit(disp=False)
        return res, {'aic': float(res.aic)}

    def _forecast(self, fitted, index, X):
        n = fitted.n_obs
        pred = fitted.result.get_prediction(start=n, end=n + len(index) - 1)
        frame = pred.summary_frame(alpha=self.alpha)
        return frame['mean'], frame['pi_lower'], frame['pi_upper']


class ARIMAForecaster(ForecastModel):
    """ARIMA(p, d, q), optionally with exogenous regressors.

    d comes from an ADF test on the training series (0 when stationary at 5%),
    (p, q) is the minimum-AIC pair over 0..max_p x 0..max_q.
    """

    family = 'ARIMA'

    def __init__(
        self,
        covariates: Sequence[str] = (),
        seasonal_period: int = 24,
        alpha: float = 0.05,
        max_p: int = 2,
        max_q: int = 2,
        seasonal_order: Tuple[int, int, int, int] = (0, 0, 0, 0),
    ) -> None:
        super().__init__(covariates=covariates, seasonal_period=seasonal_period, alpha=alpha)
        self.max_p = int(max_p)
        self.max_q = int(max_q)
        self.seasonal_order = tuple(seasonal_order)

    @property
    def name(self) -> str:
        return super().name.replace('ARIMA+', 'ARIMAX+', 1)

    def _differencing_order(self, y: pd.Series) -> int:
        pvalue = adfuller(y.to_numpy(), autolag='AIC')[1]
        return 0 if pvalue < 0.05 else 1

    def _fit(self, y, X):
        d = self._differencing_order(y)
        trend = 'c' if d == 0 else 'n'

        best = None
        best_order = None
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', ConvergenceWarning)
            warnings.simplefilter('ignore', UserWarning)
            for p, q in itertools.product(range(self.max_p + 1), range(self.max_q + 1)):
                try:
                    res = ARIMA(y, exog=X, order=(p, d, q), seasonal_order=self.seasonal_order, trend=trend).fit()
                except (np.linalg.LinAlgError, ValueError):
                    continue
                if not np.isfinite(res.aic):
                    continue
                if best is None or res.aic < best.aic:
                    best, best_order = res, (p, d, q)

        if best is None:
            # estimation failure, not bad input: recorded as a FAILED row by evaluate_models
            raise RuntimeError(f'{self.name}: no ARIMA order in the search grid could be estimated')
        return best, {'order': best_order, 'seasonal_order': self.seasonal_order, 'aic': float(best.aic)}

    def _forecast(self, fitted, index, X):
        fc = fitted.result.get_forecast(steps=len(index), exog=None if X is None else X.to_numpy())
        frame = fc.summary_frame(alpha=self.alpha)
        return frame['mean'], frame['mean_ci_lower'], frame['mean_ci_upper']


class LinearTrendSeasonForecaster(ForecastModel):
    """OLS on a linear trend, one dummy per seasonal position and the covariates.

    Intervals are point +/- z * residual standard error (parameter uncertainty ignored).
    """

    family = 'TSLM'

    @property
    def min_length(self) -> int:
        return self.seasonal_period + len(self.covariates) + 2

    def _design(self, index: pd.DatetimeIndex, train_start: pd.Timestamp, X: pd.DataFrame | None) -> np.ndarray:
        t = ((index - train_start) / pd.Timedelta(hours=1)).to_numpy(dtype=float)
        season = t.astype(int) % self.seasonal_period
        dummies = (season[:, None] == np.arange(1, self.seasonal_period)[None, :]).astype(float)
        parts = [t[:, None], dummies]
        if X is not None:
            parts.append(X.to_numpy(dtype=float))
        return np.column_stack(parts)

    def _fit(self, y, X):
        design = self._design(y.index, y.index[0], X)
        reg = LinearRegression().fit(design, y.to_numpy())
        resid = y.to_numpy() - reg.predict(design)
        dof = max(len(y) - design.shape[1] - 1, 1)
        sigma = float(np.sqrt(np.sum(resid ** 2) / dof))
        coefs = dict(zip(self.covariates, reg.coef_[-len(self.covariates):])) if self.covariates else {}
        return reg, {'sigma': sigma, 'trend_per_hour': float(reg.coef_[0]), **{f'coef_{k}': float(v) for k, v in coefs.items()}}

    def _forecast(self, fitted, index, X):
        design = self._design(index, fitted.train_start, X)
        point = fitted.result.predict(design)
        z = norm.ppf(1.0 - self.alpha / 2.0)
        half = z * fitted.params['sigma']
        return point, point - half, point + half


def covariate_subsets(covariates: Sequence[str]) -> List[Tuple[str, ...]]:
    """Every subset of the candidate regressors, smallest first (empty set included)."""
    cov = list(covariates)
    return [combo for r in range(len(cov) + 1) for combo in itertools.combinations(cov, r)]


def build_model_bank(
    covariates: Sequence[str] = tuple(DEFAULT_COVARIATES),
    seasonal_period: int = 24,
    alpha: float = 0.05,
    arima_max_p: int = 2,
    arima_max_q: int = 2,
    arima_seasonal_order: Tuple[int, int, int, int] = (1, 0, 0, 24),
    families: Sequence[str] = ('ETS', 'ARIMA', 'TSLM'),
) -> Dict[str, ForecastModel]:
    models: Dict[str, ForecastModel] = {}

    if 'ETS' in families:
        ets = ETSForecaster(seasonal_period=seasonal_period, alpha=alpha)
        models[ets.name] = ets

    for subset in covariate_subsets(covariates):
        if 'ARIMA' in families:
            arima = ARIMAForecaster(
                covariates=subset,
                seasonal_period=seasonal_period,
                alpha=alpha,
                max_p=arima_max_p,
                max_q=arima_max_q,
                seasonal_order=arima_seasonal_order,
            )
            models[arima.name] = arima
        if 'TSLM' in families:
            tslm = LinearTrendSeasonForecaster(covariates=subset, seasonal_period=seasonal_period, alpha=alpha)
            models[tslm.name] = tslm

    return models


def evaluate_models(
    train: pd.DataFrame,
    test: pd.DataFrame,
    models: Dict[str, ForecastModel],
    console: Console | None = None,
) -> pd.DataFrame:
    """
    Fit every model on train, forecast the test window and score it.

    A model that cannot be fitted on this training span (e.g. a covariate
    with missing values) is recorded as a FAILED row and the loop moves on.
    A test window that no forecast can align with (HorizonMismatch) aborts
    the run. Returns the ranked comparison table.
    """
    console = console or Console()
    console.print(f"[dim]Train/Test hours:[/dim] {len(train):,} / {len(test):,}")
    console.print(f"[dim]Models:[/dim] {len(models)}")

    rows: List[dict] = []

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}[/bold]"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
    )

    with progress:
        t_models = progress.add_task("Models", total=len(models))
        for name, mdl in models.items():
            try:
                with console.status(f"[bold]Fitting[/bold] {name} …", spinner="dots"):
                    t0 = time.perf_counter()
                    fitted = mdl.fit(train)
                    fit_s = time.perf_counter() - t0

                    fc = fitted.forecast(test)
                    report = evaluate_forecast(fc, test, scale=fitted.mase_scale, model=name)

                rows.append(
                    {
                        **report.as_row(),
                        "family": mdl.family,
                        "covariates": "+".join(mdl.covariates),
                        "fit_seconds": fit_s,
                        "notes": ", ".join(f"{k}={v}" for k, v in fitted.params.items()),
                    }
                )
                console.print(f"[green]✓[/green] {name}  [dim]fit[/dim] {fit_s:.2f}s  [dim]RMSE[/dim] {report.RMSE:,.1f}")

            except (HorizonMismatch, MalformedInput):
                # the test window itself is unusable; no model can be scored against it
                raise
            except Exception as e:
                rows.append(
                    {
                        "model": name,
                        "family": mdl.family,
                        "covariates": "+".join(mdl.covariates),
                        "RMSE": np.nan,
                        "MAE": np.nan,
                        "MASE": np.nan,
                        "fit_seconds": np.nan,
                        "notes": f"FAILED: {type(e).__name__}: {e}",
                    }
                )
                console.print(f"[red]✗[/red] {name}  {type(e).__name__}: {e}")

            progress.update(t_models, advance=1)

    return rank_reports(pd.DataFrame(rows))
