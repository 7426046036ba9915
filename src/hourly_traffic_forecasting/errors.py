from __future__ import annotations


class TrafficForecastError(ValueError):
    """Base class for pipeline failures; each one aborts the stage that raised it."""


class MalformedInput(TrafficForecastError):
    """Unparseable timestamp/reading or a required input column is absent."""


class IncompleteTrainingData(TrafficForecastError):
    """Missing values, timeline gaps or too few rows reached a model fit."""


class HorizonMismatch(TrafficForecastError):
    """Forecast timestamps do not line up with the requested horizon or the actuals."""


class MissingCovariate(TrafficForecastError):
    """A covariate model was asked to fit/forecast without its regressor columns."""
