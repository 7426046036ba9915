"""Hourly traffic-sensor forecasting.

Ingest and align sensor readings with daily weather and holiday flags, repair
gaps and dead-sensor days, and compare ETS / ARIMA / regression forecasters on
a held-out month. CLI-friendly scripts live under /scripts.
"""

from .config import ProjectConfig
