from __future__ import annotations

import dataclasses

import pytest

from hourly_traffic_forecasting import ProjectConfig
from hourly_traffic_forecasting.calendars import as_dates


def test_defaults_match_reference_scenario():
    cfg = ProjectConfig()
    assert cfg.test_hours == 744
    assert cfg.seasonal_period == 24
    assert cfg.outlier_iqr_k == 3.0
    assert cfg.covariates == ['holiday', 'precipitation', 'snow']
    assert '2016-12-26' in cfg.holidays
    assert as_dates(cfg.future_holidays).month.unique().tolist() == [1]


def test_config_is_frozen_and_calendars_independent():
    cfg = ProjectConfig(holidays=['2020-01-01'])
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.test_hours = 10
    assert ProjectConfig().holidays != cfg.holidays
