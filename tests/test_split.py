from __future__ import annotations

import pandas as pd
import pytest

from hourly_traffic_forecasting.errors import IncompleteTrainingData
from hourly_traffic_forecasting.split import holdout_cutoff, split_train_test, trim_to_observed

from conftest import make_hourly


def test_split_is_a_chronological_partition(hourly_series):
    cutoff = pd.Timestamp('2016-01-10 13:00')
    train, test = split_train_test(hourly_series, cutoff)

    assert (train.index < cutoff).all()
    assert (test.index >= cutoff).all()
    union = train.index.append(test.index)
    assert union.is_unique
    assert union.equals(hourly_series.index)


def test_split_cutoff_outside_range():
    df = make_hourly(48)
    train, test = split_train_test(df, pd.Timestamp('2030-01-01'))
    assert len(train) == 48 and test.empty


def test_holdout_cutoff_reserves_final_window():
    df = make_hourly(800)
    cutoff = holdout_cutoff(df, hours=744)
    train, test = split_train_test(df, cutoff)
    assert len(test) == 744
    assert len(train) == 56
    assert test.index[-1] == df.index[-1]


def test_holdout_cutoff_needs_training_rows():
    with pytest.raises(IncompleteTrainingData):
        holdout_cutoff(make_hourly(744), hours=744)


def test_trim_to_observed_cuts_boundary_gaps_only(hourly_series):
    df = hourly_series.copy()
    df.loc['2016-01-01', 'traffic'] = float('nan')
    df.loc['2016-01-21 20:00':, 'traffic'] = float('nan')
    df.loc['2016-01-09 05:00', 'traffic'] = float('nan')

    trimmed = trim_to_observed(df)

    assert trimmed.index.min() == pd.Timestamp('2016-01-02 00:00')
    assert trimmed.index.max() == pd.Timestamp('2016-01-21 19:00')
    assert int(trimmed['traffic'].isna().sum()) == 1


def test_trim_to_observed_with_no_traffic_is_empty(hourly_series):
    df = hourly_series.assign(traffic=float('nan'))
    trimmed = trim_to_observed(df)
    assert trimmed.empty
    with pytest.raises(IncompleteTrainingData):
        holdout_cutoff(trimmed, hours=24)
