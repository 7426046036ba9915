from __future__ import annotations

from typing import Tuple

import pandas as pd

from .errors import IncompleteTrainingData


def trim_to_observed(df: pd.DataFrame) -> pd.DataFrame:
    """Drop leading/trailing hours with no traffic; interior gaps are kept.

    Boundary gaps (a dead first or last day) are never interpolated, so they
    are cut before splitting. Empty when no hour has observed traffic.
    """
    y = df['traffic']
    first, last = y.first_valid_index(), y.last_valid_index()
    if first is None:
        return df.iloc[:0].copy()
    return df.loc[first:last].copy()


def split_train_test(df: pd.DataFrame, cutoff: pd.Timestamp) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Chronological split: train is strictly before `cutoff`, test is at or after it."""
    cutoff = pd.Timestamp(cutoff)
    train = df[df.index < cutoff].copy()
    test = df[df.index >= cutoff].copy()
    return train, test


def holdout_cutoff(df: pd.DataFrame, hours: int = 744) -> pd.Timestamp:
    """Cutoff that leaves the final `hours` hourly slots for evaluation (744 = 31 days)."""
    if hours <= 0:
        raise ValueError(f'hours must be positive, got {hours}')
    if len(df) <= hours:
        raise IncompleteTrainingData(f'series has {len(df)} hours; nothing left to train on after a {hours}-hour hold-out')
    end = pd.DatetimeIndex(df.index).max()
    return end - pd.Timedelta(hours=hours - 1)
