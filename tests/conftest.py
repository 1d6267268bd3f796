"""
Shared fixtures: small synthetic frames shaped like the raw sensor CSVs.
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

CLASSES = ['A', 'B', 'C', 'D', 'E']
USERS = ['adelmo', 'carlitos', 'pedro']


def make_raw_frame(n_rows: int, seed: int, training: bool = True) -> pd.DataFrame:
    """
    Build a frame with the same column layout as the raw CSV files.

    ``kurtosis_roll_belt`` and ``avg_roll_arm`` only carry values on
    window-boundary rows of the training frame and are empty in the
    evaluation frame.
    """
    rng = np.random.RandomState(seed)
    idx = np.arange(n_rows)
    labels = np.array(CLASSES)[idx % len(CLASSES)]
    shift = (idx % len(CLASSES)) * 3.0
    boundary = idx % 10 == 0

    if training:
        kurtosis = np.where(boundary, np.where(idx % 20 == 0, '#DIV/0!', '1.25'), '')
        avg_roll = np.where(boundary, rng.randn(n_rows), np.nan)
        new_window = np.where(boundary, 'yes', 'no')
    else:
        kurtosis = np.full(n_rows, np.nan, dtype=object)
        avg_roll = np.full(n_rows, np.nan)
        new_window = np.full(n_rows, 'no')

    df = pd.DataFrame({
        'X': idx + 1,
        'user_name': np.array(USERS)[(idx // 7) % len(USERS)],
        'raw_timestamp_part_1': 1322489600 + idx,
        'raw_timestamp_part_2': rng.randint(0, 999999, n_rows),
        'cvtd_timestamp': '05/12/2011 11:23',
        'new_window': new_window,
        'num_window': idx // 10 + 1,
        'roll_belt': shift + rng.randn(n_rows),
        'pitch_belt': [f"{v:.4f}" for v in shift * 0.5 + rng.randn(n_rows)],
        'kurtosis_roll_belt': kurtosis,
        'yaw_belt': -shift + rng.randn(n_rows),
        'avg_roll_arm': avg_roll,
        'magnet_forearm_z': shift * 2 + rng.randn(n_rows),
    })

    if training:
        df['classe'] = labels
    else:
        df['problem_id'] = idx + 1

    return df


@pytest.fixture
def raw_train():
    """Raw training frame (200 rows, balanced classes)."""
    return make_raw_frame(200, seed=0, training=True)


@pytest.fixture
def raw_eval():
    """Raw evaluation frame (20 rows, no labels)."""
    return make_raw_frame(20, seed=1, training=False)


@pytest.fixture
def class_data():
    """Separable feature matrix and labels for model tests."""
    rng = np.random.RandomState(42)
    n_samples = 150
    idx = np.arange(n_samples)
    shift = (idx % len(CLASSES)) * 3.0

    X = pd.DataFrame({
        'f1': shift + rng.randn(n_samples),
        'f2': -shift + rng.randn(n_samples),
        'f3': shift * 0.5 + rng.randn(n_samples),
        'f4': rng.randn(n_samples),
    })
    y = pd.Series(np.array(CLASSES)[idx % len(CLASSES)], name='classe')
    return X, y


@pytest.fixture
def small_config():
    """Configuration with small models so tests stay fast."""
    return {
        'random_state': 42,
        'n_jobs': 1,
        'cross_validation': {'n_splits': 3},
        'models': {
            'gbm': {'max_iter': 20, 'max_depth': 2},
            'rf': {'n_estimators': 20},
        },
    }
