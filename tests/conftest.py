# tests/conftest.py
# Ensure project root is importable as a module during pytest runs
import pathlib
import sys

import numpy as np
import pandas as pd
import pytest
from scipy.special import expit

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def community_dataset():
    """60 communities over roughly 1 x 1 degree with a logistic signal in one predictor."""
    rng = np.random.default_rng(0)
    n = 60
    lat = rng.uniform(10.0, 11.0, n)
    lon = rng.uniform(38.0, 39.0, n)
    x1 = rng.uniform(0.0, 0.5, n)
    x2 = rng.normal(0.0, 1.0, n)
    n_tested = rng.integers(20, 60, n).astype(float)
    p = expit(-2.5 + 6.0 * x1)
    k = rng.binomial(n_tested.astype(int), p)
    outcome = k / n_tested
    return pd.DataFrame({
        'community': [f'c{i:03d}' for i in range(n)],
        'latitude': lat,
        'longitude': lon,
        'outcome': outcome,
        'outcome_n': n_tested,
        'outcome_any': (outcome > 0).astype(int),
        'feat_pcr_0_5y_m0': x1,
        'feat_sero_0_5y_m0': x2,
        'feat_geo_elevation': rng.normal(2000, 200, n),
    })


@pytest.fixture
def individual_data():
    """Individual-level results for two communities over two surveys."""
    rows = []
    for community in ('Alpha', 'Beta'):
        for survey in (0, 12):
            for age in (2, 4, 7, 8, 12, 30):
                rows.append({
                    'community': community,
                    'survey': survey,
                    'age_years': age,
                    'pcr': 1 if (community == 'Alpha' and age < 6) else 0,
                    'pgp3_mfi': 2000.0 if age >= 10 else 50.0,
                    'ct694_mfi': 400.0,
                    'tf': 1 if age == 2 else 0,
                })
    return pd.DataFrame(rows)
