# tests/test_features.py
import numpy as np
import pandas as pd
import pytest

from swift_pred.features.feature_sets import column_survey, select_feature_columns
from swift_pred.features.dataset import (
    age_group_key,
    build_modeling_dataset,
    get_feature_columns,
    missing_report,
)

COLUMNS = [
    'community', 'outcome',
    'feat_sero_0_5y_m0', 'feat_sero_0_5y_m24',
    'feat_pcr_all_m12',
    'feat_clin_6_9y_m0',
    'feat_geo_elevation', 'feat_geo_precip_m12',
]


def test_column_survey():
    assert column_survey('feat_pcr_all_m12') == 12
    assert column_survey('feat_geo_elevation') is None


def test_select_feature_sets():
    assert select_feature_columns(COLUMNS, 'none') == []
    assert select_feature_columns(COLUMNS, 'pcr') == ['feat_pcr_all_m12']
    assert select_feature_columns(COLUMNS, 'geo') == ['feat_geo_elevation', 'feat_geo_precip_m12']
    assert set(select_feature_columns(COLUMNS, 'field')) == {
        'feat_sero_0_5y_m0', 'feat_sero_0_5y_m24', 'feat_pcr_all_m12', 'feat_clin_6_9y_m0'
    }
    assert len(select_feature_columns(COLUMNS, 'all')) == 6
    with pytest.raises(ValueError):
        select_feature_columns(COLUMNS, 'weather')


def test_select_by_survey_keeps_static_columns():
    cols = select_feature_columns(COLUMNS, 'sero_geo', surveys=[0])
    assert cols == ['feat_sero_0_5y_m0', 'feat_geo_elevation']


def test_age_group_key():
    assert age_group_key('0-5y') == '0_5y'
    assert age_group_key('10+y') == '10plusy'
    assert age_group_key('all') == 'all'


def _prevalence():
    rows = []
    for i, community in enumerate(['a', 'b', 'c']):
        for survey in (0, 12, 24, 36):
            for age_group in ('0-5y', 'all'):
                p = 0.1 * (i + 1) + 0.01 * survey / 12
                rows.append({
                    'community': community, 'survey': survey, 'age_group': age_group,
                    'latitude': 10.0 + i, 'longitude': 38.0,
                    'n_sero': 40, 'k_sero': 0, 'prevalence_sero': p / 2,
                    'n_pcr': 40, 'k_pcr': 0, 'prevalence_pcr': p if community != 'c' else 0.0,
                    'n_clin': 40, 'k_clin': 0, 'prevalence_clin': p / 3,
                })
    # Community d has no outcome measurement
    rows.append({
        'community': 'd', 'survey': 0, 'age_group': '0-5y', 'latitude': np.nan, 'longitude': np.nan,
        'n_sero': 10, 'k_sero': 1, 'prevalence_sero': 0.1,
        'n_pcr': 0, 'k_pcr': 0, 'prevalence_pcr': np.nan,
        'n_clin': 10, 'k_clin': 0, 'prevalence_clin': 0.0,
    })
    return pd.DataFrame(rows)


def test_build_modeling_dataset():
    covariates = pd.DataFrame({
        'community': ['a', 'b', 'c'],
        'latitude': [10.0, 11.0, 12.0], 'longitude': [38.0, 38.0, 38.0],
        'geo_elevation': [1800.0, 1900.0, 2000.0],
        'geo_precip_m24': [1.0, 2.0, 3.0],
        'geo_precip_m36': [1.0, 2.0, 3.0],
    })
    df = build_modeling_dataset(
        _prevalence(), covariates,
        outcome_indicator='prevalence_pcr', outcome_age_group='0-5y', outcome_survey=36,
        predictor_surveys=[0, 12], predictor_age_groups=['0-5y', 'all'],
    )

    assert df['community'].tolist() == ['a', 'b', 'c']
    assert df['outcome'].iloc[0] == pytest.approx(0.13)
    assert df['outcome_any'].tolist() == [1, 1, 0]
    assert df['outcome_n'].tolist() == [40, 40, 40]
    assert df.loc[0, 'feat_pcr_0_5y_m0'] == pytest.approx(0.1)
    assert df.loc[1, 'feat_sero_all_m12'] == pytest.approx(0.105)
    assert 'feat_pcr_0_5y_m24' not in df.columns
    assert 'feat_geo_elevation' in df.columns
    assert 'feat_geo_precip_m24' in df.columns
    # Covariates measured at the outcome survey are not predictors
    assert 'feat_geo_precip_m36' not in df.columns
    assert get_feature_columns(df) == [c for c in df.columns if c.startswith('feat_')]


def test_build_modeling_dataset_rejects_late_predictors():
    with pytest.raises(ValueError, match='not earlier'):
        build_modeling_dataset(_prevalence(), None, outcome_survey=24, predictor_surveys=[0, 24])
    with pytest.raises(ValueError, match='outcome_indicator'):
        build_modeling_dataset(_prevalence(), None, outcome_indicator='prevalence_tt')


def test_missing_report():
    df = pd.DataFrame({'feat_a': [1.0, np.nan, np.nan], 'feat_b': [1.0, 2.0, np.nan], 'x': [np.nan] * 3})
    report = missing_report(df, threshold=0.5)
    assert report.index.tolist() == ['feat_a']
