# tests/test_config.py
import pytest
import yaml

from swift_pred.config import (
    load_config,
    require,
    get_study_settings,
    monthly_windows,
    survey_month_index,
    SURVEY_LIST,
    PGP3_CUTOFF,
)


def test_default_config_loads():
    cfg = load_config()
    assert cfg['cv']['scheme'] == 'spatial_block'
    assert 'library' in cfg['models']


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / 'nope.yaml'))


def test_empty_config_file(tmp_path):
    path = tmp_path / 'empty.yaml'
    path.write_text('')
    assert load_config(str(path)) == {}


def test_require_reports_dotted_key():
    cfg = {'data': {'raw': {'gps': 'x.csv'}}}
    assert require(cfg, 'data', 'raw', 'gps') == 'x.csv'
    with pytest.raises(ValueError, match="Missing data.raw.individual in config."):
        require(cfg, 'data', 'raw', 'individual')


def test_study_settings_defaults_and_overrides(tmp_path):
    assert get_study_settings()['survey_list'] == SURVEY_LIST
    assert get_study_settings()['pgp3_cutoff'] == PGP3_CUTOFF

    path = tmp_path / 'cfg.yaml'
    path.write_text(yaml.safe_dump({'study': {'pgp3_cutoff': 900, 'survey_list': [0, 12]}}))
    study = get_study_settings(load_config(str(path)))
    assert study['pgp3_cutoff'] == 900.0
    assert study['survey_list'] == [0, 12]


def test_monthly_windows():
    windows = monthly_windows()
    assert len(windows) == 48
    assert windows.iloc[0]['start_date'] == '2015-01-01'
    assert windows.iloc[1]['end_date'] == '2015-02-28'
    assert windows.iloc[-1]['end_date'] == '2018-12-31'
    with pytest.raises(ValueError):
        monthly_windows(n_months=0)


def test_survey_month_index():
    # Baseline survey happened in December 2015
    windows = monthly_windows()
    assert windows.iloc[survey_month_index(0)]['start_date'] == '2015-12-01'
    assert survey_month_index(36) == 47
