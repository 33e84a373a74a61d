# tests/test_covariates.py
import numpy as np
import pandas as pd
import pytest
import rasterio
from rasterio.transform import from_origin

from swift_pred.covariates.raster import (
    summarize_buffer,
    extract_raster_covariate,
    summarize_monthly_covariate,
)
from swift_pred.covariates.distance import nearest_distance_km, count_within_km
from swift_pred.covariates.extract import build_covariate_table

# 0.01 degree pixels (~1.1 km) with the top-left corner at (38.0 E, 11.0 N)
TRANSFORM = from_origin(38.0, 11.0, 0.01, 0.01)


def _grid(n=20):
    return np.arange(n * n, dtype=float).reshape(n, n)


def _write_tif(path, values, nodata=None):
    with rasterio.open(
        path, 'w', driver='GTiff', height=values.shape[0], width=values.shape[1],
        count=1, dtype='float32', crs='EPSG:4326', transform=TRANSFORM, nodata=nodata,
    ) as dst:
        dst.write(values.astype('float32'), 1)


def test_small_buffer_uses_containing_pixel():
    values = _grid()
    # Center of pixel row 3, col 5
    lon, lat = 38.0 + 5.5 * 0.01, 11.0 - 3.5 * 0.01
    assert summarize_buffer(values, TRANSFORM, lon, lat, radius_m=10) == values[3, 5]


def test_buffer_mean_is_symmetric():
    values = _grid()
    lon, lat = 38.0 + 10.5 * 0.01, 11.0 - 10.5 * 0.01
    # ~1.1 km pixels, 1.5 km radius keeps the center and its 4 neighbours
    result = summarize_buffer(values, TRANSFORM, lon, lat, radius_m=1500)
    assert result == pytest.approx(values[10, 10])
    assert summarize_buffer(values, TRANSFORM, lon, lat, radius_m=1500, stat='max') == values[11, 10]


def test_buffer_off_raster_and_nodata():
    values = _grid()
    assert np.isnan(summarize_buffer(values, TRANSFORM, 40.0, 11.5, radius_m=1000))

    values[:] = -9999.0
    lon, lat = 38.05, 10.95
    assert np.isnan(summarize_buffer(values, TRANSFORM, lon, lat, radius_m=1000, nodata=-9999.0))


def test_buffer_rejects_bad_arguments():
    with pytest.raises(ValueError, match='stat'):
        summarize_buffer(_grid(), TRANSFORM, 38.05, 10.95, 100, stat='mode')
    with pytest.raises(ValueError, match='radius_m'):
        summarize_buffer(_grid(), TRANSFORM, 38.05, 10.95, -1)


def test_extract_raster_covariate(tmp_path):
    path = tmp_path / 'elev.tif'
    _write_tif(path, np.full((20, 20), 1800.0))
    points = pd.DataFrame({'latitude': [10.9, 12.0], 'longitude': [38.1, 38.1]})
    values = extract_raster_covariate(str(path), points, radius_m=2000)
    assert values[0] == pytest.approx(1800.0)
    assert np.isnan(values[1])

    with pytest.raises(FileNotFoundError):
        extract_raster_covariate(str(tmp_path / 'missing.tif'), points, radius_m=2000)


def test_monthly_summary_window():
    monthly = pd.DataFrame([list(range(48))], columns=range(48), dtype=float)
    # Baseline window covers Jan-Dec 2015 (indices 0-11)
    assert summarize_monthly_covariate(monthly, 0).iloc[0] == pytest.approx(5.5)
    assert summarize_monthly_covariate(monthly, 12).iloc[0] == pytest.approx(17.5)
    assert summarize_monthly_covariate(monthly, 36, lookback=3, how='sum').iloc[0] == 45 + 46 + 47


def test_monthly_summary_missing_values():
    monthly = pd.DataFrame([[np.nan] * 12], columns=range(12))
    assert np.isnan(summarize_monthly_covariate(monthly, 0, how='sum').iloc[0])
    with pytest.raises(ValueError, match='missing month'):
        summarize_monthly_covariate(monthly, 12)
    with pytest.raises(ValueError):
        summarize_monthly_covariate(monthly, 0, how='median')


def test_nearest_distance_km():
    points = pd.DataFrame({'latitude': [0.0, 0.0], 'longitude': [0.0, 2.0]})
    features = pd.DataFrame({'latitude': [0.0, np.nan], 'longitude': [1.0, 5.0]})
    dist = nearest_distance_km(points, features)
    assert dist == pytest.approx([111.195, 111.195], rel=1e-3)
    assert count_within_km(points, features, 120).tolist() == [1, 1]
    assert count_within_km(points, features, 100).tolist() == [0, 0]

    with pytest.raises(ValueError):
        nearest_distance_km(points, features.iloc[0:0])


def test_build_covariate_table(tmp_path):
    _write_tif(tmp_path / 'elev.tif', np.full((20, 20), 1500.0))
    for m in range(48):
        _write_tif(tmp_path / f'precip_{m:02d}.tif', np.full((20, 20), float(m)))
    pd.DataFrame({'latitude': [10.9], 'longitude': [38.0]}).to_csv(tmp_path / 'water.csv', index=False)

    config = {
        'study': {'survey_list': [0, 12]},
        'covariates': {
            'buffer_m': 1000,
            'layers': {'elevation': 'elev.tif'},
            'monthly_layers': {'precip': {'pattern': 'precip_{month_index:02d}.tif', 'lookback': 12}},
            'point_layers': {'water': 'water.csv'},
        },
    }
    points = pd.DataFrame({'community': ['a', 'b'], 'latitude': [10.95, 10.9], 'longitude': [38.05, 38.1]})
    table = build_covariate_table(points, config, str(tmp_path))

    assert table['geo_elevation'].tolist() == [1500.0, 1500.0]
    assert table['geo_precip_m0'].tolist() == pytest.approx([5.5, 5.5])
    assert table['geo_precip_m12'].tolist() == pytest.approx([17.5, 17.5])
    assert (table['geo_dist_water_km'] > 0).all()


def test_monthly_summary_clips_at_study_start():
    monthly = pd.DataFrame([list(range(48))], columns=range(48), dtype=float)
    # Survey 0 with a 24 month lookback only has Jan-Dec 2015 available
    assert summarize_monthly_covariate(monthly, 0, lookback=24).iloc[0] == pytest.approx(5.5)
    assert summarize_monthly_covariate(monthly, 12, lookback=24).iloc[0] == pytest.approx(11.5)
    assert summarize_monthly_covariate(monthly, 0, lookback=24, how='sum').iloc[0] == sum(range(12))


def test_build_covariate_table_long_lookback(tmp_path):
    for m in range(48):
        _write_tif(tmp_path / f'precip_{m:02d}.tif', np.full((20, 20), float(m)))
    config = {
        'covariates': {
            'buffer_m': 1000,
            'monthly_layers': {'precip': {'pattern': 'precip_{month_index:02d}.tif', 'lookback': 24}},
        },
    }
    points = pd.DataFrame({'community': ['a'], 'latitude': [10.95], 'longitude': [38.05]})
    table = build_covariate_table(points, config, str(tmp_path))

    assert table['geo_precip_m0'].iloc[0] == pytest.approx(5.5)
    assert table['geo_precip_m12'].iloc[0] == pytest.approx(11.5)
    assert table['geo_precip_m36'].iloc[0] == pytest.approx(35.5)
