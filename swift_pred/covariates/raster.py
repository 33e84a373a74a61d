"""
Raster covariate extraction for SWIFT spatial prediction

Summarizes raster values over a circular buffer around each community:
- Static layers (elevation, population density, night lights, ...)
- Monthly layers (precipitation, temperature, NDVI) aggregated over the
  months preceding a survey

Rasters are expected in EPSG:4326 (north-up, no rotation). Distances use an
equirectangular approximation, which is accurate at buffer scale.
"""
import numpy as np
import pandas as pd
import rasterio
from pathlib import Path
from typing import Optional, Tuple

from swift_pred.config import SWIFT_CRS, survey_month_index, BASELINE_MONTH_INDEX


METERS_PER_DEG_LAT = 110574.0
METERS_PER_DEG_LON_EQUATOR = 111320.0

STATS = {
    'mean': np.nanmean,
    'median': np.nanmedian,
    'min': np.nanmin,
    'max': np.nanmax,
    'sum': np.nansum,
    'std': np.nanstd,
}


def _check_north_up(transform) -> None:
    if transform.b != 0 or transform.d != 0:
        raise ValueError("Rotated rasters are not supported")


def pixel_centers(transform, shape: Tuple[int, int], row_off: int = 0, col_off: int = 0):
    """
    Longitude/latitude of pixel centers.

    Args:
        transform: Affine transform of the raster
        shape: (n_rows, n_cols) of the block
        row_off, col_off: Offset of the block within the raster

    Returns:
        Tuple of 2D arrays (lon, lat)
    """
    _check_north_up(transform)
    rows = np.arange(row_off, row_off + shape[0]) + 0.5
    cols = np.arange(col_off, col_off + shape[1]) + 0.5
    lon = transform.c + transform.a * cols
    lat = transform.f + transform.e * rows
    return np.meshgrid(lon, lat)


def _as_float(values: np.ndarray, nodata: Optional[float]) -> np.ndarray:
    if np.ma.isMaskedArray(values):
        arr = np.ma.filled(values.astype(float), np.nan)
    else:
        arr = np.asarray(values, dtype=float).copy()
    if nodata is not None and not np.isnan(nodata):
        arr[arr == nodata] = np.nan
    return arr


def summarize_buffer(
    values: np.ndarray,
    transform,
    lon: float,
    lat: float,
    radius_m: float,
    nodata: Optional[float] = None,
    stat: str = 'mean'
) -> float:
    """
    Summarize raster values within a circular buffer around a point.

    Pixels whose centers lie within `radius_m` are included. When the buffer
    is smaller than a pixel, the pixel containing the point is used.

    Args:
        values: 2D raster band (may be a masked array)
        transform: Affine transform of the band
        lon, lat: Point coordinates (degrees)
        radius_m: Buffer radius in metres
        nodata: Nodata value to ignore
        stat: One of mean, median, min, max, sum, std

    Returns:
        Summary value, NaN when the point is off-raster or the buffer has no data
    """
    if stat not in STATS:
        raise ValueError(f"Unknown stat: {stat}")
    if radius_m < 0:
        raise ValueError(f"radius_m must be non-negative, got {radius_m}")
    _check_north_up(transform)

    arr = _as_float(values, nodata)
    n_rows, n_cols = arr.shape

    # Pixel containing the point
    col = int(np.floor((lon - transform.c) / transform.a))
    row = int(np.floor((lat - transform.f) / transform.e))
    if not (0 <= row < n_rows and 0 <= col < n_cols):
        return np.nan

    m_per_deg_lon = METERS_PER_DEG_LON_EQUATOR * np.cos(np.radians(lat))
    d_rows = int(np.ceil(radius_m / METERS_PER_DEG_LAT / abs(transform.e))) + 1
    d_cols = int(np.ceil(radius_m / max(m_per_deg_lon, 1e-9) / abs(transform.a))) + 1

    r0, r1 = max(row - d_rows, 0), min(row + d_rows + 1, n_rows)
    c0, c1 = max(col - d_cols, 0), min(col + d_cols + 1, n_cols)
    block = arr[r0:r1, c0:c1]

    lon_c, lat_c = pixel_centers(transform, block.shape, row_off=r0, col_off=c0)
    dx = (lon_c - lon) * m_per_deg_lon
    dy = (lat_c - lat) * METERS_PER_DEG_LAT
    inside = np.hypot(dx, dy) <= radius_m

    if inside.any():
        selected = block[inside]
    else:
        selected = arr[row:row + 1, col]

    selected = selected[~np.isnan(selected)]
    if selected.size == 0:
        return np.nan
    return float(STATS[stat](selected))


def extract_raster_covariate(
    path: str,
    points: pd.DataFrame,
    radius_m: float,
    stat: str = 'mean'
) -> np.ndarray:
    """
    Summarize a GeoTIFF around every point.

    Args:
        path: Path to single-band GeoTIFF
        points: DataFrame with latitude, longitude
        radius_m: Buffer radius in metres
        stat: Summary statistic

    Returns:
        Array with one value per point
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Raster not found: {path}")

    with rasterio.open(path) as src:
        if src.crs is not None and src.crs.to_epsg() != SWIFT_CRS:
            raise ValueError(f"Raster {path.name} must be EPSG:{SWIFT_CRS}, got {src.crs}")
        band = src.read(1, masked=True)
        transform = src.transform
        nodata = src.nodata

    return np.array([
        summarize_buffer(band, transform, lon, lat, radius_m, nodata=nodata, stat=stat)
        for lon, lat in zip(points['longitude'].to_numpy(), points['latitude'].to_numpy())
    ])


def summarize_monthly_covariate(
    monthly: pd.DataFrame,
    survey: int,
    lookback: int = 12,
    how: str = 'mean',
    baseline_month_index: int = BASELINE_MONTH_INDEX
) -> pd.Series:
    """
    Aggregate monthly covariate values over the months before a survey.

    The window covers the `lookback` calendar months ending with the survey
    month, i.e. month indices (m - lookback, m]. Windows reaching back before
    the first study month (index 0) are clipped to the months available.

    Args:
        monthly: community x month_index table (columns are month indices)
        survey: Study survey month (0, 12, 24, 36)
        lookback: Number of months to aggregate
        how: 'mean' or 'sum'

    Returns:
        Series indexed like `monthly`
    """
    if how not in ('mean', 'sum'):
        raise ValueError(f"Unknown aggregation: {how}")
    if lookback < 1:
        raise ValueError(f"lookback must be >= 1, got {lookback}")

    end = survey_month_index(survey, baseline_month_index)
    months = list(range(max(end - lookback + 1, 0), end + 1))
    missing = [m for m in months if m not in monthly.columns]
    if missing:
        raise ValueError(f"Monthly table missing month indices: {missing}")

    window = monthly[months]
    if how == 'sum':
        # All-missing rows stay missing
        return window.sum(axis=1, min_count=1)
    return window.mean(axis=1)
