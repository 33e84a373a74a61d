"""
Covariate table orchestration

Builds one row per community with every configured geospatial covariate:
1. Static raster layers summarized over the community buffer
2. Monthly raster layers summarized over the months before each survey
3. Distance to the nearest point feature
"""
import pandas as pd
from pathlib import Path
from typing import Dict, Optional

from swift_pred.config import get_study_settings, survey_month_index
from swift_pred.covariates.raster import extract_raster_covariate, summarize_monthly_covariate
from swift_pred.covariates.distance import nearest_distance_km, load_point_features


def community_points(prevalence: pd.DataFrame) -> pd.DataFrame:
    """Unique located communities from the prevalence table."""
    points = prevalence[['community', 'latitude', 'longitude']].dropna()
    return points.drop_duplicates(subset=['community']).reset_index(drop=True)


def extract_monthly_table(
    points: pd.DataFrame,
    raster_dir: Path,
    pattern: str,
    month_indices,
    radius_m: float,
    stat: str
) -> pd.DataFrame:
    """Community x month_index table for one monthly layer."""
    table = {}
    for m in month_indices:
        path = raster_dir / pattern.format(month_index=m)
        table[m] = extract_raster_covariate(path, points, radius_m=radius_m, stat=stat)
    return pd.DataFrame(table, index=points['community'])


def build_covariate_table(
    points: pd.DataFrame,
    config: dict,
    raster_dir: str,
    points_dir: Optional[str] = None,
    output_path: Optional[str] = None
) -> pd.DataFrame:
    """
    Extract all configured covariates for each community.

    Args:
        points: DataFrame with community, latitude, longitude
        config: Config dict (covariates section, study constants)
        raster_dir: Directory with GeoTIFF layers
        points_dir: Directory with point-feature CSVs
        output_path: If provided, save table to this path (parquet)

    Returns:
        DataFrame with community and geo_* columns
    """
    cov_cfg = config.get('covariates', {}) or {}
    study = get_study_settings(config)
    radius_m = float(cov_cfg.get('buffer_m', 5000))
    stat = cov_cfg.get('stat', 'mean')
    raster_dir = Path(raster_dir)
    points_dir = Path(points_dir) if points_dir is not None else raster_dir

    out = points[['community', 'latitude', 'longitude']].reset_index(drop=True).copy()

    layers: Dict[str, str] = cov_cfg.get('layers', {}) or {}
    if layers:
        print(f"Extracting {len(layers)} static layers (buffer={radius_m:.0f} m, stat={stat})...")
    for name, filename in layers.items():
        out[f'geo_{name}'] = extract_raster_covariate(raster_dir / filename, out, radius_m=radius_m, stat=stat)
        print(f"  ✓ {name}")

    monthly_layers: Dict[str, dict] = cov_cfg.get('monthly_layers', {}) or {}
    for name, layer in monthly_layers.items():
        if 'pattern' not in layer:
            raise ValueError(f"Missing covariates.monthly_layers.{name}.pattern in config.")
        lookback = int(layer.get('lookback', 12))
        how = layer.get('how', 'mean')

        needed = set()
        for survey in study['survey_list']:
            end = survey_month_index(survey, study['baseline_month_index'])
            needed.update(range(end - lookback + 1, end + 1))
        needed = sorted(m for m in needed if 0 <= m < study['n_study_months'])

        print(f"Extracting monthly layer {name} ({len(needed)} months)...")
        monthly = extract_monthly_table(out, raster_dir, layer['pattern'], needed, radius_m, stat)
        for survey in study['survey_list']:
            start = survey_month_index(survey, study['baseline_month_index']) - lookback + 1
            if start < 0:
                print(f"  → {name}_m{survey}: window clipped to {lookback + start} months at study start")
            summary = summarize_monthly_covariate(
                monthly, survey, lookback=lookback, how=how,
                baseline_month_index=study['baseline_month_index']
            )
            out[f'geo_{name}_m{survey}'] = summary.to_numpy()
        print(f"  ✓ {name} ({how} over {lookback} months)")

    point_layers: Dict[str, str] = cov_cfg.get('point_layers', {}) or {}
    for name, filename in point_layers.items():
        features = load_point_features(points_dir / filename)
        out[f'geo_dist_{name}_km'] = nearest_distance_km(out, features)
        print(f"  ✓ distance to nearest {name}")

    geo_cols = [c for c in out.columns if c.startswith('geo_')]
    print(f"  → {len(out)} communities, {len(geo_cols)} covariates")

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        out.to_parquet(output_path, index=False)
        print(f"  → Saved to {output_path}")

    return out
