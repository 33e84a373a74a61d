"""Distance-based covariates (nearest water point, road, health post, market)."""
import numpy as np
import pandas as pd
from pathlib import Path
from sklearn.neighbors import BallTree


EARTH_RADIUS_KM = 6371.0088


def _to_radians(df: pd.DataFrame) -> np.ndarray:
    # haversine expects radians [lat, lon]
    return np.radians(df[['latitude', 'longitude']].to_numpy(dtype=float))


def nearest_distance_km(points: pd.DataFrame, features: pd.DataFrame) -> np.ndarray:
    """
    Great-circle distance from each point to the nearest feature.

    Args:
        points: DataFrame with latitude, longitude
        features: DataFrame with latitude, longitude

    Returns:
        Distances in km, one per point
    """
    features = features.dropna(subset=['latitude', 'longitude'])
    if len(features) == 0:
        raise ValueError("No features to measure distance to")

    tree = BallTree(_to_radians(features), metric='haversine')
    dist, _ = tree.query(_to_radians(points), k=1)
    return dist[:, 0] * EARTH_RADIUS_KM


def count_within_km(points: pd.DataFrame, features: pd.DataFrame, radius_km: float) -> np.ndarray:
    """Number of features within `radius_km` of each point."""
    if radius_km < 0:
        raise ValueError(f"radius_km must be non-negative, got {radius_km}")
    features = features.dropna(subset=['latitude', 'longitude'])
    if len(features) == 0:
        return np.zeros(len(points), dtype=int)

    tree = BallTree(_to_radians(features), metric='haversine')
    return tree.query_radius(_to_radians(points), r=radius_km / EARTH_RADIUS_KM, count_only=True)


def load_point_features(path: str) -> pd.DataFrame:
    """Load a CSV of point features with latitude/longitude columns."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Point layer not found: {path}")
    df = pd.read_csv(path)
    df = df.rename(columns={'lat': 'latitude', 'lon': 'longitude', 'lng': 'longitude'})
    missing = {'latitude', 'longitude'} - set(df.columns)
    if missing:
        raise ValueError(f"{path.name} missing required columns: {sorted(missing)}")
    return df
