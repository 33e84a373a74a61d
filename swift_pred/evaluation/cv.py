"""
Cross-Validation Folds for SWIFT spatial prediction

Implements three fold schemes:
- Random V-fold
- Spatially-blocked folds: communities are binned into square blocks and
  whole blocks are held out together, so validation communities are not
  immediate neighbours of training communities
- Group folds (e.g. by administrative unit)

All schemes return folds whose validation sets partition the observations.
"""
import pandas as pd
import numpy as np
from typing import List, Optional, Sequence
from dataclasses import dataclass
from sklearn.model_selection import GroupKFold, KFold


KM_PER_DEG_LAT = 110.574
KM_PER_DEG_LON_EQUATOR = 111.320


@dataclass
class CVFold:
    """Represents a single CV fold."""
    fold_name: str
    train_idx: np.ndarray
    validation_idx: np.ndarray


def _folds_from_ids(ids: np.ndarray, n_folds: int) -> List[CVFold]:
    all_idx = np.arange(len(ids))
    folds = []
    for v in range(n_folds):
        validation_idx = all_idx[ids == v]
        if len(validation_idx) == 0:
            continue
        folds.append(CVFold(
            fold_name=f"fold_{v + 1}",
            train_idx=all_idx[ids != v],
            validation_idx=validation_idx,
        ))
    return folds


def _check_n_folds(n: int, n_folds: int) -> None:
    if n_folds < 2:
        raise ValueError(f"n_folds must be >= 2, got {n_folds}")
    if n < n_folds:
        raise ValueError(f"Cannot make {n_folds} folds from {n} observations")


def create_random_folds(n: int, n_folds: int = 5, seed: Optional[int] = 42) -> List[CVFold]:
    """
    Create random V-fold splits.

    Args:
        n: Number of observations
        n_folds: Number of folds
        seed: Random seed

    Returns:
        List of CVFold objects
    """
    _check_n_folds(n, n_folds)
    ids = np.empty(n, dtype=int)
    splitter = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
    for v, (_, validation_idx) in enumerate(splitter.split(np.zeros(n))):
        ids[validation_idx] = v
    return _folds_from_ids(ids, n_folds)


def project_km(lat: np.ndarray, lon: np.ndarray):
    """Equirectangular projection (km) about the centroid of the points."""
    lat = np.asarray(lat, dtype=float)
    lon = np.asarray(lon, dtype=float)
    lat0 = np.nanmean(lat)
    lon0 = np.nanmean(lon)
    x = (lon - lon0) * KM_PER_DEG_LON_EQUATOR * np.cos(np.radians(lat0))
    y = (lat - lat0) * KM_PER_DEG_LAT
    return x, y


def assign_spatial_blocks(lat: np.ndarray, lon: np.ndarray, block_size_km: float) -> np.ndarray:
    """
    Block id for every point on a square grid of `block_size_km` cells.

    Block ids are numbered in grid order (south to north, west to east).
    """
    if block_size_km <= 0:
        raise ValueError(f"block_size_km must be positive, got {block_size_km}")
    x, y = project_km(lat, lon)
    if np.isnan(x).any() or np.isnan(y).any():
        raise ValueError("Spatial folds require coordinates for every observation")

    col = np.floor((x - x.min()) / block_size_km).astype(int)
    row = np.floor((y - y.min()) / block_size_km).astype(int)
    cells = row * (col.max() + 1) + col
    _, codes = np.unique(cells, return_inverse=True)
    return codes.ravel()


def create_spatial_block_folds(
    lat: Sequence[float],
    lon: Sequence[float],
    block_size_km: float,
    n_folds: int = 5,
    seed: Optional[int] = 42,
    selection: str = "random"
) -> List[CVFold]:
    """
    Create spatially-blocked CV splits.

    Every block is assigned wholly to one fold.
    - random: blocks are shuffled, then each is given to the fold that
      currently holds the fewest observations (balanced fold sizes)
    - systematic: blocks are dealt round-robin in grid order

    Args:
        lat, lon: Coordinates in degrees
        block_size_km: Side length of square blocks
        n_folds: Number of folds
        seed: Random seed (random selection only)
        selection: 'random' or 'systematic'

    Returns:
        List of CVFold objects
    """
    if selection not in ("random", "systematic"):
        raise ValueError(f"Unknown selection: {selection}")

    blocks = assign_spatial_blocks(np.asarray(lat), np.asarray(lon), block_size_km)
    n = len(blocks)
    _check_n_folds(n, n_folds)

    block_ids, block_sizes = np.unique(blocks, return_counts=True)
    if len(block_ids) < n_folds:
        raise ValueError(
            f"Only {len(block_ids)} occupied blocks for {n_folds} folds; "
            f"reduce block_size_km ({block_size_km}) or n_folds"
        )

    block_fold = {}
    if selection == "systematic":
        for i, b in enumerate(block_ids):
            block_fold[b] = i % n_folds
    else:
        rng = np.random.default_rng(seed)
        order = rng.permutation(len(block_ids))
        fold_counts = np.zeros(n_folds, dtype=int)
        for i in order:
            target = int(np.argmin(fold_counts))
            block_fold[block_ids[i]] = target
            fold_counts[target] += block_sizes[i]

    ids = np.array([block_fold[b] for b in blocks])
    return _folds_from_ids(ids, n_folds)


def create_group_folds(groups: Sequence, n_folds: int = 5) -> List[CVFold]:
    """
    Create folds that keep each group together (scikit-learn GroupKFold).
    """
    groups = np.asarray(groups)
    n = len(groups)
    _check_n_folds(n, n_folds)
    n_groups = len(np.unique(groups))
    if n_groups < n_folds:
        raise ValueError(f"Only {n_groups} groups for {n_folds} folds")

    ids = np.empty(n, dtype=int)
    for v, (_, validation_idx) in enumerate(GroupKFold(n_splits=n_folds).split(np.zeros(n), groups=groups)):
        ids[validation_idx] = v
    return _folds_from_ids(ids, n_folds)


def fold_ids(folds: List[CVFold], n: int) -> np.ndarray:
    """Map each observation to the index of the fold that validates it."""
    ids = np.full(n, -1, dtype=int)
    for v, fold in enumerate(folds):
        ids[fold.validation_idx] = v
    if (ids < 0).any():
        raise ValueError("Folds do not cover every observation")
    return ids


def make_folds(
    df: pd.DataFrame,
    scheme: str = "spatial_block",
    n_folds: int = 5,
    seed: Optional[int] = 42,
    block_size_km: Optional[float] = None,
    selection: str = "random",
    group_col: Optional[str] = None
) -> List[CVFold]:
    """
    Build folds for a dataset according to a named scheme.

    Args:
        df: Dataset (latitude/longitude needed for spatial_block)
        scheme: 'random', 'spatial_block' or 'group'
        n_folds: Number of folds
        seed: Random seed
        block_size_km: Block size for spatial_block
        selection: Block selection for spatial_block
        group_col: Grouping column for group

    Returns:
        List of CVFold objects
    """
    if scheme == "random":
        return create_random_folds(len(df), n_folds=n_folds, seed=seed)
    if scheme == "spatial_block":
        if block_size_km is None:
            raise ValueError("block_size_km must be provided for spatial_block folds")
        return create_spatial_block_folds(
            df['latitude'].to_numpy(), df['longitude'].to_numpy(),
            block_size_km=block_size_km, n_folds=n_folds, seed=seed, selection=selection
        )
    if scheme == "group":
        if group_col is None:
            raise ValueError("group_col must be provided for group folds")
        return create_group_folds(df[group_col].to_numpy(), n_folds=n_folds)
    raise ValueError(f"Unknown fold scheme: {scheme}")
