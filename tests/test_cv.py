# tests/test_cv.py
import numpy as np
import pandas as pd
import pytest

from swift_pred.evaluation.cv import (
    create_random_folds,
    create_spatial_block_folds,
    create_group_folds,
    assign_spatial_blocks,
    fold_ids,
    make_folds,
)


def _assert_partition(folds, n):
    validation = np.concatenate([f.validation_idx for f in folds])
    assert sorted(validation.tolist()) == list(range(n))
    for f in folds:
        assert len(np.intersect1d(f.train_idx, f.validation_idx)) == 0
        assert len(f.train_idx) + len(f.validation_idx) == n


def test_random_folds_partition():
    folds = create_random_folds(23, n_folds=5, seed=1)
    assert len(folds) == 5
    _assert_partition(folds, 23)
    assert [f.fold_name for f in folds] == [f'fold_{i}' for i in range(1, 6)]


def test_random_folds_reproducible():
    a = fold_ids(create_random_folds(30, 5, seed=7), 30)
    b = fold_ids(create_random_folds(30, 5, seed=7), 30)
    assert np.array_equal(a, b)


def test_spatial_blocks_grid():
    # Two points ~1 km apart and one ~50 km away
    lat = np.array([10.0, 10.009, 10.45])
    lon = np.array([38.0, 38.0, 38.0])
    blocks = assign_spatial_blocks(lat, lon, block_size_km=10)
    assert blocks[0] == blocks[1]
    assert blocks[0] != blocks[2]
    with pytest.raises(ValueError):
        assign_spatial_blocks(lat, lon, block_size_km=0)


@pytest.mark.parametrize('selection', ['random', 'systematic'])
def test_spatial_folds_keep_blocks_together(community_dataset, selection):
    df = community_dataset
    folds = create_spatial_block_folds(
        df['latitude'], df['longitude'], block_size_km=20, n_folds=5, seed=3, selection=selection
    )
    _assert_partition(folds, len(df))

    blocks = assign_spatial_blocks(df['latitude'].to_numpy(), df['longitude'].to_numpy(), 20)
    ids = fold_ids(folds, len(df))
    for b in np.unique(blocks):
        assert len(np.unique(ids[blocks == b])) == 1


def test_spatial_folds_need_enough_blocks():
    lat = np.full(10, 10.0) + np.linspace(0, 0.01, 10)
    lon = np.full(10, 38.0)
    with pytest.raises(ValueError, match='occupied blocks'):
        create_spatial_block_folds(lat, lon, block_size_km=50, n_folds=5)
    with pytest.raises(ValueError, match='selection'):
        create_spatial_block_folds(lat, lon, block_size_km=50, n_folds=5, selection='nearest')


def test_spatial_folds_require_coordinates():
    with pytest.raises(ValueError, match='coordinates'):
        assign_spatial_blocks(np.array([10.0, np.nan]), np.array([38.0, 38.1]), 5)


def test_group_folds():
    groups = np.repeat(['w1', 'w2', 'w3', 'w4'], 5)
    folds = create_group_folds(groups, n_folds=4)
    _assert_partition(folds, 20)
    for f in folds:
        assert len(np.unique(groups[f.validation_idx])) == 1
    with pytest.raises(ValueError):
        create_group_folds(groups, n_folds=5)


def test_make_folds_dispatch(community_dataset):
    df = community_dataset.assign(woreda=np.arange(len(community_dataset)) % 6)
    assert len(make_folds(df, scheme='random', n_folds=4)) == 4
    assert len(make_folds(df, scheme='spatial_block', n_folds=4, block_size_km=15)) == 4
    assert len(make_folds(df, scheme='group', n_folds=3, group_col='woreda')) == 3
    with pytest.raises(ValueError):
        make_folds(df, scheme='spatial_block')
    with pytest.raises(ValueError):
        make_folds(df, scheme='leave_one_out')
    with pytest.raises(ValueError):
        create_random_folds(3, n_folds=5)


def test_random_block_selection_balances_fold_sizes(community_dataset):
    df = community_dataset
    lat, lon = df['latitude'].to_numpy(), df['longitude'].to_numpy()
    blocks = assign_spatial_blocks(lat, lon, 25)
    largest_block = np.bincount(blocks).max()

    for seed in range(5):
        folds = create_spatial_block_folds(lat, lon, block_size_km=25, n_folds=4, seed=seed)
        sizes = [len(f.validation_idx) for f in folds]
        # Each block goes to the currently smallest fold
        assert max(sizes) - min(sizes) <= largest_block


def test_systematic_block_selection_is_round_robin(community_dataset):
    df = community_dataset
    lat, lon = df['latitude'].to_numpy(), df['longitude'].to_numpy()
    blocks = assign_spatial_blocks(lat, lon, 25)
    folds = create_spatial_block_folds(lat, lon, block_size_km=25, n_folds=4, selection='systematic')
    assert np.array_equal(fold_ids(folds, len(df)), blocks % 4)
