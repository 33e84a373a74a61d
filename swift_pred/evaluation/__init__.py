"""Evaluation module - cross-validation folds and metrics."""

from swift_pred.evaluation.cv import (
    CVFold,
    create_random_folds,
    create_spatial_block_folds,
    create_group_folds,
    assign_spatial_blocks,
    fold_ids,
    make_folds,
)

from swift_pred.evaluation.metrics import (
    compute_mse,
    compute_r2,
    r2_influence_ci,
    auc_influence_ci,
    compute_auc,
    compute_classification_metrics,
    compute_brier_score,
    compute_all_metrics,
    print_metrics,
)

__all__ = [
    # CV module
    'CVFold',
    'create_random_folds',
    'create_spatial_block_folds',
    'create_group_folds',
    'assign_spatial_blocks',
    'fold_ids',
    'make_folds',
    # Metrics module
    'compute_mse',
    'compute_r2',
    'r2_influence_ci',
    'auc_influence_ci',
    'compute_auc',
    'compute_classification_metrics',
    'compute_brier_score',
    'compute_all_metrics',
    'print_metrics',
]
