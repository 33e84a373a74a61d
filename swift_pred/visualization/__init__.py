"""Visualization module - result figures."""

from swift_pred.visualization.plots import (
    plot_r2_by_feature_set,
    plot_observed_vs_predicted,
    plot_fold_map,
)

__all__ = [
    'plot_r2_by_feature_set',
    'plot_observed_vs_predicted',
    'plot_fold_map',
]
