"""
Plotting utilities for SWIFT spatial prediction results.

All functions write a PNG and return the matplotlib Figure.
"""
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt


plt.style.use('seaborn-v0_8-whitegrid')
FIGSIZE = (8, 6)
DPI = 150

FEATURE_SET_LABELS = {
    'none': 'Intercept only',
    'sero': 'Serology',
    'pcr': 'PCR',
    'clin': 'Clinical (TF)',
    'field': 'Serology + PCR + TF',
    'geo': 'Geospatial',
    'sero_geo': 'Serology + geospatial',
    'pcr_geo': 'PCR + geospatial',
    'clin_geo': 'TF + geospatial',
    'all': 'All predictors',
}


def _save(fig, output_path: Optional[str]) -> None:
    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=DPI, bbox_inches='tight')


def plot_r2_by_feature_set(
    results: pd.DataFrame,
    output_path: Optional[str] = None,
    metric: str = 'r2',
    title: Optional[str] = None
):
    """
    Forest plot of cross-validated performance (point + CI) per predictor set.

    Args:
        results: Output of results_to_dataframe()
        output_path: PNG path
        metric: 'r2' or 'auc'
    """
    lo, hi = f'{metric}_ci_lower', f'{metric}_ci_upper'
    needed = {'feature_set', metric, lo, hi}
    missing = needed - set(results.columns)
    if missing:
        raise RuntimeError(f'Results missing required columns: {sorted(missing)}')

    df = results.dropna(subset=[metric]).sort_values(metric).reset_index(drop=True)
    labels = [FEATURE_SET_LABELS.get(fs, fs) for fs in df['feature_set']]
    ypos = np.arange(len(df))

    fig, ax = plt.subplots(figsize=FIGSIZE)
    ax.errorbar(
        df[metric], ypos,
        xerr=[df[metric] - df[lo], df[hi] - df[metric]],
        fmt='o', color='#1f4e79', ecolor='#7f9fbf', capsize=3
    )
    ax.axvline(0.0 if metric == 'r2' else 0.5, color='grey', linestyle='--', linewidth=1)
    ax.set_yticks(ypos)
    ax.set_yticklabels(labels)
    ax.set_xlabel('Cross-validated R²' if metric == 'r2' else 'Cross-validated AUC')
    ax.set_title(title or 'Prediction performance by predictor set')
    fig.tight_layout()

    _save(fig, output_path)
    return fig


def plot_observed_vs_predicted(
    predictions: pd.DataFrame,
    output_path: Optional[str] = None,
    title: Optional[str] = None
):
    """Observed vs out-of-fold predicted prevalence, point size by number tested."""
    fig, ax = plt.subplots(figsize=(6, 6))
    sizes = 10 + 40 * predictions['weight'] / max(predictions['weight'].max(), 1)
    ax.scatter(predictions['pred'], predictions['y'], s=sizes, alpha=0.6,
               c=predictions['fold'], cmap='tab10')
    upper = max(predictions['y'].max(), predictions['pred'].max(), 0.05)
    ax.plot([0, upper], [0, upper], color='grey', linestyle='--', linewidth=1)
    ax.set_xlabel('Predicted prevalence')
    ax.set_ylabel('Observed prevalence')
    ax.set_title(title or 'Observed vs predicted')
    fig.tight_layout()

    _save(fig, output_path)
    return fig


def plot_fold_map(
    df: pd.DataFrame,
    fold_ids: np.ndarray,
    output_path: Optional[str] = None,
    title: Optional[str] = None
):
    """Community locations coloured by CV fold."""
    fig, ax = plt.subplots(figsize=FIGSIZE)
    for v in np.unique(fold_ids):
        mask = fold_ids == v
        ax.scatter(df.loc[mask, 'longitude'], df.loc[mask, 'latitude'],
                   s=18, label=f'Fold {v + 1}')
    ax.set_xlabel('Longitude')
    ax.set_ylabel('Latitude')
    ax.set_aspect('equal', adjustable='datalim')
    ax.legend(loc='best', fontsize=8)
    ax.set_title(title or 'Cross-validation folds')
    fig.tight_layout()

    _save(fig, output_path)
    return fig
