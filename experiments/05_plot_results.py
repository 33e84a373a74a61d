#!/usr/bin/env python3
"""
Experiment 05: Plot Prediction Results

Figures from the artifacts of Experiment 04:
- R² (continuous outcome) and AUC (any infection) by predictor set
- Observed vs predicted prevalence for the best predictor set
- Map of communities coloured by outer CV fold

Output: results/figures/*.png

Usage:
    python experiments/05_plot_results.py
"""
import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pandas as pd
import matplotlib.pyplot as plt

from swift_pred.config import load_config, get_project_root, require
from swift_pred.visualization.plots import (
    plot_r2_by_feature_set,
    plot_observed_vs_predicted,
    plot_fold_map,
)


def _require_file(path: Path) -> Path:
    if not path.exists():
        raise FileNotFoundError(f"Missing {path}. Run experiments/04_run_predictions.py first.")
    return path


def main():
    parser = argparse.ArgumentParser(description="Plot prediction results")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file"
    )
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))

    metrics_dir = root / require(cfg, 'output', 'metrics_dir')
    predictions_dir = root / require(cfg, 'output', 'predictions_dir')
    figures_dir = root / require(cfg, 'output', 'figures_dir')
    figures_dir.mkdir(parents=True, exist_ok=True)

    results = pd.read_csv(_require_file(metrics_dir / 'prediction_results.csv'))
    predictions = pd.read_parquet(_require_file(predictions_dir / 'cv_predictions.parquet'))

    print("=" * 60)
    print("SWIFT PREDICTION - PLOT RESULTS")
    print("=" * 60)

    continuous = results[results['outcome'] == 'outcome']
    if len(continuous) and 'r2' in continuous.columns:
        fig = plot_r2_by_feature_set(continuous, figures_dir / 'r2_by_feature_set.png', metric='r2')
        plt.close(fig)
        print("  ✓ r2_by_feature_set.png")

        best = continuous.sort_values('r2', ascending=False).iloc[0]
        best_preds = predictions[predictions['task_id'] == best['task_id']]
        fig = plot_observed_vs_predicted(
            best_preds, figures_dir / 'observed_vs_predicted.png',
            title=f"Observed vs predicted ({best['feature_set']})"
        )
        plt.close(fig)
        print("  ✓ observed_vs_predicted.png")

    binary = results[results['outcome'] == 'outcome_any']
    if len(binary) and 'auc' in binary.columns:
        fig = plot_r2_by_feature_set(binary, figures_dir / 'auc_by_feature_set.png', metric='auc',
                                     title='Any infection: AUC by predictor set')
        plt.close(fig)
        print("  ✓ auc_by_feature_set.png")

    dataset_path = root / require(cfg, 'data', 'processed', 'dataset')
    if dataset_path.exists() and len(predictions):
        dataset = pd.read_parquet(dataset_path)
        first = predictions[predictions['task_id'] == predictions['task_id'].iloc[0]]
        folds = dataset[['community', 'latitude', 'longitude']].merge(
            first[['community', 'fold']], on='community', how='inner'
        )
        fig = plot_fold_map(folds, folds['fold'].to_numpy(), figures_dir / 'cv_fold_map.png')
        plt.close(fig)
        print("  ✓ cv_fold_map.png")

    print(f"\n✓ Figures saved to {figures_dir}")


if __name__ == "__main__":
    main()
