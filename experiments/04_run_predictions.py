#!/usr/bin/env python3
"""
Experiment 04: Run Prediction Tasks

Runs every outcome x predictor set task with nested spatial CV:
- Outer folds: spatially-blocked (cv.*)
- Inner folds: super learner over the configured learner library
- Continuous outcome: cross-validated R² with influence-function CI
- Binary outcome (any infection): cross-validated AUC with CI

Output:
    results/metrics/prediction_results.json
    results/metrics/prediction_results.csv
    results/predictions/cv_predictions.parquet
    results/predictions/learner_summary.parquet

Usage:
    python experiments/04_run_predictions.py
    python experiments/04_run_predictions.py --feature-sets sero pcr all --n-jobs 4
"""
import sys
import json
import argparse
from pathlib import Path
from datetime import datetime

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pandas as pd
import numpy as np

from swift_pred.config import load_config, get_project_root, require
from swift_pred.evaluation.metrics import print_metrics
from swift_pred.prediction import build_tasks, run_tasks, results_to_dataframe


def convert_to_serializable(obj):
    if isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    return obj


def main():
    parser = argparse.ArgumentParser(description="Run prediction tasks")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file"
    )
    parser.add_argument("--feature-sets", type=str, nargs="+", default=None,
                        help="Override prediction.feature_sets")
    parser.add_argument("--outcomes", type=str, nargs="+", default=None,
                        choices=["outcome", "outcome_any"],
                        help="Override prediction.outcomes")
    parser.add_argument("--n-jobs", type=int, default=None,
                        help="Parallel tasks (default: prediction.n_jobs)")
    args = parser.parse_args()

    root = get_project_root()
    config_path = root / args.config
    cfg = load_config(str(config_path))

    cfg.setdefault('prediction', {})
    if args.feature_sets:
        cfg['prediction']['feature_sets'] = args.feature_sets
    if args.outcomes:
        cfg['prediction']['outcomes'] = args.outcomes
    n_jobs = args.n_jobs if args.n_jobs is not None else cfg['prediction'].get('n_jobs', 1)

    dataset_path = root / require(cfg, 'data', 'processed', 'dataset')
    if not dataset_path.exists():
        raise FileNotFoundError(
            f"Missing {dataset_path}. Run experiments/03_build_dataset.py first."
        )

    print("=" * 60)
    print("SWIFT PREDICTION - RUN PREDICTION TASKS")
    print("=" * 60)

    df = pd.read_parquet(dataset_path)
    print(f"\nLoaded {len(df)} communities from {dataset_path}")

    tasks = build_tasks(cfg)
    print(f"Tasks: {len(tasks)} (n_jobs={n_jobs})")
    print(f"Learners: {list(require(cfg, 'models', 'library').keys())}")

    results = run_tasks(df, tasks, cfg, n_jobs=n_jobs)

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)
    for res in results:
        print_metrics(res['metrics'], title=res['task_id'])

    # Save results
    metrics_dir = root / require(cfg, 'output', 'metrics_dir')
    predictions_dir = root / require(cfg, 'output', 'predictions_dir')
    metrics_dir.mkdir(parents=True, exist_ok=True)
    predictions_dir.mkdir(parents=True, exist_ok=True)

    results_df = results_to_dataframe(results)
    results_df.to_csv(metrics_dir / 'prediction_results.csv', index=False)

    serializable_results = {
        'timestamp': datetime.now().isoformat(),
        'config': str(config_path),
        'n_samples': len(df),
        'tasks': {
            res['task_id']: {
                'task': res['task'],
                'metrics': {k: convert_to_serializable(v) for k, v in res['metrics'].items()},
            }
            for res in results
        },
    }
    results_file = metrics_dir / 'prediction_results.json'
    with open(results_file, 'w') as f:
        json.dump(serializable_results, f, indent=2, default=convert_to_serializable)

    pd.concat([r['predictions'] for r in results], ignore_index=True).to_parquet(
        predictions_dir / 'cv_predictions.parquet', index=False
    )
    pd.concat([r['learner_summary'] for r in results], ignore_index=True).to_parquet(
        predictions_dir / 'learner_summary.parquet', index=False
    )

    print(f"\n✓ Results saved to {results_file}")
    return results


if __name__ == "__main__":
    main()
