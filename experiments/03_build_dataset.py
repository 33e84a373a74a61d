#!/usr/bin/env python3
"""
Experiment 03: Build Modeling Dataset

Merges community prevalence with geospatial covariates:
- Outcome: prevalence at the target survey (dataset.outcome_*)
- Predictors: field indicators from earlier surveys + covariates

Output: data/processed/modeling_dataset.parquet

Usage:
    python experiments/03_build_dataset.py
    python experiments/03_build_dataset.py --outcome-survey 24 --predictor-surveys 0 12
"""
import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pandas as pd

from swift_pred.config import load_config, get_project_root, require
from swift_pred.features.dataset import build_modeling_dataset, missing_report


def main():
    parser = argparse.ArgumentParser(description="Build modeling dataset")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file"
    )
    parser.add_argument("--outcome-survey", type=int, default=None,
                        help="Override dataset.outcome_survey")
    parser.add_argument("--predictor-surveys", type=int, nargs="+", default=None,
                        help="Override dataset.predictor_surveys")
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))
    ds_cfg = require(cfg, 'dataset')

    prevalence_path = root / require(cfg, 'data', 'processed', 'prevalence')
    covariates_path = root / require(cfg, 'data', 'processed', 'covariates')
    if not prevalence_path.exists():
        raise FileNotFoundError(
            f"Missing {prevalence_path}. Run experiments/01_build_prevalence.py first."
        )

    print("=" * 60)
    print("SWIFT PREDICTION - BUILD MODELING DATASET")
    print("=" * 60)

    prevalence = pd.read_parquet(prevalence_path)
    if covariates_path.exists():
        covariates = pd.read_parquet(covariates_path)
    else:
        print(f"  → No covariates at {covariates_path}; building without geospatial predictors")
        covariates = None

    dataset = build_modeling_dataset(
        prevalence,
        covariates,
        outcome_indicator=ds_cfg.get('outcome_indicator', 'prevalence_pcr'),
        outcome_age_group=ds_cfg.get('outcome_age_group', '0-5y'),
        outcome_survey=args.outcome_survey if args.outcome_survey is not None else ds_cfg.get('outcome_survey', 36),
        predictor_surveys=args.predictor_surveys or ds_cfg.get('predictor_surveys', [0, 12, 24]),
        predictor_age_groups=ds_cfg.get('predictor_age_groups', ['0-5y', '6-9y', 'all']),
        output_path=root / require(cfg, 'data', 'processed', 'dataset'),
    )

    sparse = missing_report(dataset)
    if len(sparse):
        print("\nFeatures with >50% missing:")
        for col, frac in sparse.items():
            print(f"  {col}: {100 * frac:.1f}%")

    print("\n✓ Dataset build complete!")
    return dataset


if __name__ == "__main__":
    main()
