#!/usr/bin/env python3
"""
Experiment 02: Extract Geospatial Covariates

Summarizes raster layers over a buffer around every located community:
- Static layers (elevation, population density, night lights, ...)
- Monthly layers aggregated over the 12 months before each survey
- Distance to nearest water point, road, health post, market

Output: data/processed/community_covariates.parquet

Usage:
    python experiments/02_extract_covariates.py
    python experiments/02_extract_covariates.py --config config/config_default.yaml
"""
import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pandas as pd

from swift_pred.config import load_config, get_project_root, require
from swift_pred.covariates.extract import community_points, build_covariate_table


def main():
    parser = argparse.ArgumentParser(description="Extract geospatial covariates")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file"
    )
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))

    prevalence_path = root / require(cfg, 'data', 'processed', 'prevalence')
    if not prevalence_path.exists():
        raise FileNotFoundError(
            f"Missing {prevalence_path}. Run experiments/01_build_prevalence.py first."
        )

    print("=" * 60)
    print("SWIFT PREDICTION - EXTRACT COVARIATES")
    print("=" * 60)

    prevalence = pd.read_parquet(prevalence_path)
    points = community_points(prevalence)
    print(f"  → {len(points)} located communities")

    raster_dir = root / require(cfg, 'data', 'raw', 'raster_dir')
    points_dir = cfg['data']['raw'].get('points_dir')
    covariates = build_covariate_table(
        points,
        config=cfg,
        raster_dir=raster_dir,
        points_dir=root / points_dir if points_dir else None,
        output_path=root / require(cfg, 'data', 'processed', 'covariates'),
    )

    print("\nMissing covariate values:")
    for col in covariates.columns:
        missing = covariates[col].isna().sum()
        if missing > 0:
            print(f"  {col}: {missing} ({100 * missing / len(covariates):.1f}%)")

    print("\n✓ Covariate extraction complete!")
    return covariates


if __name__ == "__main__":
    main()
