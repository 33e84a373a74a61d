#!/usr/bin/env python3
"""
Experiment 01: Build Community Prevalence

Aggregates individual-level field results to community level:
- Seroprevalence (Pgp3), PCR prevalence, clinical TF prevalence
- By survey month and age group (plus all ages pooled)
- Community GPS locations attached by fuzzy name matching

Output: data/processed/community_prevalence.parquet

Usage:
    python experiments/01_build_prevalence.py
    python experiments/01_build_prevalence.py --config config/config_default.yaml
"""
import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from swift_pred.config import load_config, get_project_root, require
from swift_pred.data.loader import build_community_prevalence


def main():
    parser = argparse.ArgumentParser(description="Build community prevalence table")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config_default.yaml",
        help="Path to config file"
    )
    args = parser.parse_args()

    root = get_project_root()
    cfg = load_config(str(root / args.config))

    print("=" * 60)
    print("SWIFT PREDICTION - BUILD COMMUNITY PREVALENCE")
    print("=" * 60)

    prevalence = build_community_prevalence(
        individual_path=root / require(cfg, 'data', 'raw', 'individual'),
        gps_path=root / require(cfg, 'data', 'raw', 'gps'),
        config=cfg,
        output_path=root / require(cfg, 'data', 'processed', 'prevalence'),
    )

    print("\n" + "=" * 60)
    print("PREVALENCE SUMMARY")
    print("=" * 60)
    print(f"Communities: {prevalence['community'].nunique()}")
    print(f"Surveys: {sorted(prevalence['survey'].unique().tolist())}")

    pooled = prevalence[prevalence['age_group'] == 'all']
    summary = pooled.groupby('survey')[['prevalence_sero', 'prevalence_pcr', 'prevalence_clin']].mean()
    print("\nMean community prevalence (all ages):")
    print(summary.round(3).to_string())

    print("\n✓ Prevalence build complete!")
    return prevalence


if __name__ == "__main__":
    main()
