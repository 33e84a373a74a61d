"""
Data Loader for SWIFT spatial prediction

This module handles:
1. Loading individual-level field results (serology, PCR, clinical grading)
2. Classifying serostatus from MFI-BG values
3. Aggregating to community-level prevalence by survey and age group
4. Attaching community GPS locations (fuzzy name matching)
"""
import pandas as pd
import numpy as np
import warnings
from pathlib import Path
from typing import Dict, List, Optional, Sequence
from rapidfuzz import fuzz, process

from swift_pred.config import get_study_settings


# indicator -> individual-level result column
INDICATOR_COLUMNS = {
    'sero': 'sero_pos',
    'pcr': 'pcr',
    'clin': 'tf',
}

ALL_AGES = "all"


def assign_age_group(age_years: pd.Series) -> pd.Series:
    """
    Map age in years to study age groups.

    0-5 years -> "0-5y", 6-9 years -> "6-9y", 10 and older -> "10+y".
    Missing or negative ages give NA.
    """
    age = pd.to_numeric(age_years, errors='coerce')
    groups = pd.Series(pd.NA, index=age.index, dtype='object')
    groups[(age >= 0) & (age < 6)] = "0-5y"
    groups[(age >= 6) & (age < 10)] = "6-9y"
    groups[age >= 10] = "10+y"
    return groups


def classify_serostatus(
    df: pd.DataFrame,
    pgp3_cutoff: float,
    ct694_cutoff: float
) -> pd.DataFrame:
    """
    Add antibody positivity columns.

    Args:
        df: Individual-level DataFrame with pgp3_mfi, ct694_mfi
        pgp3_cutoff: Pgp3 MFI-BG threshold (positive if >= cutoff)
        ct694_cutoff: Ct694 MFI-BG threshold (positive if >= cutoff)

    Returns:
        DataFrame with pgp3_pos, ct694_pos and sero_pos (= pgp3_pos).
        Missing MFI values stay missing.
    """
    df = df.copy()
    for antigen, cutoff in (('pgp3', pgp3_cutoff), ('ct694', ct694_cutoff)):
        col = f'{antigen}_mfi'
        if col in df.columns:
            mfi = pd.to_numeric(df[col], errors='coerce')
        else:
            mfi = pd.Series(np.nan, index=df.index)
        df[f'{antigen}_pos'] = np.where(mfi.isna(), np.nan, (mfi >= cutoff).astype(float))
    df['sero_pos'] = df['pgp3_pos']
    return df


def load_individual_data(
    path: str,
    pgp3_cutoff: float,
    ct694_cutoff: float
) -> pd.DataFrame:
    """
    Load individual-level field results.

    Args:
        path: CSV with community, survey, age_years, pcr, pgp3_mfi, ct694_mfi, tf
        pgp3_cutoff: Pgp3 seropositivity cutoff
        ct694_cutoff: Ct694 seropositivity cutoff

    Returns:
        Cleaned DataFrame with age_group and serostatus columns
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Individual data not found: {path}")

    df = pd.read_csv(path)
    required = {'community', 'survey', 'age_years'}
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"Individual data missing required columns: {sorted(missing)}")

    df['community'] = df['community'].astype(str).str.strip()
    df['survey'] = pd.to_numeric(df['survey'], errors='coerce')
    df = df.dropna(subset=['survey'])
    df['survey'] = df['survey'].astype(int)

    for col in ('pcr', 'tf'):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors='coerce')
        else:
            df[col] = np.nan

    df['age_group'] = assign_age_group(df['age_years'])
    df = classify_serostatus(df, pgp3_cutoff=pgp3_cutoff, ct694_cutoff=ct694_cutoff)

    return df.sort_values(['community', 'survey']).reset_index(drop=True)


def _summarize_group(group: pd.DataFrame) -> Dict[str, float]:
    row = {}
    for ind, col in INDICATOR_COLUMNS.items():
        values = group[col].dropna()
        n = int(len(values))
        k = int(values.sum())
        row[f'n_{ind}'] = n
        row[f'k_{ind}'] = k
        row[f'prevalence_{ind}'] = k / n if n > 0 else np.nan
    return row


def compute_community_prevalence(
    df: pd.DataFrame,
    age_groups: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """
    Aggregate individual results to community prevalence.

    One row per community x survey x age group, plus a pooled "all" group.
    For each indicator: n_<ind> tested, k_<ind> positive and
    prevalence_<ind> = k / n (NA when nobody was tested).

    Args:
        df: Output of load_individual_data()
        age_groups: Age groups to report (defaults to study age groups)

    Returns:
        Long-format community prevalence DataFrame
    """
    if age_groups is None:
        age_groups = get_study_settings()['age_group_list']

    rows: List[Dict] = []
    for (community, survey), group in df.groupby(['community', 'survey'], sort=True):
        for age_group in list(age_groups) + [ALL_AGES]:
            if age_group == ALL_AGES:
                sub = group
            else:
                sub = group[group['age_group'] == age_group]
            row = {'community': community, 'survey': int(survey), 'age_group': age_group}
            row.update(_summarize_group(sub))
            rows.append(row)

    return pd.DataFrame(rows)


def _normalize_name(name: str) -> str:
    return " ".join(str(name).split()).casefold()


def match_community_names(
    names: Sequence[str],
    reference: Sequence[str],
    score_threshold: int
) -> Dict[str, Optional[str]]:
    """
    Match field-data community names onto GPS-table names.

    Exact matches (ignoring case and whitespace) are taken first, the rest are
    fuzzy matched with rapidfuzz.

    Args:
        names: Community names from the field data
        reference: Community names from the GPS table
        score_threshold: Minimum fuzz.ratio score (config-driven)

    Returns:
        Mapping name -> matched reference name (or None)
    """
    if score_threshold is None:
        raise ValueError("score_threshold must be provided via config or caller")

    ref_list = [str(r) for r in reference]
    by_normalized = {_normalize_name(r): r for r in ref_list}
    normalized_refs = list(by_normalized.keys())

    matches: Dict[str, Optional[str]] = {}
    for name in names:
        key = _normalize_name(name)
        if key in by_normalized:
            matches[name] = by_normalized[key]
            continue
        match = process.extractOne(key, normalized_refs, scorer=fuzz.ratio) if normalized_refs else None
        if match and match[1] >= score_threshold:
            matches[name] = by_normalized[match[0]]
        else:
            matches[name] = None

    return matches


def load_community_locations(path: str) -> pd.DataFrame:
    """
    Load community GPS table.

    Returns:
        DataFrame with community, latitude, longitude (one row per community)
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Community GPS file not found: {path}")

    df = pd.read_csv(path)
    df = df.rename(columns={'lat': 'latitude', 'lon': 'longitude', 'lng': 'longitude'})
    missing = {'community', 'latitude', 'longitude'} - set(df.columns)
    if missing:
        raise ValueError(f"GPS file missing required columns: {sorted(missing)}")

    df['community'] = df['community'].astype(str).str.strip()
    df['latitude'] = pd.to_numeric(df['latitude'], errors='coerce')
    df['longitude'] = pd.to_numeric(df['longitude'], errors='coerce')
    df = df.dropna(subset=['latitude', 'longitude'])

    return df[['community', 'latitude', 'longitude']].drop_duplicates(subset=['community'])


def attach_locations(
    prevalence: pd.DataFrame,
    locations: pd.DataFrame,
    score_threshold: int
) -> pd.DataFrame:
    """
    Add latitude/longitude to community prevalence rows.

    Communities without a GPS match keep NaN coordinates and are reported
    with a warning.
    """
    names = prevalence['community'].drop_duplicates().tolist()
    mapping = match_community_names(names, locations['community'].tolist(), score_threshold)

    unmatched = [n for n, m in mapping.items() if m is None]
    if unmatched:
        warnings.warn(f"{len(unmatched)} communities without GPS match: {unmatched[:10]}")

    out = prevalence.copy()
    out['gps_community'] = out['community'].map(mapping)
    out = out.merge(
        locations.rename(columns={'community': 'gps_community'}),
        on='gps_community',
        how='left'
    )
    return out


def build_community_prevalence(
    individual_path: str,
    gps_path: str,
    config: Optional[dict] = None,
    output_path: Optional[str] = None
) -> pd.DataFrame:
    """
    Build community prevalence table from raw field data.

    Args:
        individual_path: Path to individual-level CSV
        gps_path: Path to community GPS CSV
        config: Config dict (study constants, processing.score_threshold)
        output_path: If provided, save table to this path (parquet)

    Returns:
        Community x survey x age group prevalence with coordinates
    """
    config = config or {}
    study = get_study_settings(config)
    score_threshold = config.get('processing', {}).get('score_threshold')
    if score_threshold is None:
        raise ValueError("Missing processing.score_threshold in config.")

    print("Loading individual-level field data...")
    individual = load_individual_data(
        individual_path,
        pgp3_cutoff=study['pgp3_cutoff'],
        ct694_cutoff=study['ct694_cutoff'],
    )
    print(f"  → {len(individual)} individuals, {individual['community'].nunique()} communities")

    print("Computing community prevalence...")
    prevalence = compute_community_prevalence(individual, age_groups=study['age_group_list'])
    print(f"  → {len(prevalence)} community-survey-age rows")

    print("Attaching community locations...")
    locations = load_community_locations(gps_path)
    prevalence = attach_locations(prevalence, locations, score_threshold=int(score_threshold))

    matched = prevalence['latitude'].notna().sum()
    total = len(prevalence)
    print(f"  → {matched}/{total} rows located ({100*matched/max(total, 1):.1f}%)")

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        prevalence.to_parquet(output_path, index=False)
        print(f"  → Saved to {output_path}")

    return prevalence
