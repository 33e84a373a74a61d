"""
Modeling dataset assembly for SWIFT spatial prediction

Merges community prevalence with geospatial covariates into one row per
community: the outcome measured at a target survey plus predictors from
strictly earlier surveys.
"""
import pandas as pd
from pathlib import Path
from typing import Optional, Sequence

from swift_pred.features.feature_sets import column_survey


INDICATORS = ('sero', 'pcr', 'clin')


def age_group_key(age_group: str) -> str:
    """Column-safe age group label ("10+y" -> "10plusy", "0-5y" -> "0_5y")."""
    return str(age_group).replace('+', 'plus').replace('-', '_')


def _outcome_rows(
    prevalence: pd.DataFrame,
    indicator: str,
    age_group: str,
    survey: int
) -> pd.DataFrame:
    rows = prevalence[
        (prevalence['survey'] == survey) & (prevalence['age_group'] == age_group)
    ]
    out = pd.DataFrame({
        'community': rows['community'].to_numpy(),
        'outcome': rows[f'prevalence_{indicator}'].to_numpy(dtype=float),
        'outcome_n': rows[f'n_{indicator}'].to_numpy(dtype=float),
    })
    out = out.dropna(subset=['outcome'])
    out = out[out['outcome_n'] > 0]
    out['outcome_any'] = (out['outcome'] > 0).astype(int)
    return out.drop_duplicates(subset=['community']).reset_index(drop=True)


def _predictor_columns(
    prevalence: pd.DataFrame,
    surveys: Sequence[int],
    age_groups: Sequence[str]
) -> pd.DataFrame:
    rows = prevalence[
        prevalence['survey'].isin(surveys) & prevalence['age_group'].isin(age_groups)
    ]
    if rows.empty:
        return pd.DataFrame({'community': prevalence['community'].unique()})

    wide = []
    for ind in INDICATORS:
        pivot = rows.pivot_table(
            index='community',
            columns=['age_group', 'survey'],
            values=f'prevalence_{ind}',
            aggfunc='first',
            dropna=False,
        )
        pivot.columns = [
            f'feat_{ind}_{age_group_key(age)}_m{int(survey)}' for age, survey in pivot.columns
        ]
        wide.append(pivot)

    return pd.concat(wide, axis=1).reset_index()


def build_modeling_dataset(
    prevalence: pd.DataFrame,
    covariates: Optional[pd.DataFrame],
    outcome_indicator: str = 'prevalence_pcr',
    outcome_age_group: str = '0-5y',
    outcome_survey: int = 36,
    predictor_surveys: Sequence[int] = (0, 12, 24),
    predictor_age_groups: Sequence[str] = ('0-5y', '6-9y', 'all'),
    output_path: Optional[str] = None
) -> pd.DataFrame:
    """
    Build the community-level modeling dataset.

    Args:
        prevalence: Output of build_community_prevalence()
        covariates: Output of build_covariate_table() (or None)
        outcome_indicator: prevalence_sero, prevalence_pcr or prevalence_clin
        outcome_age_group: Age group of the outcome
        outcome_survey: Survey month of the outcome
        predictor_surveys: Survey months used as predictors (< outcome_survey)
        predictor_age_groups: Age groups used as predictors
        output_path: If provided, save dataset to this path (parquet)

    Returns:
        DataFrame with community, latitude, longitude, outcome, outcome_n,
        outcome_any and feat_* predictor columns
    """
    indicator = outcome_indicator.replace('prevalence_', '')
    if indicator not in INDICATORS:
        raise ValueError(f"Unknown outcome_indicator: {outcome_indicator}")

    late = [s for s in predictor_surveys if s >= outcome_survey]
    if late:
        raise ValueError(
            f"Predictor surveys {late} are not earlier than outcome survey {outcome_survey}"
        )

    df = _outcome_rows(prevalence, indicator, outcome_age_group, outcome_survey)

    locations = (
        prevalence[['community', 'latitude', 'longitude']]
        .dropna()
        .drop_duplicates(subset=['community'])
        if {'latitude', 'longitude'}.issubset(prevalence.columns)
        else pd.DataFrame(columns=['community', 'latitude', 'longitude'])
    )
    df = df.merge(locations, on='community', how='left')

    predictors = _predictor_columns(prevalence, list(predictor_surveys), list(predictor_age_groups))
    df = df.merge(predictors, on='community', how='left')

    if covariates is not None and len(covariates):
        geo = covariates.drop(columns=['latitude', 'longitude'], errors='ignore')
        geo = geo.rename(columns={c: f'feat_{c}' for c in geo.columns if c.startswith('geo_')})
        # Time-varying covariates are only usable up to the last predictor survey
        geo = geo[[
            c for c in geo.columns
            if column_survey(c) is None or column_survey(c) < outcome_survey
        ]]
        df = df.merge(geo, on='community', how='left')

        if df['latitude'].isna().any() and {'latitude', 'longitude'}.issubset(covariates.columns):
            coords = covariates.set_index('community')[['latitude', 'longitude']]
            df['latitude'] = df['latitude'].fillna(df['community'].map(coords['latitude']))
            df['longitude'] = df['longitude'].fillna(df['community'].map(coords['longitude']))

    df = df.sort_values('community').reset_index(drop=True)

    feature_cols = [c for c in df.columns if c.startswith('feat_')]
    print(f"  → {len(df)} communities, {len(feature_cols)} candidate predictors")
    print(f"  → outcome {outcome_indicator} ({outcome_age_group}, month {outcome_survey}): "
          f"mean={df['outcome'].mean():.3f}, any={df['outcome_any'].mean():.2f}")

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_parquet(output_path, index=False)
        print(f"  → Saved to {output_path}")

    return df


def get_feature_columns(df: pd.DataFrame) -> list:
    """Get list of feature column names."""
    return [c for c in df.columns if c.startswith('feat_')]


def missing_report(df: pd.DataFrame, threshold: float = 0.5) -> pd.Series:
    """Fraction missing for feature columns above `threshold`."""
    frac = df[get_feature_columns(df)].isna().mean()
    return frac[frac > threshold].sort_values(ascending=False)
